"""Caller identity and job access rules.

Authentication belongs to the host platform, which forwards the caller's id
and role. Jobs are visible to their owner, administrators and shop managers;
only the owner or an administrator may cancel or delete them.
"""

import enum
from dataclasses import dataclass


class Role(enum.StrEnum):
    """Host roles the exporter distinguishes."""

    ADMIN = "admin"
    SHOP_MANAGER = "shop_manager"
    USER = "user"


@dataclass(frozen=True)
class Actor:
    """The user on whose behalf an operation runs."""

    id: str
    role: str = Role.USER

    @property
    def is_admin(self) -> bool:
        return self.role == Role.ADMIN

    @property
    def is_shop_manager(self) -> bool:
        return self.role == Role.SHOP_MANAGER

    def owns(self, requester_id: str) -> bool:
        return self.id == str(requester_id)


# Used by CLI commands and background loops
SYSTEM_ACTOR = Actor(id="system", role=Role.ADMIN)


def can_view_job(actor: Actor, requester_id: str) -> bool:
    """Owner, administrators and shop managers may view and download a job."""
    return actor.is_admin or actor.is_shop_manager or actor.owns(requester_id)


def can_manage_job(actor: Actor, requester_id: str) -> bool:
    """Only the owner or an administrator may cancel or delete a job."""
    return actor.is_admin or actor.owns(requester_id)
