"""Tests for FastAPI dependency injection module."""

import pytest
from fastapi import HTTPException

from order_exporter.core.dependencies import get_current_actor, require_role
from order_exporter.core.security import Actor, Role


class TestGetCurrentActor:
    """Tests for get_current_actor."""

    @pytest.mark.asyncio
    async def test_builds_actor_from_headers(self) -> None:
        actor = await get_current_actor(x_actor_id=" 5 ", x_actor_role="Shop_Manager")
        assert actor == Actor("5", Role.SHOP_MANAGER)

    @pytest.mark.asyncio
    async def test_role_defaults_to_user(self) -> None:
        actor = await get_current_actor(x_actor_id="5", x_actor_role=None)
        assert actor.role == Role.USER

    @pytest.mark.asyncio
    async def test_missing_id_is_401(self) -> None:
        with pytest.raises(HTTPException) as exc_info:
            await get_current_actor(x_actor_id=None, x_actor_role="admin")
        assert exc_info.value.status_code == 401

    @pytest.mark.asyncio
    async def test_unknown_role_is_400(self) -> None:
        with pytest.raises(HTTPException) as exc_info:
            await get_current_actor(x_actor_id="5", x_actor_role="superuser")
        assert exc_info.value.status_code == 400


class TestRequireRole:
    """Tests for require_role factory."""

    @pytest.mark.asyncio
    async def test_allowed_role_passes(self) -> None:
        checker = require_role(Role.ADMIN, Role.SHOP_MANAGER)
        actor = Actor("2", Role.SHOP_MANAGER)
        assert await checker(actor=actor) is actor

    @pytest.mark.asyncio
    async def test_insufficient_role_raises_403(self) -> None:
        checker = require_role(Role.ADMIN)
        with pytest.raises(HTTPException) as exc_info:
            await checker(actor=Actor("3", Role.USER))
        assert exc_info.value.status_code == 403
        assert "user" in str(exc_info.value.detail)
