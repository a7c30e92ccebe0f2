"""FastAPI dependency injection for database sessions and the calling actor.

Authentication is performed by the host platform, which forwards the
caller's identity in the ``X-Actor-Id`` and ``X-Actor-Role`` headers.
"""

from collections.abc import AsyncGenerator, Callable
from typing import Annotated, Any

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from order_exporter.core.database import get_session_factory
from order_exporter.core.security import Actor, Role


async def get_async_session() -> AsyncGenerator[AsyncSession]:
    """Yield an async database session with per-request lifecycle."""
    factory = get_session_factory()
    async with factory() as session:
        yield session


async def get_current_actor(
    x_actor_id: Annotated[str | None, Header()] = None,
    x_actor_role: Annotated[str | None, Header()] = None,
) -> Actor:
    """Build the calling actor from host-provided headers.

    Raises:
        HTTPException: 401 if the actor id is missing, 400 on an unknown role.
    """
    if not x_actor_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing X-Actor-Id header",
        )
    role = (x_actor_role or Role.USER).strip().lower()
    if role not in set(Role):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unknown role '{role}'",
        )
    return Actor(id=x_actor_id.strip(), role=Role(role))


def require_role(*roles: str) -> Callable[..., Any]:
    """Factory that creates a dependency requiring specific actor roles.

    Args:
        *roles: Allowed role names (e.g., "admin", "shop_manager").

    Returns:
        A FastAPI dependency function that validates the actor's role.
    """

    async def role_checker(
        actor: Annotated[Actor, Depends(get_current_actor)],
    ) -> Actor:
        if actor.role not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Role '{actor.role}' does not have access to this resource",
            )
        return actor

    return role_checker
