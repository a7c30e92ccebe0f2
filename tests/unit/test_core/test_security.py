"""Tests for actor roles and job access rules."""

from order_exporter.core.security import SYSTEM_ACTOR, Actor, Role, can_manage_job, can_view_job


class TestActor:
    """Tests for Actor."""

    def test_role_flags(self) -> None:
        assert Actor("1", Role.ADMIN).is_admin
        assert Actor("1", Role.SHOP_MANAGER).is_shop_manager
        assert not Actor("1").is_admin

    def test_owns_compares_as_string(self) -> None:
        assert Actor("7").owns(7)  # type: ignore[arg-type]
        assert not Actor("7").owns("8")

    def test_system_actor_is_admin(self) -> None:
        assert SYSTEM_ACTOR.is_admin


class TestJobAccess:
    """Tests for can_view_job and can_manage_job."""

    def test_owner_can_view_and_manage(self) -> None:
        owner = Actor("3")
        assert can_view_job(owner, "3")
        assert can_manage_job(owner, "3")

    def test_stranger_cannot_view_or_manage(self) -> None:
        stranger = Actor("4")
        assert not can_view_job(stranger, "3")
        assert not can_manage_job(stranger, "3")

    def test_shop_manager_views_but_cannot_manage(self) -> None:
        manager = Actor("2", Role.SHOP_MANAGER)
        assert can_view_job(manager, "3")
        assert not can_manage_job(manager, "3")

    def test_admin_can_do_everything(self) -> None:
        admin = Actor("1", Role.ADMIN)
        assert can_view_job(admin, "3")
        assert can_manage_job(admin, "3")
