"""Tests for metaguards.errors — exception hierarchy and error messages."""

from metaguards.errors import (
    ConfigurationError,
    GuardError,
    GuardRejected,
    MetaGuardError,
)
from metaguards.routing.route import RouteNode


class TestHierarchy:
    def test_configuration_error_is_metaguard_error(self) -> None:
        assert issubclass(ConfigurationError, MetaGuardError)

    def test_guard_error_is_metaguard_error(self) -> None:
        assert issubclass(GuardError, MetaGuardError)

    def test_guard_rejected_is_guard_error(self) -> None:
        assert issubclass(GuardRejected, GuardError)


class TestGuardError:
    def test_attributes(self) -> None:
        node = RouteNode("/users/{id}")
        cause = ValueError("boom")
        err = GuardError("after_enter", node, cause)
        assert err.guard == "after_enter"
        assert err.node is node
        assert err.cause is cause

    def test_str_names_guard_and_path(self) -> None:
        err = GuardError("after_enter", RouteNode("/users"), ValueError("boom"))
        assert str(err) == "after_enter failed at /users: ValueError('boom')"

    def test_str_without_cause(self) -> None:
        err = GuardError("after_leave", RouteNode("/users"))
        assert str(err) == "after_leave failed at /users"


class TestGuardRejected:
    def test_str(self) -> None:
        err = GuardRejected("before_enter", RouteNode("/admin"), PermissionError("nope"))
        assert str(err) == "before_enter rejected navigation at /admin: PermissionError('nope')"

    def test_str_without_node(self) -> None:
        err = GuardRejected("before_leave")
        assert str(err) == "before_leave rejected navigation at None"
