# tests/test_access_policy.py
"""Unit tests for the operation policy table."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest
from types import SimpleNamespace
from app.errors import AuthenticationError, ForbiddenError, UnauthorizedError
from app.services.access_policy import POLICY, authorize, is_owner_host, is_scoped_to_own_visitors


def actor(role, id=1):
    return SimpleNamespace(id=id, role=role)


class TestAuthorize:
    def test_missing_identity_is_authentication_error(self):
        with pytest.raises(AuthenticationError) as exc:
            authorize("pass.list", None)
        assert exc.value.status_code == 401

    @pytest.mark.parametrize("role", ["admin", "security"])
    def test_security_and_admin_issue_passes(self, role):
        authorize("pass.issue", actor(role))

    def test_employee_cannot_issue_pass_even_for_own_visitor(self):
        visitor = SimpleNamespace(host_id=1)
        with pytest.raises(UnauthorizedError) as exc:
            authorize("pass.issue", actor("employee", id=1), visitor)
        assert exc.value.status_code == 403
        assert exc.value.message == "Insufficient permissions"

    def test_employee_reads_own_visitor(self):
        authorize("visitor.read", actor("employee", id=5), SimpleNamespace(host_id=5))

    def test_employee_forbidden_on_other_hosts_visitor(self):
        with pytest.raises(ForbiddenError) as exc:
            authorize("visitor.read", actor("employee", id=5), SimpleNamespace(host_id=6))
        assert exc.value.message == "Access denied"

    def test_pass_ownership_goes_through_visitor(self):
        pass_ = SimpleNamespace(visitor=SimpleNamespace(host_id=5))
        authorize("pass.read", actor("employee", id=5), pass_)
        with pytest.raises(ForbiddenError):
            authorize("pass.read", actor("employee", id=7), pass_)

    def test_employee_cannot_check_in(self):
        with pytest.raises(UnauthorizedError):
            authorize("checklog.check_in", actor("employee"))

    def test_security_cannot_manage_users(self):
        with pytest.raises(UnauthorizedError):
            authorize("user.list", actor("security"))

    def test_user_can_read_self_only(self):
        authorize("user.read", actor("security", id=3), SimpleNamespace(id=3))
        with pytest.raises(ForbiddenError):
            authorize("user.read", actor("security", id=3), SimpleNamespace(id=4))

    def test_attendee_may_decide_but_not_edit_appointment(self):
        appointment = SimpleNamespace(host_id=1, attendees=[SimpleNamespace(id=2)])
        authorize("appointment.set_status", actor("employee", id=2), appointment)
        with pytest.raises(ForbiddenError):
            authorize("appointment.update", actor("employee", id=2), appointment)

    def test_every_rule_with_owner_roles_has_a_predicate(self):
        for operation, rule in POLICY.items():
            if rule.owner_roles:
                assert rule.owner is not None, operation


class TestPredicates:
    def test_owner_host_requires_employee_role(self):
        assert is_owner_host(actor("employee", id=1), SimpleNamespace(host_id=1))
        assert not is_owner_host(actor("security", id=1), SimpleNamespace(host_id=1))

    def test_only_employees_are_scoped(self):
        assert is_scoped_to_own_visitors(actor("employee"))
        assert not is_scoped_to_own_visitors(actor("admin"))
