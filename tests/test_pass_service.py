# tests/test_pass_service.py
"""Tests for pass issuance and revocation, including concurrent issuance."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import json
import re
import threading
import pytest
from datetime import datetime, timedelta
from types import SimpleNamespace
from unittest.mock import patch
from app.database import SessionLocal
from app.errors import ConflictError, InvalidPayloadError, InvalidStateError, NotFoundError, UnauthorizedError, ForbiddenError
from app.models.visitor_pass import Pass
from app.services import pass_service
from app.services.pass_service import generate_pass_number, generate_token, issue_pass, revoke_pass, get_pass, list_passes


def window(hours=8):
    now = datetime.utcnow()
    return now - timedelta(minutes=1), now + timedelta(hours=hours)


class TestGenerators:
    def test_pass_number_format(self):
        assert re.fullmatch(r"PASS-\d{6}-[A-Z0-9]{6}", generate_pass_number())

    def test_token_is_64_hex_chars(self):
        token = generate_token()
        assert re.fullmatch(r"[0-9a-f]{64}", token)
        assert token != generate_token()


class TestIssuePass:
    def test_issue_for_approved_visitor(self, db, guard, approved_visitor):
        valid_from, valid_to = window()
        pass_ = issue_pass(db, guard, approved_visitor.id, valid_from, valid_to, "vip")

        assert pass_.status == "active"
        assert pass_.access_level == "vip"
        assert pass_.expires_at == valid_to
        assert pass_.issued_by == guard.id
        assert pass_.pdf_url == f"/pdfs/pass-{pass_.pass_number}.pdf"
        assert pass_.qr_code.startswith("data:image/png;base64,")

        payload = json.loads(pass_.qr_data)
        assert payload["passId"] == pass_.id
        assert payload["visitorId"] == approved_visitor.id
        assert payload["token"] == pass_.token

    def test_visitor_must_be_approved(self, db, guard, make_visitor):
        visitor = make_visitor("pending")
        with pytest.raises(InvalidStateError) as exc:
            issue_pass(db, guard, visitor.id, *window())
        assert exc.value.message == "Visitor must be approved before issuing pass"
        assert db.query(Pass).count() == 0

    def test_unknown_visitor(self, db, guard):
        with pytest.raises(NotFoundError):
            issue_pass(db, guard, 999, *window())

    def test_second_active_pass_rejected(self, db, guard, approved_visitor):
        issue_pass(db, guard, approved_visitor.id, *window())
        with pytest.raises(InvalidStateError) as exc:
            issue_pass(db, guard, approved_visitor.id, *window())
        assert exc.value.message == "Active pass already exists for this visitor"
        assert db.query(Pass).filter(Pass.visitor_id == approved_visitor.id).count() == 1

    def test_expired_pass_blocks_until_revoked(self, db, guard, approved_visitor):
        first = issue_pass(db, guard, approved_visitor.id, *window())
        first.status = "expired"
        db.commit()

        with pytest.raises(InvalidStateError):
            issue_pass(db, guard, approved_visitor.id, *window())

        revoke_pass(db, guard, first.id)
        second = issue_pass(db, guard, approved_visitor.id, *window())
        assert second.status == "active"

    def test_valid_to_must_follow_valid_from(self, db, guard, approved_visitor):
        now = datetime.utcnow()
        with pytest.raises(InvalidPayloadError):
            issue_pass(db, guard, approved_visitor.id, now, now - timedelta(hours=1))

    def test_unknown_visitor_reported_before_window_errors(self, db, guard):
        now = datetime.utcnow()
        with pytest.raises(NotFoundError):
            issue_pass(db, guard, 999, now, now - timedelta(hours=1))

    def test_unapproved_visitor_reported_before_access_level_errors(self, db, guard, make_visitor):
        visitor = make_visitor("pending")
        with pytest.raises(InvalidStateError):
            issue_pass(db, guard, visitor.id, *window(), access_level="platinum")

    def test_employee_host_cannot_issue(self, db, host, approved_visitor):
        assert approved_visitor.host_id == host.id
        with pytest.raises(UnauthorizedError):
            issue_pass(db, host, approved_visitor.id, *window())
        assert db.query(Pass).count() == 0

    def test_concurrent_issuance_creates_one_pass(self, db, guard, approved_visitor):
        barrier = threading.Barrier(2, timeout=10)
        original = pass_service.find_blocking_pass

        def find_then_wait(session, visitor_id):
            found = original(session, visitor_id)
            barrier.wait()
            return found

        # Plain values: the fixture rows belong to the main-thread session
        actor = SimpleNamespace(id=guard.id, role=guard.role)
        visitor_id = approved_visitor.id
        results = []

        def worker():
            session = SessionLocal()
            try:
                issue_pass(session, actor, visitor_id, *window())
                results.append("ok")
            except ConflictError:
                results.append("conflict")
            finally:
                session.close()

        with patch("app.services.pass_service.find_blocking_pass", side_effect=find_then_wait):
            threads = [threading.Thread(target=worker) for _ in range(2)]
            for t in threads:
                t.start()
            for t in threads:
                t.join(timeout=30)

        assert sorted(results) == ["conflict", "ok"]
        db.expire_all()
        assert db.query(Pass).filter(Pass.visitor_id == approved_visitor.id).count() == 1


class TestRevokeAndRead:
    def test_revoke_twice(self, db, guard, approved_visitor):
        pass_ = issue_pass(db, guard, approved_visitor.id, *window())
        assert revoke_pass(db, guard, pass_.id).status == "revoked"
        with pytest.raises(InvalidStateError) as exc:
            revoke_pass(db, guard, pass_.id)
        assert exc.value.message == "Pass is already revoked"

    def test_get_pass_flips_stale_active_pass(self, db, guard, approved_visitor):
        now = datetime.utcnow()
        pass_ = issue_pass(db, guard, approved_visitor.id, now - timedelta(hours=2), now + timedelta(hours=1))
        pass_.expires_at = now - timedelta(seconds=1)
        db.commit()

        assert get_pass(db, guard, pass_.id).status == "expired"

    def test_employee_sees_only_hosted_passes(self, db, guard, make_user, make_visitor, host):
        other_host = make_user("employee")
        mine = make_visitor("approved", name="Mine Visitor")
        theirs = make_visitor("approved", host_user=other_host, name="Theirs Visitor")
        issue_pass(db, guard, mine.id, *window())
        foreign = issue_pass(db, guard, theirs.id, *window())

        page = list_passes(db, host)
        assert [p.visitor_id for p in page.items] == [mine.id]
        with pytest.raises(ForbiddenError):
            get_pass(db, host, foreign.id)
