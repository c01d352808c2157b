# tests/test_api.py
"""End-to-end tests through the HTTP API (camelCase JSON, error bodies, identity header)."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest
from datetime import datetime, timedelta
from fastapi.testclient import TestClient
from app.main import app


@pytest.fixture
def client(db):
    with TestClient(app) as c:
        yield c


def as_user(user):
    return {"X-User-Id": str(user.id)}


def register_visitor(client, actor, host_id):
    now = datetime.utcnow()
    resp = client.post("/api/v1/visitors", headers=as_user(actor), json={
        "name": "Vic Visitor",
        "email": "Vic@Example.com",
        "phone": "+15550001111",
        "company": "Acme",
        "purpose": "Quarterly review",
        "hostId": host_id,
        "expectedArrival": now.isoformat(),
        "expectedDeparture": (now + timedelta(hours=3)).isoformat(),
    })
    assert resp.status_code == 201, resp.text
    return resp.json()["visitor"]


def issue(client, actor, visitor_id, hours=8):
    now = datetime.utcnow()
    return client.post("/api/v1/passes", headers=as_user(actor), json={
        "visitorId": visitor_id,
        "validFrom": now.isoformat(),
        "validTo": (now + timedelta(hours=hours)).isoformat(),
    })


class TestIdentity:
    def test_missing_header_is_401(self, client):
        resp = client.get("/api/v1/passes")
        assert resp.status_code == 401
        assert resp.json()["code"] == "unauthenticated"

    def test_unknown_user_is_401(self, client):
        assert client.get("/api/v1/passes", headers={"X-User-Id": "999"}).status_code == 401

    def test_inactive_user_is_401(self, client, make_user):
        user = make_user("security", is_active=False)
        resp = client.get("/api/v1/passes", headers=as_user(user))
        assert resp.status_code == 401
        assert resp.json()["detail"] == "Account is deactivated"


class TestVisitFlow:
    def test_register_approve_issue_scan(self, client, guard, host):
        visitor = register_visitor(client, host, host.id)
        assert visitor["status"] == "pending"
        assert visitor["email"] == "vic@example.com"
        assert visitor["hostId"] == host.id

        resp = issue(client, guard, visitor["id"])
        assert resp.status_code == 400
        assert resp.json()["detail"] == "Visitor must be approved before issuing pass"

        resp = client.put(f"/api/v1/visitors/{visitor['id']}/status", headers=as_user(host),
                          json={"status": "approved"})
        assert resp.status_code == 200
        assert resp.json()["visitor"]["status"] == "approved"

        resp = issue(client, guard, visitor["id"])
        assert resp.status_code == 201, resp.text
        issued = resp.json()["pass"]
        assert issued["status"] == "active"
        assert issued["accessLevel"] == "standard"
        qr_data = issued["qrData"]

        resp = client.post("/api/v1/passes/verify", headers=as_user(guard), json={"qrData": qr_data})
        assert resp.status_code == 200
        assert resp.json()["visitor"]["id"] == visitor["id"]

        resp = client.post("/api/v1/checklogs/checkin", headers=as_user(guard),
                           json={"qrData": qr_data, "location": "Lobby", "temperature": 36.5})
        assert resp.status_code == 201, resp.text
        body = resp.json()
        assert body["checkLog"]["type"] == "check_in"
        assert body["checkLog"]["pass"]["passNumber"] == issued["passNumber"]
        assert body["visitor"]["status"] == "checked_in"

        resp = client.post("/api/v1/checklogs/checkin", headers=as_user(guard), json={"qrData": qr_data})
        assert resp.status_code == 409
        assert resp.json()["code"] == "already_checked_in"

        resp = client.post("/api/v1/checklogs/checkout", headers=as_user(guard), json={"qrData": qr_data})
        assert resp.status_code == 201
        assert resp.json()["visitor"]["status"] == "checked_out"

        resp = client.post("/api/v1/checklogs/checkout", headers=as_user(guard), json={"qrData": qr_data})
        assert resp.status_code == 400
        assert resp.json()["detail"] == "Visitor is not checked in"

        history = client.get(f"/api/v1/checklogs/visitor/{visitor['id']}", headers=as_user(host)).json()
        assert [log["type"] for log in history["checkLogs"]] == ["check_out", "check_in"]

    def test_verify_revoked_pass_echoes_state(self, client, guard, approved_visitor):
        issued = issue(client, guard, approved_visitor.id).json()["pass"]
        resp = client.put(f"/api/v1/passes/{issued['id']}/revoke", headers=as_user(guard))
        assert resp.json()["pass"]["status"] == "revoked"

        resp = client.post("/api/v1/passes/verify", headers=as_user(guard), json={"qrData": issued["qrData"]})
        assert resp.status_code == 400
        body = resp.json()
        assert body["detail"] == "Pass is revoked"
        assert body["pass"]["status"] == "revoked"

    def test_verify_without_qr_data(self, client, guard):
        resp = client.post("/api/v1/passes/verify", headers=as_user(guard), json={})
        assert resp.status_code == 400
        assert resp.json()["detail"] == "QR data is required"

    def test_employee_cannot_issue(self, client, host, approved_visitor):
        resp = issue(client, host, approved_visitor.id)
        assert resp.status_code == 403
        assert resp.json()["detail"] == "Insufficient permissions"

    def test_employee_forbidden_on_foreign_visitor(self, client, make_user, make_visitor):
        other = make_user("employee")
        visitor = make_visitor("pending")
        resp = client.get(f"/api/v1/visitors/{visitor.id}", headers=as_user(other))
        assert resp.status_code == 403
        assert resp.json()["code"] == "forbidden"

    def test_stats_route_not_shadowed_by_id_route(self, client, guard):
        resp = client.get("/api/v1/checklogs/stats?period=month", headers=as_user(guard))
        assert resp.status_code == 200
        assert resp.json() == {"period": "month", "totalCheckIns": 0, "totalCheckOuts": 0,
                               "currentCheckedIn": 0, "checkInOutRatio": "N/A"}


class TestAppointmentsAndUsers:
    def test_appointment_lifecycle(self, client, host, make_user, approved_visitor):
        attendee = make_user("employee")
        resp = client.post("/api/v1/appointments", headers=as_user(host), json={
            "visitorId": approved_visitor.id,
            "title": "Contract review",
            "date": datetime.utcnow().isoformat(),
            "startTime": "10:00",
            "endTime": "11:00",
            "attendees": [attendee.id],
        })
        assert resp.status_code == 201, resp.text
        appointment = resp.json()["appointment"]
        assert appointment["hostId"] == host.id
        assert [a["id"] for a in appointment["attendees"]] == [attendee.id]

        listed = client.get("/api/v1/appointments", headers=as_user(attendee)).json()
        assert listed["total"] == 1

        resp = client.put(f"/api/v1/appointments/{appointment['id']}/status", headers=as_user(attendee),
                          json={"status": "approved"})
        assert resp.json()["appointment"]["status"] == "approved"

        resp = client.delete(f"/api/v1/appointments/{appointment['id']}", headers=as_user(attendee))
        assert resp.status_code == 403
        resp = client.delete(f"/api/v1/appointments/{appointment['id']}", headers=as_user(host))
        assert resp.status_code == 200

    def test_admin_manages_users(self, client, admin, host):
        resp = client.post("/api/v1/users", headers=as_user(admin),
                           json={"name": "Sam Guard", "email": "sam@example.com", "role": "security"})
        assert resp.status_code == 201
        created = resp.json()["user"]
        assert created["role"] == "security"

        resp = client.put(f"/api/v1/users/{host.id}", headers=as_user(host), json={"role": "admin", "phone": "123"})
        assert resp.json()["user"]["role"] == "employee"
        assert resp.json()["user"]["phone"] == "123"

        stats = client.get("/api/v1/users/stats", headers=as_user(admin)).json()
        assert stats["byRole"] == {"admin": 1, "security": 1, "employee": 1}

        assert client.delete(f"/api/v1/users/{admin.id}", headers=as_user(admin)).status_code == 400
        assert client.delete(f"/api/v1/users/{created['id']}", headers=as_user(admin)).status_code == 200
        assert client.get("/api/v1/users", headers=as_user(host)).status_code == 403


class TestListFilters:
    @pytest.fixture
    def two_visits(self, client, guard, make_visitor):
        """Two approved visitors, each with a pass and a check-in."""
        visits = []
        for name in ("Ann Archer", "Bob Baker"):
            visitor = make_visitor("approved", name=name)
            issued = issue(client, guard, visitor.id).json()["pass"]
            resp = client.post("/api/v1/checklogs/checkin", headers=as_user(guard), json={"qrData": issued["qrData"]})
            assert resp.status_code == 201, resp.text
            visits.append((visitor.id, issued))
        return visits

    def test_passes_filtered_by_visitor_id(self, client, guard, two_visits):
        (ann_id, ann_pass), _ = two_visits
        body = client.get(f"/api/v1/passes?visitorId={ann_id}", headers=as_user(guard)).json()
        assert body["total"] == 1
        assert body["passes"][0]["id"] == ann_pass["id"]

    def test_check_logs_filtered_by_visitor_id_and_dates(self, client, guard, two_visits):
        _, (bob_id, _) = two_visits
        body = client.get(f"/api/v1/checklogs?visitorId={bob_id}", headers=as_user(guard)).json()
        assert body["total"] == 1
        assert body["checkLogs"][0]["visitorId"] == bob_id

        tomorrow = (datetime.utcnow() + timedelta(days=1)).isoformat()
        body = client.get("/api/v1/checklogs", params={"startDate": tomorrow}, headers=as_user(guard)).json()
        assert body["total"] == 0
        body = client.get("/api/v1/checklogs", params={"endDate": tomorrow}, headers=as_user(guard)).json()
        assert body["total"] == 2

    def test_check_logs_search_by_name_or_pass_number(self, client, guard, two_visits):
        (ann_id, ann_pass), (bob_id, _) = two_visits
        body = client.get("/api/v1/checklogs?search=baker", headers=as_user(guard)).json()
        assert [log["visitorId"] for log in body["checkLogs"]] == [bob_id]

        body = client.get("/api/v1/checklogs", params={"search": ann_pass["passNumber"]},
                          headers=as_user(guard)).json()
        assert [log["visitorId"] for log in body["checkLogs"]] == [ann_id]

        assert client.get("/api/v1/checklogs?search=nobody", headers=as_user(guard)).json()["total"] == 0

    def test_visitors_filtered_by_host_id(self, client, admin, host, make_user, make_visitor):
        other = make_user("employee")
        make_visitor("pending", name="Ann Archer")
        theirs = make_visitor("pending", host_user=other, name="Bob Baker")

        body = client.get(f"/api/v1/visitors?hostId={other.id}", headers=as_user(admin)).json()
        assert body["total"] == 1
        assert body["visitors"][0]["id"] == theirs.id

    def test_appointments_filtered_by_visitor_id(self, client, host, make_visitor):
        ids = []
        for name in ("Ann Archer", "Bob Baker"):
            visitor = make_visitor("approved", name=name)
            resp = client.post("/api/v1/appointments", headers=as_user(host), json={
                "visitorId": visitor.id,
                "title": f"Meeting with {name}",
                "date": datetime.utcnow().isoformat(),
                "startTime": "09:00",
                "endTime": "10:00",
            })
            assert resp.status_code == 201, resp.text
            ids.append(visitor.id)

        body = client.get(f"/api/v1/appointments?visitorId={ids[1]}", headers=as_user(host)).json()
        assert body["total"] == 1
        assert body["appointments"][0]["visitorId"] == ids[1]


class TestHealth:
    def test_health_reports_database(self, client):
        body = client.get("/api/v1/health").json()
        assert body["database"] == "ok"
        assert body["collaborators"] == {"notifications": "disabled", "badge_renderer": "disabled"}
