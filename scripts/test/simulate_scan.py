# scripts/test/simulate_scan.py
"""
Walk one visitor through the gate against a running backend:
register → approve → issue pass → verify → check in → check out.
Usage: python scripts/test/simulate_scan.py --user-id 1 --host-id 1
"""

import argparse
import requests
from datetime import datetime, timedelta

BACKEND_URL = "http://localhost:8080/api/v1"


def call(method, path, user_id, **kwargs):
    resp = requests.request(method, f"{BACKEND_URL}{path}", headers={"X-User-Id": str(user_id)},
                            timeout=10, **kwargs)
    print(f"{'✅' if resp.status_code < 300 else '❌'} {method} {path} → HTTP {resp.status_code}")
    resp.raise_for_status()
    return resp.json()


def run(user_id, host_id, location):
    now = datetime.utcnow()
    visitor = call("POST", "/visitors", user_id, json={
        "name": "Test Visitor",
        "email": f"visitor-{now:%H%M%S}@example.com",
        "phone": "+10000000000",
        "company": "Simulated Ltd",
        "purpose": "Gate simulation",
        "hostId": host_id,
        "expectedArrival": now.isoformat(),
        "expectedDeparture": (now + timedelta(hours=4)).isoformat(),
    })["visitor"]

    call("PUT", f"/visitors/{visitor['id']}/status", user_id, json={"status": "approved"})
    issued = call("POST", "/passes", user_id, json={
        "visitorId": visitor["id"],
        "validFrom": now.isoformat(),
        "validTo": (now + timedelta(hours=8)).isoformat(),
    })["pass"]
    print(f"   🎫 {issued['passNumber']}")

    qr_data = issued["qrData"]
    call("POST", "/passes/verify", user_id, json={"qrData": qr_data})
    call("POST", "/checklogs/checkin", user_id, json={"qrData": qr_data, "location": location})
    call("POST", "/checklogs/checkout", user_id, json={"qrData": qr_data, "location": location})


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Simulate a visitor passing the gate")
    parser.add_argument("--user-id", type=int, required=True, help="admin/security user id")
    parser.add_argument("--host-id", type=int, required=True, help="employee/admin hosting the visitor")
    parser.add_argument("--location", default="Main Gate")
    parser.add_argument("--url", default=BACKEND_URL)
    args = parser.parse_args()

    BACKEND_URL = args.url
    run(args.user_id, args.host_id, args.location)
