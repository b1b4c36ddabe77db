from datetime import timedelta

import pytest

from conftest import NOW, SUPERADMIN_ID
from gradebook.core.maintenance import MAINTENANCE_HISTORY_LIMIT, MAINTENANCE_TABLE, can_bypass_maintenance

BASE = "/api/v1/system/maintenance"


def enable(client, headers, **extra):
    body = {"isMaintenanceMode": True, "maintenanceMessage": "Upgrading the database", "reason": "Upgrade"}
    body.update(extra)
    return client.put(BASE, json=body, headers=headers)


@pytest.mark.parametrize("role, allowed, expected", [
    ("superadmin", [], True),
    ("teacher", ["teacher"], True),
    ("teacher", ["admin"], False),
    (None, ["teacher"], False),
])
def test_can_bypass_maintenance(role, allowed, expected):
    assert can_bypass_maintenance(role, allowed) is expected


def test_status_creates_default_record(client, fake_db):
    response = client.get(f"{BASE}/status")

    assert response.status_code == 200
    data = response.json()
    assert data["isMaintenanceMode"] is False
    assert data["canBypass"] is False
    assert len(fake_db.tables[MAINTENANCE_TABLE]) == 1

    client.get(f"{BASE}/status")
    assert len(fake_db.tables[MAINTENANCE_TABLE]) == 1


def test_enable_maintenance(client, superadmin_headers):
    completion = (NOW + timedelta(hours=2)).isoformat()
    response = enable(client, superadmin_headers, estimatedCompletion=completion, allowedBypassRoles=["teacher"])

    assert response.status_code == 200
    data = response.json()
    assert data["message"] == "Maintenance mode enabled successfully"
    maintenance = data["maintenance"]
    assert maintenance["isMaintenanceMode"] is True
    assert maintenance["allowedBypassRoles"] == ["teacher"]
    assert maintenance["lastModifiedBy"]["fullName"] == "Sam Super"
    entry = maintenance["maintenanceHistory"][-1]
    assert entry["action"] == "enabled"
    assert entry["reason"] == "Upgrade"
    assert entry["previousState"]["isMaintenanceMode"] is False


def test_status_reports_bypass_per_caller(client, superadmin_headers, teacher_headers, student_headers):
    enable(client, superadmin_headers, allowedBypassRoles=["teacher"])

    assert client.get(f"{BASE}/status").json()["canBypass"] is False
    assert client.get(f"{BASE}/status", headers=student_headers).json()["canBypass"] is False
    assert client.get(f"{BASE}/status", headers=teacher_headers).json()["canBypass"] is True
    assert client.get(f"{BASE}/status", headers=superadmin_headers).json()["canBypass"] is True

    status = client.get(f"{BASE}/status").json()
    assert status["isMaintenanceMode"] is True
    assert status["maintenanceMessage"] == "Upgrading the database"


def test_status_with_bad_token_is_anonymous(client, superadmin_headers):
    enable(client, superadmin_headers)
    response = client.get(f"{BASE}/status", headers={"Authorization": "Bearer not-a-token"})
    assert response.status_code == 200
    assert response.json()["canBypass"] is False


def test_bypass_roles_are_filtered(client, superadmin_headers):
    response = enable(client, superadmin_headers, allowedBypassRoles=["teacher", "janitor", "superadmin", "teacher"])
    assert response.json()["maintenance"]["allowedBypassRoles"] == ["teacher"]


def test_disable_and_update_actions(client, superadmin_headers):
    enable(client, superadmin_headers)
    updated = enable(client, superadmin_headers, maintenanceMessage="Still upgrading").json()
    assert updated["maintenance"]["maintenanceHistory"][-1]["action"] == "updated"

    response = client.put(BASE, json={"isMaintenanceMode": False}, headers=superadmin_headers)
    data = response.json()
    assert data["message"] == "Maintenance mode disabled successfully"
    assert data["maintenance"]["maintenanceHistory"][-1]["action"] == "disabled"
    # message is kept when not supplied
    assert data["maintenance"]["maintenanceMessage"] == "Still upgrading"


def test_update_requires_mode_flag(client, superadmin_headers):
    response = client.put(BASE, json={"maintenanceMessage": "hello"}, headers=superadmin_headers)
    assert response.status_code == 400


def test_management_requires_superadmin(client, teacher_headers):
    assert client.get(BASE, headers=teacher_headers).status_code == 403
    assert enable(client, teacher_headers).status_code == 403
    assert client.get(f"{BASE}/history", headers=teacher_headers).status_code == 403
    assert client.delete(f"{BASE}/history", headers=teacher_headers).status_code == 403


def test_history_is_capped_and_newest_first(client, clock, superadmin_headers):
    for i in range(MAINTENANCE_HISTORY_LIMIT + 5):
        clock.now = NOW + timedelta(minutes=i)
        client.put(BASE, json={"isMaintenanceMode": i % 2 == 0}, headers=superadmin_headers)

    data = client.get(f"{BASE}/history", headers=superadmin_headers).json()
    assert data["totalEntries"] == MAINTENANCE_HISTORY_LIMIT
    timestamps = [entry["timestamp"] for entry in data["history"]]
    assert timestamps == sorted(timestamps, reverse=True)
    assert data["history"][0]["actor"]["id"] == SUPERADMIN_ID


def test_clear_history(client, superadmin_headers):
    enable(client, superadmin_headers)

    response = client.delete(f"{BASE}/history", headers=superadmin_headers)
    assert response.status_code == 200
    assert response.json() == {"message": "Maintenance history cleared successfully"}

    data = client.get(f"{BASE}/history", headers=superadmin_headers).json()
    assert data == {"history": [], "totalEntries": 0}
    # clearing history does not change the mode
    assert client.get(f"{BASE}/status").json()["isMaintenanceMode"] is True


def test_status_store_down(client, fake_db):
    fake_db.fail = True
    response = client.get(f"{BASE}/status")
    assert response.status_code == 500
    assert response.json()["error_code"] == "STORE_UNAVAILABLE"


def test_health(client, fake_db):
    assert client.get("/health").json()["database"] == "connected"
    fake_db.fail = True
    response = client.get("/health")
    assert response.status_code == 503
    assert response.json()["status"] == "degraded"
