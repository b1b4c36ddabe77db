from datetime import timedelta

from conftest import NOW, SUPERADMIN_ID, auth_headers

BASE = "/api/v1/announcements"


def payload(start=timedelta(hours=2), end=timedelta(hours=5), **extra):
    body = {
        "title": "Scheduled maintenance",
        "message": "The gradebook will be unavailable",
        "type": "scheduled",
        "scheduledStart": (NOW + start).isoformat(),
        "scheduledEnd": (NOW + end).isoformat(),
    }
    body.update(extra)
    return body


def test_create_announcement(client, superadmin_headers):
    response = client.post(BASE, json=payload(affectedServices=["grades", " ", "timetable"]), headers=superadmin_headers)

    assert response.status_code == 201
    data = response.json()
    assert data["type"] == "scheduled"
    assert data["isActive"] is True
    assert data["showOnDashboard"] is True
    assert data["targetRoles"] == ["admin", "teacher", "student", "parent", "secretary"]
    assert data["affectedServices"] == ["grades", "timetable"]
    assert data["createdBy"]["id"] == SUPERADMIN_ID
    assert data["createdBy"]["fullName"] == "Sam Super"
    assert data["history"][0]["action"] == "created"
    assert data["history"][0]["actor"]["fullName"] == "Sam Super"


def test_create_rejects_end_before_start(client, superadmin_headers):
    response = client.post(BASE, json=payload(end=timedelta(hours=1)), headers=superadmin_headers)

    assert response.status_code == 400
    assert "Scheduled end time must be after start time" in response.json()["message"]


def test_create_rejects_equal_bounds(client, superadmin_headers):
    response = client.post(BASE, json=payload(end=timedelta(hours=2)), headers=superadmin_headers)
    assert response.status_code == 400


def test_create_rejects_unknown_role(client, superadmin_headers):
    response = client.post(BASE, json=payload(targetRoles=["teacher", "janitor"]), headers=superadmin_headers)
    assert response.status_code == 400
    assert "janitor" in response.json()["message"]


def test_create_rejects_long_title(client, superadmin_headers):
    response = client.post(BASE, json=payload(title="x" * 101), headers=superadmin_headers)
    assert response.status_code == 400


def test_management_requires_superadmin(client, teacher_headers):
    assert client.post(BASE, json=payload(), headers=teacher_headers).status_code == 403
    assert client.get(BASE, headers=teacher_headers).status_code == 403


def test_requires_authentication(client):
    assert client.get(f"{BASE}/active").status_code == 401
    assert client.post(BASE, json=payload()).status_code == 401


def test_active_announcements_by_role(client, clock, superadmin_headers, teacher_headers, student_headers):
    client.post(BASE, json=payload(targetRoles=["teacher"]), headers=superadmin_headers)

    teacher_view = client.get(f"{BASE}/active", headers=teacher_headers)
    assert teacher_view.status_code == 200
    assert len(teacher_view.json()) == 1

    assert client.get(f"{BASE}/active", headers=student_headers).json() == []

    clock.now = NOW + timedelta(hours=3)
    assert len(client.get(f"{BASE}/active", headers=teacher_headers).json()) == 1

    clock.now = NOW + timedelta(hours=6)
    assert client.get(f"{BASE}/active", headers=teacher_headers).json() == []


def test_active_announcements_capped_and_ordered(client, superadmin_headers, teacher_headers):
    for hour in range(12, 0, -1):
        client.post(
            BASE,
            json=payload(start=timedelta(hours=hour), end=timedelta(hours=hour + 1), title=f"Window {hour}"),
            headers=superadmin_headers,
        )

    active = client.get(f"{BASE}/active", headers=teacher_headers).json()
    assert [a["title"] for a in active] == [f"Window {hour}" for hour in range(1, 11)]


def test_active_announcements_store_down(client, fake_db, teacher_headers):
    fake_db.fail = True
    response = client.get(f"{BASE}/active", headers=teacher_headers)
    assert response.status_code == 500
    assert response.json()["error_code"] == "STORE_UNAVAILABLE"


def test_update_and_deactivate(client, superadmin_headers):
    created = client.post(BASE, json=payload(), headers=superadmin_headers).json()

    response = client.put(f"{BASE}/{created['id']}", json={"isActive": False}, headers=superadmin_headers)
    assert response.status_code == 200
    data = response.json()
    assert data["isActive"] is False
    assert data["history"][-1]["action"] == "deactivated"
    assert data["lastModifiedBy"]["id"] == SUPERADMIN_ID


def test_update_with_broken_window(client, superadmin_headers):
    created = client.post(BASE, json=payload(), headers=superadmin_headers).json()
    response = client.put(
        f"{BASE}/{created['id']}",
        json={"scheduledEnd": (NOW + timedelta(hours=1)).isoformat()},
        headers=superadmin_headers,
    )
    assert response.status_code == 400
    assert response.json()["error_code"] == "INVALID_WINDOW"


def test_get_and_delete(client, superadmin_headers):
    created = client.post(BASE, json=payload(), headers=superadmin_headers).json()

    assert client.get(f"{BASE}/{created['id']}", headers=superadmin_headers).status_code == 200

    response = client.delete(f"{BASE}/{created['id']}", headers=superadmin_headers)
    assert response.status_code == 200
    assert response.json() == {"message": "Maintenance announcement deleted successfully"}

    missing = client.get(f"{BASE}/{created['id']}", headers=superadmin_headers)
    assert missing.status_code == 404
    assert missing.json()["error_code"] == "ANNOUNCEMENT_NOT_FOUND"


def test_list_all_newest_first(client, superadmin_headers):
    client.post(BASE, json=payload(title="First"), headers=superadmin_headers)
    client.post(BASE, json=payload(title="Second"), headers=superadmin_headers)

    titles = [a["title"] for a in client.get(BASE, headers=superadmin_headers).json()]
    assert titles == ["Second", "First"]


def test_unknown_actor_falls_back_to_id(client):
    headers = auth_headers("99999999-9999-9999-9999-999999999999", "superadmin")
    data = client.post(BASE, json=payload(), headers=headers).json()
    assert data["createdBy"] == {
        "id": "99999999-9999-9999-9999-999999999999",
        "fullName": None,
        "email": None,
        "role": None,
    }
