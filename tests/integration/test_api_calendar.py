"""HTTP tests for /api/meetings and /api/events."""
from datetime import timedelta

import pytest

from tms.timeutil import today


@pytest.fixture
def tomorrow():
    return (today() + timedelta(days=1)).isoformat()


class TestMeetings:
    def _body(self, day, **overrides):
        body = {
            "title": "Sprint planning",
            "agenda": "Scope the next sprint",
            "date": day,
            "start_time": "10:00",
            "end_time": "11:00",
        }
        body.update(overrides)
        return body

    def test_invite_by_department(self, client, user_headers, department, user, admin, tomorrow, mailer):
        resp = client.post("/api/meetings", headers=user_headers,
                           json=self._body(tomorrow, department_ids=[department.id]))
        assert resp.status_code == 201
        data = resp.json()["data"]
        assert data["status"] == "Scheduled"
        assert data["color"] == "#FF0000"
        assert sorted(u["email"] for u in data["invited_users"]) == ["admin@example.com", "john@example.com"]
        assert sorted(mailer.recipients_of("Meeting Invitation: Sprint planning")) == [
            "admin@example.com", "john@example.com",
        ]

    def test_invite_users_directly(self, client, user_headers, user, tomorrow):
        resp = client.post("/api/meetings", headers=user_headers,
                           json=self._body(tomorrow, invited_user_ids=[user.id]))
        assert [u["email"] for u in resp.json()["data"]["invited_users"]] == ["john@example.com"]

    def test_invitees_required(self, client, user_headers, tomorrow):
        resp = client.post("/api/meetings", headers=user_headers, json=self._body(tomorrow))
        assert resp.status_code == 400

    def test_end_before_start(self, client, user_headers, user, tomorrow):
        resp = client.post("/api/meetings", headers=user_headers, json=self._body(
            tomorrow, invited_user_ids=[user.id], start_time="11:00", end_time="10:30",
        ))
        assert resp.status_code == 400
        assert resp.json()["detail"] == "End time must be after start time."

    def test_past_date(self, client, user_headers, user):
        yesterday = (today() - timedelta(days=1)).isoformat()
        resp = client.post("/api/meetings", headers=user_headers,
                           json=self._body(yesterday, invited_user_ids=[user.id]))
        assert resp.status_code == 400

    def test_bad_time_format(self, client, user_headers, user, tomorrow):
        resp = client.post("/api/meetings", headers=user_headers,
                           json=self._body(tomorrow, invited_user_ids=[user.id], start_time="ten"))
        assert resp.status_code == 400

    def test_time_with_offset_rejected(self, client, user_headers, user, tomorrow):
        resp = client.post("/api/meetings", headers=user_headers, json=self._body(
            tomorrow, invited_user_ids=[user.id], start_time="10:00+05:00",
        ))
        assert resp.status_code == 400
        assert resp.json()["detail"] == "Invalid start or end time."

    def test_list_filter_and_update(self, client, factory, user_headers, department, user, tomorrow):
        design = factory.department(name="design")
        client.post("/api/meetings", headers=user_headers, json=self._body(tomorrow, department_ids=[department.id]))
        client.post("/api/meetings", headers=user_headers,
                    json=self._body(tomorrow, title="Design review", department_ids=[design.id],
                                    invited_user_ids=[user.id]))

        resp = client.get(f"/api/meetings?department_id={design.id}", headers=user_headers)
        meetings = resp.json()["data"]
        assert [m["title"] for m in meetings] == ["Design review"]

        meeting_id = meetings[0]["id"]
        resp = client.put(f"/api/meetings/{meeting_id}", headers=user_headers,
                          json={"status": "Canceled", "end_time": "12:00"})
        assert resp.status_code == 200
        assert resp.json()["data"]["status"] == "Canceled"
        assert resp.json()["data"]["end_time"].endswith("12:00:00")

    def test_delete(self, client, user_headers, user, tomorrow):
        created = client.post("/api/meetings", headers=user_headers,
                              json=self._body(tomorrow, invited_user_ids=[user.id])).json()["data"]
        assert client.delete(f"/api/meetings/{created['id']}", headers=user_headers).status_code == 200
        assert client.get(f"/api/meetings/{created['id']}", headers=user_headers).status_code == 404


class TestEvents:
    def _body(self, day, **overrides):
        body = {"title": "Summer party", "date": day, "start_time": "17:00", "end_time": "22:00", "type": "Event"}
        body.update(overrides)
        return body

    def test_create_notifies_everyone(self, client, user_headers, user, admin, tomorrow, mailer):
        resp = client.post("/api/events", headers=user_headers, json=self._body(tomorrow))
        assert resp.status_code == 201
        assert resp.json()["data"]["color"] == "#FF5733"
        assert sorted(mailer.recipients_of("New Event: Summer party")) == [
            "admin@example.com", "john@example.com",
        ]

    def test_notify_admins_only(self, client, user_headers, user, admin, tomorrow, mailer):
        client.post("/api/events", headers=user_headers,
                    json=self._body(tomorrow, type="Holiday", notify_admins=True))
        assert mailer.recipients_of("New Holiday: Summer party") == ["admin@example.com"]

    def test_unknown_type(self, client, user_headers, tomorrow):
        resp = client.post("/api/events", headers=user_headers, json=self._body(tomorrow, type="Party"))
        assert resp.status_code == 422

    def test_invalid_color(self, client, user_headers, tomorrow):
        resp = client.post("/api/events", headers=user_headers, json=self._body(tomorrow, color="blue"))
        assert resp.status_code == 400

    def test_list_filtered_by_type(self, client, user_headers, tomorrow):
        client.post("/api/events", headers=user_headers, json=self._body(tomorrow))
        client.post("/api/events", headers=user_headers,
                    json=self._body(tomorrow, title="Bank holiday", type="Holiday", start_time="00:00"))
        resp = client.get("/api/events?type=Holiday", headers=user_headers)
        assert [e["title"] for e in resp.json()["data"]] == ["Bank holiday"]

        resp = client.get(f"/api/events?date={tomorrow}", headers=user_headers)
        assert [e["title"] for e in resp.json()["data"]] == ["Bank holiday", "Summer party"]

    def test_update_and_delete(self, client, user_headers, tomorrow):
        created = client.post("/api/events", headers=user_headers, json=self._body(tomorrow)).json()["data"]
        resp = client.put(f"/api/events/{created['id']}", headers=user_headers, json={"title": "Winter party"})
        assert resp.json()["data"]["title"] == "Winter party"
        assert client.delete(f"/api/events/{created['id']}", headers=user_headers).status_code == 200
