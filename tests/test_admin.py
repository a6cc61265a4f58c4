from datetime import datetime, timedelta

import pytest

from conftest import auth_headers, event_names, make_service, make_user
from servicehub.domain.admin import service as admin_service
from servicehub.domain.admin.repository import escape_like
from servicehub.models import ActivityLog, AdminMessage, Appointment, User
from servicehub.services.activity_log import record_activity


@pytest.fixture
def admin_message(db, customer, provider):
    message = AdminMessage(
        customer_id=customer.id,
        provider_id=provider.id,
        provider_name=provider.name,
        message="The provider was late",
        status="new",
    )
    db.add(message)
    db.commit()
    db.refresh(message)
    return message


@pytest.fixture
def sent_replies(monkeypatch):
    sent = []

    async def fake_send(to, customer_name, provider_name, original, reply):
        sent.append({"to": to, "reply": reply})

    monkeypatch.setattr(admin_service, "send_admin_reply_email", fake_send)
    return sent


class TestUserManagement:
    def test_list_users(self, client, admin, customer, provider):
        response = client.get("/api/admin/users", headers=auth_headers(admin))
        assert response.status_code == 200
        assert {u["_id"] for u in response.json()} == {admin.id, customer.id, provider.id}

    def test_change_role_is_logged(self, client, db, admin, customer, emitted):
        response = client.put(
            f"/api/admin/users/{customer.id}/role", headers=auth_headers(admin), json={"role": "provider"}
        )
        assert response.status_code == 200
        assert response.json()["role"] == "provider"
        log = db.query(ActivityLog).one()
        assert log.action == "updated role"
        assert "userUpdated" in event_names(emitted)

    def test_invalid_role(self, client, admin, customer):
        response = client.put(
            f"/api/admin/users/{customer.id}/role", headers=auth_headers(admin), json={"role": "king"}
        )
        assert response.status_code == 422

    def test_update_user_profile(self, client, admin, provider):
        response = client.put(
            f"/api/admin/users/{provider.id}",
            headers=auth_headers(admin),
            json={
                "name": "Pat P.",
                "profile": {
                    "skills": ["Cleaning", " Painting "],
                    "availability": "2030-01-01 09:00-17:00",
                    "location": {"fullAddress": "Leeds"},
                },
            },
        )
        assert response.status_code == 200
        body = response.json()
        assert body["name"] == "Pat P."
        assert body["skills"] == ["Cleaning", "Painting"]
        assert body["availability"] == "2030-01-01 09:00-17:00"
        assert body["location"]["fullAddress"] == "Leeds"

    def test_update_user_duplicate_email(self, client, admin, customer, provider):
        response = client.put(
            f"/api/admin/users/{provider.id}", headers=auth_headers(admin), json={"email": customer.email}
        )
        assert response.status_code == 400
        assert response.json()["detail"] == "Email already in use"

    def test_delete_user(self, client, db, admin, customer, emitted):
        customer_id = customer.id
        response = client.delete(f"/api/admin/users/{customer_id}", headers=auth_headers(admin))
        assert response.json() == {"message": "User removed"}
        assert db.query(User).filter(User.id == customer_id).first() is None
        assert {"event": "userDeleted", "data": {"_id": customer_id}, "room": None} in emitted

    def test_cannot_delete_self(self, client, admin):
        response = client.delete(f"/api/admin/users/{admin.id}", headers=auth_headers(admin))
        assert response.status_code == 400
        assert response.json()["detail"] == "You cannot delete your own account"

    def test_unknown_user(self, client, admin):
        assert client.delete("/api/admin/users/999", headers=auth_headers(admin)).status_code == 404

    def test_toggles(self, client, admin, provider):
        status = client.put(f"/api/admin/users/{provider.id}/toggle-status", headers=auth_headers(admin))
        availability = client.put(f"/api/admin/users/{provider.id}/toggle-availability", headers=auth_headers(admin))
        assert status.json() == {"status": "inactive"}
        assert availability.json() == {"availability": "Unavailable"}

    def test_settings(self, client, admin):
        response = client.put(
            "/api/admin/settings", headers=auth_headers(admin), json={"name": "Head Admin", "password": "newpass1"}
        )
        assert response.status_code == 200
        assert response.json()["name"] == "Head Admin"

        login = client.post("/api/auth/admin-login", json={"email": admin.email, "password": "newpass1"})
        assert login.status_code == 200

    def test_settings_short_password(self, client, admin):
        response = client.put("/api/admin/settings", headers=auth_headers(admin), json={"password": "abc"})
        assert response.status_code == 400


class TestActivityLogs:
    def test_list_newest_first(self, client, db, admin):
        first = record_activity(db, admin, "created", "first")
        second = record_activity(db, admin, "deleted", "second")
        response = client.get("/api/admin/logs", headers=auth_headers(admin))
        assert [log["_id"] for log in response.json()] == [second.id, first.id]
        assert response.json()[0]["userName"] == admin.name

    def test_system_entry(self, db):
        entry = record_activity(db, None, "cleanup", "nightly")
        assert entry.user_name == "System"
        assert entry.user_id is None

    def test_delete_log(self, client, db, admin, emitted):
        entry = record_activity(db, admin, "created", "x")
        response = client.delete(f"/api/admin/logs/{entry.id}", headers=auth_headers(admin))
        assert response.json() == {"message": "Log deleted"}
        assert db.query(ActivityLog).filter(ActivityLog.id == entry.id).first() is None
        assert "logDeleted" in event_names(emitted)

    def test_delete_missing_log(self, client, admin):
        response = client.delete("/api/admin/logs/999", headers=auth_headers(admin))
        assert response.status_code == 404
        assert response.json()["detail"] == "Log not found"

    def test_bulk_delete(self, client, db, admin):
        ids = [record_activity(db, admin, "created", str(i)).id for i in range(3)]
        response = client.post(
            "/api/admin/logs/bulk-delete", headers=auth_headers(admin), json={"logIds": ids[:2] + [999]}
        )
        assert response.json() == {"message": "2 log(s) deleted successfully", "deletedCount": 2}

    def test_bulk_delete_validation(self, client, admin):
        empty = client.post("/api/admin/logs/bulk-delete", headers=auth_headers(admin), json={"logIds": []})
        missing = client.post("/api/admin/logs/bulk-delete", headers=auth_headers(admin), json={"logIds": [999]})
        assert empty.json()["detail"] == "No log IDs provided for deletion"
        assert missing.status_code == 404


class TestProviders:
    def test_active_providers_by_location_and_skill(self, client, db, admin, provider):
        make_user(db, "provider", skills=["Plumbing"], location_full_address="North London")
        make_user(db, "provider", skills=["Cleaning"], location_full_address="Paris")
        make_user(db, "provider", skills=["Cleaning"], location_full_address="London", status="inactive")

        response = client.get(
            "/api/admin/providers/active",
            headers=auth_headers(admin),
            params={"location": "london", "services": "Cleaning"},
        )
        assert [p["_id"] for p in response.json()] == [provider.id]

    def test_customers_can_search_providers(self, client, customer, provider):
        response = client.get(
            "/api/admin/providers/active", headers=auth_headers(customer), params={"location": "London"}
        )
        assert response.status_code == 200

    def test_location_required(self, client, admin):
        response = client.get("/api/admin/providers/active", headers=auth_headers(admin))
        assert response.status_code == 400
        assert response.json()["detail"] == "Location is required"

    def test_location_is_literal(self, client, db, admin, provider):
        response = client.get(
            "/api/admin/providers/active", headers=auth_headers(admin), params={"location": "%"}
        )
        assert response.json() == []

    def test_escape_like(self):
        assert escape_like("50%_off\\") == "50\\%\\_off\\\\"

    def test_subscription_overview(self, client, admin, provider):
        response = client.get("/api/admin/providers/subscriptions", headers=auth_headers(admin))
        assert response.status_code == 200
        row = response.json()[0]
        assert row["_id"] == provider.id
        assert row["subscriptionTier"] == "free"
        assert row["bookingLimit"] == 5


class TestCustomerMessages:
    def test_list_and_mark_read(self, client, admin, admin_message):
        listing = client.get("/api/admin/messages", headers=auth_headers(admin)).json()
        assert [m["_id"] for m in listing] == [admin_message.id]

        response = client.put(f"/api/admin/messages/{admin_message.id}/read", headers=auth_headers(admin))
        assert response.json()["status"] == "read"

    def test_reply(self, client, db, admin, customer, admin_message, sent_replies, emitted):
        response = client.post(
            f"/api/admin/messages/{admin_message.id}/reply",
            headers=auth_headers(admin),
            json={"replyMessage": "We have spoken to them."},
        )

        assert response.json() == {"message": f"Reply sent to {customer.email} and saved."}
        db.refresh(admin_message)
        assert admin_message.status == "replied"
        assert admin_message.admin_reply == "We have spoken to them."
        assert admin_message.replied_at is not None
        assert sent_replies == [{"to": customer.email, "reply": "We have spoken to them."}]
        reply_event = next(e for e in emitted if e["event"] == "newAdminReply")
        assert reply_event["room"] == str(customer.id)

    def test_reply_survives_email_failure(self, client, admin, admin_message):
        response = client.post(
            f"/api/admin/messages/{admin_message.id}/reply",
            headers=auth_headers(admin),
            json={"replyMessage": "Noted"},
        )
        assert response.status_code == 200

    def test_reply_requires_text(self, client, admin, admin_message):
        response = client.post(
            f"/api/admin/messages/{admin_message.id}/reply", headers=auth_headers(admin), json={"replyMessage": " "}
        )
        assert response.status_code == 400
        assert response.json()["detail"] == "Reply message is required."

    def test_bulk_operations(self, client, db, admin, admin_message):
        read = client.post(
            "/api/admin/messages/bulk-read", headers=auth_headers(admin), json={"messageIds": [admin_message.id]}
        )
        assert read.json() == {"message": "Messages marked as read."}

        deleted = client.post(
            "/api/admin/messages/bulk-delete", headers=auth_headers(admin), json={"messageIds": [admin_message.id]}
        )
        assert deleted.json() == {"message": "Messages deleted."}
        assert db.query(AdminMessage).count() == 0

    def test_bulk_requires_ids(self, client, admin):
        response = client.post("/api/admin/messages/bulk-read", headers=auth_headers(admin), json={"messageIds": []})
        assert response.status_code == 400

    def test_delete_message(self, client, admin, admin_message):
        response = client.delete(f"/api/admin/messages/{admin_message.id}", headers=auth_headers(admin))
        assert response.json() == {"message": "Message removed"}
        assert client.delete(f"/api/admin/messages/{admin_message.id}", headers=auth_headers(admin)).status_code == 404


class TestScheduling:
    def test_set_and_clear_slots(self, client, db, admin, emitted):
        service = make_service(db, admin, available_slots={"2030-01-01": ["09:00"]})

        response = client.put(
            "/api/admin/services/slots",
            headers=auth_headers(admin),
            json={"serviceId": service.id, "date": "2030-01-02", "times": ["14:00", "10:00"]},
        )
        assert response.json()["availableSlots"] == {"2030-01-01": ["09:00"], "2030-01-02": ["10:00", "14:00"]}
        assert "serviceUpdated" in event_names(emitted)

        cleared = client.put(
            "/api/admin/services/slots",
            headers=auth_headers(admin),
            json={"serviceId": service.id, "date": "2030-01-01", "times": []},
        )
        assert cleared.json()["availableSlots"] == {"2030-01-02": ["10:00", "14:00"]}

    def test_slot_validation(self, client, db, admin):
        service = make_service(db, admin)
        bad_date = client.put(
            "/api/admin/services/slots",
            headers=auth_headers(admin),
            json={"serviceId": service.id, "date": "01/02/2030", "times": ["10:00"]},
        )
        unknown = client.put(
            "/api/admin/services/slots",
            headers=auth_headers(admin),
            json={"serviceId": 999, "date": "2030-01-02", "times": ["10:00"]},
        )
        assert bad_date.status_code == 422
        assert unknown.status_code == 404

    def test_appointments(self, client, db, admin, customer, provider, emitted):
        appointment = Appointment(
            provider_id=provider.id,
            customer_id=customer.id,
            scheduled_time=datetime.utcnow() + timedelta(days=1),
        )
        db.add(appointment)
        db.commit()

        listing = client.get("/api/admin/appointments", headers=auth_headers(admin)).json()
        assert [a["_id"] for a in listing] == [appointment.id]

        updated = client.put(
            f"/api/admin/appointments/{appointment.id}", headers=auth_headers(admin), json={"status": "confirmed"}
        )
        assert updated.json()["status"] == "confirmed"
        assert "appointmentUpdated" in event_names(emitted)

        bad = client.put(
            f"/api/admin/appointments/{appointment.id}", headers=auth_headers(admin), json={"status": "done"}
        )
        assert bad.status_code == 422

        deleted = client.delete(f"/api/admin/appointments/{appointment.id}", headers=auth_headers(admin))
        assert deleted.json() == {"message": "Appointment removed"}
        assert client.delete(f"/api/admin/appointments/{appointment.id}", headers=auth_headers(admin)).status_code == 404
