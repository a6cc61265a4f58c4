import pytest

from conftest import auth_headers
from servicehub.services.notification_service import create_notification


@pytest.fixture
def inbox(db, customer, provider):
    """One admin notification, one for the customer and one for the provider"""
    return {
        "admin": create_notification(db, "status_pending", "New booking", "A booking is waiting"),
        "customer": create_notification(db, "status_updated", "Booking completed", "All done", customer.id),
        "provider": create_notification(db, "status_assigned", "New job", "You were assigned", provider.id),
    }


class TestCreateNotification:
    def test_unknown_type(self, db):
        with pytest.raises(ValueError):
            create_notification(db, "party", "Title", "Message")

    def test_admin_inbox_has_no_user(self, inbox):
        assert inbox["admin"].user_id is None
        assert inbox["admin"].read is False


class TestNotificationRoutes:
    def test_admin_sees_global_inbox_only(self, client, admin, inbox):
        listing = client.get("/api/notifications", headers=auth_headers(admin)).json()
        assert [n["_id"] for n in listing] == [inbox["admin"].id]

    def test_user_sees_own_and_global(self, client, customer, inbox):
        listing = client.get("/api/notifications", headers=auth_headers(customer)).json()
        assert {n["_id"] for n in listing} == {inbox["customer"].id, inbox["admin"].id}

    def test_unread_count_and_mark_read(self, client, customer, inbox, emitted):
        headers = auth_headers(customer)
        assert client.get("/api/notifications/unread-count", headers=headers).json() == {"count": 2}

        response = client.put(f"/api/notifications/{inbox['customer'].id}/read", headers=headers)

        assert response.json()["read"] is True
        assert client.get("/api/notifications/unread-count", headers=headers).json() == {"count": 1}
        assert {"event": "unreadCountUpdated", "data": {"count": 1}, "room": str(customer.id)} in emitted

    def test_admin_mark_read_goes_to_admin_room(self, client, admin, inbox, emitted):
        client.put(f"/api/notifications/{inbox['admin'].id}/read", headers=auth_headers(admin))
        assert {"event": "unreadCountUpdated", "data": {"count": 0}, "room": "admin_room"} in emitted

    def test_cannot_read_someone_elses(self, client, customer, inbox):
        response = client.put(f"/api/notifications/{inbox['provider'].id}/read", headers=auth_headers(customer))
        assert response.status_code == 404

    def test_requires_login(self, client):
        assert client.get("/api/notifications").status_code == 401
