from conftest import PASSWORD, auth_headers, event_names, make_user
from servicehub.models import AdminMessage, User


class TestProfile:
    def test_get_profile(self, client, customer):
        response = client.get("/api/users/profile", headers=auth_headers(customer))
        assert response.status_code == 200
        body = response.json()
        assert body["_id"] == customer.id
        assert body["email"] == customer.email
        assert body["bookingLimit"] is None

    def test_provider_profile_includes_plan_limit(self, client, provider):
        response = client.get("/api/users/profile", headers=auth_headers(provider))
        assert response.status_code == 200
        body = response.json()
        assert body["subscriptionTier"] == "free"
        assert body["bookingLimit"] == 5

    def test_update_profile(self, client, provider, emitted):
        response = client.put(
            "/api/users/profile",
            headers=auth_headers(provider),
            json={
                "name": "Pat Plumber",
                "phone": "+44 20 7946 0000",
                "skills": "Plumbing, Electrical",
                "location": {"fullAddress": "Manchester", "lat": 53.48, "lng": -2.24},
            },
        )

        assert response.status_code == 200
        user = response.json()["user"]
        assert user["name"] == "Pat Plumber"
        assert user["phone"] == "+442079460000"
        assert user["skills"] == ["Plumbing", "Electrical"]
        assert user["location"]["fullAddress"] == "Manchester"
        assert event_names(emitted).count("userUpdated") == 2

    def test_update_profile_rejects_bad_availability(self, client, provider):
        response = client.put(
            "/api/users/profile",
            headers=auth_headers(provider),
            json={"name": "Pat", "availability": "sometimes"},
        )
        assert response.status_code == 422

    def test_change_password(self, client, customer):
        response = client.put(
            "/api/users/change-password",
            headers=auth_headers(customer),
            json={"currentPassword": PASSWORD, "newPassword": "another1"},
        )
        assert response.status_code == 200

        wrong = client.put(
            "/api/users/change-password",
            headers=auth_headers(customer),
            json={"currentPassword": PASSWORD, "newPassword": "another2"},
        )
        assert wrong.status_code == 400
        assert wrong.json()["detail"] == "Current password is incorrect"

    def test_delete_account(self, client, db, customer, emitted):
        customer_id = customer.id
        response = client.delete("/api/users/delete", headers=auth_headers(customer))
        assert response.status_code == 200
        assert db.query(User).filter(User.id == customer_id).first() is None
        assert "userDeleted" in event_names(emitted)

    def test_admin_cannot_self_delete_here(self, client, admin):
        response = client.delete("/api/users/delete", headers=auth_headers(admin))
        assert response.status_code == 403


class TestProviderToggles:
    def test_toggle_availability(self, client, provider):
        response = client.put(
            f"/api/users/profile/{provider.id}/toggle-availability", headers=auth_headers(provider)
        )
        assert response.status_code == 200
        assert response.json()["availability"] == "Unavailable"

    def test_toggle_status(self, client, provider):
        response = client.put(
            f"/api/users/profile/{provider.id}/toggle-status", headers=auth_headers(provider)
        )
        assert response.status_code == 200
        assert response.json()["status"] == "inactive"

    def test_cannot_toggle_someone_else(self, client, db, provider):
        other = make_user(db, "provider")
        response = client.put(
            f"/api/users/profile/{other.id}/toggle-status", headers=auth_headers(provider)
        )
        assert response.status_code == 403


class TestContactAdmin:
    def test_customer_reports_provider(self, client, db, customer, provider, emitted):
        response = client.post(
            "/api/users/contact-admin",
            headers=auth_headers(customer),
            json={"providerId": provider.id, "message": "They never showed up"},
        )

        assert response.status_code == 201
        body = response.json()
        assert body["status"] == "new"
        assert body["providerName"] == provider.name
        assert db.query(AdminMessage).count() == 1
        assert emitted[-1]["event"] == "newAdminMessage"
        assert emitted[-1]["room"] == "admin_room"

        listing = client.get("/api/users/messages", headers=auth_headers(customer))
        assert [m["_id"] for m in listing.json()] == [body["_id"]]

    def test_unknown_provider(self, client, customer):
        response = client.post(
            "/api/users/contact-admin",
            headers=auth_headers(customer),
            json={"providerId": 9999, "message": "hello"},
        )
        assert response.status_code == 404
