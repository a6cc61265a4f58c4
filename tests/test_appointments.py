from datetime import datetime, timedelta

import pytest

from conftest import auth_headers, make_service, make_user
from servicehub.models import Appointment


@pytest.fixture
def service(db, admin):
    return make_service(db, admin)


def request_appointment(client, customer, provider, service, when=None):
    when = when or datetime.utcnow() + timedelta(days=1)
    return client.post(
        "/api/appointments",
        headers=auth_headers(customer),
        json={"providerId": provider.id, "serviceId": service.id, "scheduledTime": when.isoformat()},
    )


class TestAppointments:
    def test_customer_requests(self, client, customer, provider, service, emitted):
        response = request_appointment(client, customer, provider, service)

        assert response.status_code == 201
        body = response.json()
        assert body["status"] == "pending"
        assert body["provider"]["_id"] == provider.id
        assert body["customer"]["_id"] == customer.id
        assert body["serviceName"] == service.name
        event = next(e for e in emitted if e["event"] == "newAppointment")
        assert event["room"] == str(provider.id)

    @pytest.mark.parametrize("field", ["providerId", "serviceId"])
    def test_unknown_provider_or_service(self, client, customer, provider, service, field):
        body = {
            "providerId": provider.id,
            "serviceId": service.id,
            "scheduledTime": (datetime.utcnow() + timedelta(days=1)).isoformat(),
        }
        body[field] = 999
        response = client.post("/api/appointments", headers=auth_headers(customer), json=body)
        assert response.status_code == 404

    def test_admin_is_not_a_provider(self, client, customer, admin, service):
        assert request_appointment(client, customer, admin, service).status_code == 404

    def test_only_customers_request(self, client, provider, service):
        assert request_appointment(client, provider, provider, service).status_code == 403

    def test_provider_lists_soonest_first(self, client, customer, provider, service):
        later = request_appointment(client, customer, provider, service, datetime.utcnow() + timedelta(days=5))
        sooner = request_appointment(client, customer, provider, service, datetime.utcnow() + timedelta(days=1))

        listing = client.get("/api/appointments", headers=auth_headers(provider)).json()

        assert [a["_id"] for a in listing] == [sooner.json()["_id"], later.json()["_id"]]

    def test_provider_updates_status(self, client, customer, provider, service, emitted):
        appointment_id = request_appointment(client, customer, provider, service).json()["_id"]

        response = client.put(
            "/api/appointments/status",
            headers=auth_headers(provider),
            json={"appointmentId": appointment_id, "status": "confirmed"},
        )

        assert response.json()["status"] == "confirmed"
        event = next(e for e in emitted if e["event"] == "appointmentUpdated")
        assert event["room"] == str(customer.id)

    def test_invalid_status(self, client, customer, provider, service):
        appointment_id = request_appointment(client, customer, provider, service).json()["_id"]
        response = client.put(
            "/api/appointments/status",
            headers=auth_headers(provider),
            json={"appointmentId": appointment_id, "status": "maybe"},
        )
        assert response.status_code == 422

    def test_other_provider_cannot_update(self, client, db, customer, provider, service):
        appointment_id = request_appointment(client, customer, provider, service).json()["_id"]
        other = make_user(db, "provider")
        response = client.put(
            "/api/appointments/status",
            headers=auth_headers(other),
            json={"appointmentId": appointment_id, "status": "confirmed"},
        )
        assert response.status_code == 403

    def test_parties_can_view(self, client, db, customer, provider, service):
        appointment_id = request_appointment(client, customer, provider, service).json()["_id"]

        assert client.get(f"/api/appointments/{appointment_id}", headers=auth_headers(customer)).status_code == 200
        assert client.get(f"/api/appointments/{appointment_id}", headers=auth_headers(provider)).status_code == 200
        stranger = make_user(db, "customer")
        assert client.get(f"/api/appointments/{appointment_id}", headers=auth_headers(stranger)).status_code == 403

    def test_delete_notifies_other_party(self, client, db, customer, provider, service, emitted):
        appointment_id = request_appointment(client, customer, provider, service).json()["_id"]

        response = client.delete(f"/api/appointments/{appointment_id}", headers=auth_headers(customer))

        assert response.json() == {"message": "Appointment removed"}
        assert db.query(Appointment).count() == 0
        assert {"event": "appointmentDeleted", "data": {"_id": appointment_id}, "room": str(provider.id)} in emitted
