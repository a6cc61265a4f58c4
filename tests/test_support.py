from conftest import auth_headers, event_names, make_service
from servicehub.models import FAQ, ContactMessage, NewsletterSubscriber


def inquiry(**overrides) -> dict:
    body = {"name": "Robin", "email": "Robin@Example.com", "message": "Do you clean ovens as well?"}
    body.update(overrides)
    return body


class TestContact:
    def test_submit(self, client, db, emitted):
        response = client.post("/api/contact", json=inquiry())

        assert response.status_code == 201
        assert response.json()["message"] == "Inquiry submitted successfully"
        assert response.json()["data"]["responded"] is False
        stored = db.query(ContactMessage).one()
        assert stored.email == "robin@example.com"
        event = next(e for e in emitted if e["event"] == "newContactMessage")
        assert event["room"] == "admin_room"

    def test_message_is_stored_as_written(self, client, db):
        client.post("/api/contact", json=inquiry(message="Tom's <b>sink</b> is\x07 leaking"))
        assert db.query(ContactMessage).one().message == "Tom's <b>sink</b> is leaking"

    def test_short_message(self, client):
        assert client.post("/api/contact", json=inquiry(message="hi")).status_code == 422

    def test_bad_email(self, client):
        assert client.post("/api/contact", json=inquiry(email="not-an-email")).status_code == 422

    def test_admin_inbox(self, client, admin, customer):
        message_id = client.post("/api/contact", json=inquiry()).json()["data"]["_id"]

        assert client.get("/api/contact", headers=auth_headers(customer)).status_code == 403
        listing = client.get("/api/contact", headers=auth_headers(admin)).json()
        assert [m["_id"] for m in listing] == [message_id]

        responded = client.put(f"/api/contact/{message_id}/responded", headers=auth_headers(admin))
        assert responded.json()["responded"] is True

        deleted = client.delete(f"/api/contact/{message_id}", headers=auth_headers(admin))
        assert deleted.json() == {"message": "Message deleted"}
        assert client.delete(f"/api/contact/{message_id}", headers=auth_headers(admin)).status_code == 404


class TestFAQs:
    def test_admin_manages_faqs(self, client, db, admin):
        service = make_service(db, admin)
        created = client.post(
            "/api/faqs",
            headers=auth_headers(admin),
            json={"question": " Are you insured? ", "answer": "Yes.", "serviceId": service.id},
        )
        assert created.status_code == 201
        faq_id = created.json()["_id"]
        assert created.json()["question"] == "Are you insured?"

        updated = client.put(f"/api/faqs/{faq_id}", headers=auth_headers(admin), json={"serviceId": None})
        assert updated.json()["serviceId"] is None
        assert updated.json()["answer"] == "Yes."

        assert client.delete(f"/api/faqs/{faq_id}", headers=auth_headers(admin)).json() == {"message": "FAQ deleted"}
        assert db.query(FAQ).count() == 0

    def test_unknown_service(self, client, admin):
        response = client.post(
            "/api/faqs", headers=auth_headers(admin), json={"question": "Q?", "answer": "A", "serviceId": 999}
        )
        assert response.status_code == 404

    def test_public_list_filters(self, client, db, admin):
        service = make_service(db, admin)
        db.add_all(
            [
                FAQ(question="Do you bring supplies?", answer="Always.", service_id=service.id),
                FAQ(question="How do I pay?", answer="Card or cash on delivery."),
            ]
        )
        db.commit()

        assert len(client.get("/api/faqs").json()) == 2
        scoped = client.get("/api/faqs", params={"serviceId": service.id}).json()
        assert [f["question"] for f in scoped] == ["Do you bring supplies?"]
        searched = client.get("/api/faqs", params={"search": "cash"}).json()
        assert [f["question"] for f in searched] == ["How do I pay?"]

    def test_customers_cannot_create(self, client, customer):
        response = client.post("/api/faqs", headers=auth_headers(customer), json={"question": "Q", "answer": "A"})
        assert response.status_code == 403


class TestNewsletter:
    def test_subscribe(self, client, db, emitted):
        response = client.post("/api/newsletter/subscribe", json={"email": "Fan@Example.com"})
        assert response.status_code == 201
        assert db.query(NewsletterSubscriber).one().email == "fan@example.com"
        assert "newNewsletterSubscription" in event_names(emitted)

    def test_already_subscribed(self, client):
        assert client.post("/api/newsletter", json={"email": "fan@example.com"}).status_code == 201
        again = client.post("/api/newsletter", json={"email": "FAN@example.com"})
        assert again.status_code == 400
        assert again.json()["detail"] == "This email is already subscribed."

    def test_email_required(self, client):
        assert client.post("/api/newsletter", json={"email": " "}).status_code == 422
