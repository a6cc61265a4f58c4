import pytest

from conftest import auth_headers, event_names, make_service, make_user
from servicehub.domain.chat.service import AI_UNAVAILABLE_REPLY, HANDOFF_REPLY
from servicehub.models import FAQ, ChatMessage, Conversation
from servicehub.services import assistant as assistant_module
from servicehub.services.assistant import AssistantUnavailableError, build_knowledge_base


class FakeAssistant:
    def __init__(self, answer="We offer deep cleaning.", error=None):
        self.answer = answer
        self.error = error
        self.calls = []

    async def reply(self, db, history, text):
        self.calls.append({"history": [m.text for m in history], "text": text})
        if self.error:
            raise self.error
        return self.answer


@pytest.fixture
def fake_assistant(monkeypatch):
    fake = FakeAssistant()
    monkeypatch.setattr(assistant_module, "assistant", fake)
    return fake


def open_conversation(client, user) -> int:
    return client.get("/api/chat", headers=auth_headers(user)).json()["conversationId"]


def send(client, user, conversation_id, text, path="/api/chat"):
    return client.post(path, headers=auth_headers(user), json={"conversationId": conversation_id, "text": text})


class TestCustomerChat:
    def test_conversation_is_reused(self, client, customer):
        first = client.get("/api/chat", headers=auth_headers(customer)).json()
        second = client.get("/api/chat", headers=auth_headers(customer)).json()
        assert first["conversationId"] == second["conversationId"]
        assert first["status"] == "open"
        assert first["messages"] == []

    def test_assistant_answers(self, client, db, customer, fake_assistant, emitted):
        conversation_id = open_conversation(client, customer)

        response = send(client, customer, conversation_id, "What do you offer?")

        assert response.status_code == 201
        assert response.json()["sender"] == "model"
        assert response.json()["text"] == "We offer deep cleaning."
        assert fake_assistant.calls == [{"history": [], "text": "What do you offer?"}]
        assert db.query(ChatMessage).count() == 2
        assert "newUserMessage" in event_names(emitted)

    def test_history_is_passed_along(self, client, customer, fake_assistant):
        conversation_id = open_conversation(client, customer)
        send(client, customer, conversation_id, "Hi")
        send(client, customer, conversation_id, "Prices?", path="/api/chat/send")
        assert fake_assistant.calls[-1]["history"] == ["Hi", "We offer deep cleaning."]

    def test_handoff_phrase(self, client, db, customer, fake_assistant, emitted):
        conversation_id = open_conversation(client, customer)

        response = send(client, customer, conversation_id, "I want to TALK TO A HUMAN please")

        assert response.json()["text"] == HANDOFF_REPLY
        assert fake_assistant.calls == []
        conversation = db.get(Conversation, conversation_id)
        db.refresh(conversation)
        assert conversation.admin_active is True
        assert conversation.status == "needs_attention"
        assert "chatNeedsAttention" in event_names(emitted)

    def test_admin_active_conversation_skips_assistant(self, client, db, customer, fake_assistant):
        conversation_id = open_conversation(client, customer)
        send(client, customer, conversation_id, "speak to an agent")
        send(client, customer, conversation_id, "still there?")
        assert fake_assistant.calls == []

    def test_assistant_failure(self, client, customer, fake_assistant):
        fake_assistant.error = AssistantUnavailableError("quota exceeded")
        conversation_id = open_conversation(client, customer)

        response = send(client, customer, conversation_id, "Hello")

        assert response.status_code == 500
        assert response.json()["text"] == AI_UNAVAILABLE_REPLY

    def test_unconfigured_assistant(self, client, customer):
        conversation_id = open_conversation(client, customer)
        response = send(client, customer, conversation_id, "Hello")
        assert response.status_code == 500

    def test_someone_elses_conversation(self, client, db, customer, fake_assistant):
        conversation_id = open_conversation(client, customer)
        stranger = make_user(db, "customer")
        assert send(client, stranger, conversation_id, "hi").status_code == 403

    def test_blank_text(self, client, customer):
        conversation_id = open_conversation(client, customer)
        assert send(client, customer, conversation_id, "   ").status_code == 422

    def test_clear(self, client, db, customer, fake_assistant):
        conversation_id = open_conversation(client, customer)
        send(client, customer, conversation_id, "Hi")

        response = client.delete(f"/api/chat/clear/{conversation_id}", headers=auth_headers(customer))

        assert response.status_code == 200
        assert db.query(ChatMessage).count() == 0


class TestAdminChat:
    def test_list_and_transcript(self, client, admin, customer, fake_assistant):
        conversation_id = open_conversation(client, customer)
        send(client, customer, conversation_id, "Hi")

        for path in ("/api/chat/conversations", "/api/chat/admin/all"):
            listing = client.get(path, headers=auth_headers(admin)).json()
            assert listing[0]["_id"] == conversation_id
            assert listing[0]["userId"]["email"] == customer.email
            assert listing[0]["lastMessage"]["sender"] == "model"

        transcript = client.get(f"/api/chat/admin/{conversation_id}/messages", headers=auth_headers(admin)).json()
        assert [m["sender"] for m in transcript] == ["user", "model"]

    def test_admin_reply_takes_over(self, client, db, admin, customer, emitted):
        conversation_id = open_conversation(client, customer)

        response = send(client, admin, conversation_id, "Hello, how can I help?", path="/api/chat/admin/send")

        assert response.status_code == 201
        assert response.json()["text"] == "Admin: Hello, how can I help?"
        conversation = db.get(Conversation, conversation_id)
        db.refresh(conversation)
        assert conversation.admin_active is True
        assert "adminMessageSent" in event_names(emitted)

    def test_close_and_reopen(self, client, db, admin, customer, fake_assistant):
        conversation_id = open_conversation(client, customer)
        body = {"conversationId": conversation_id}

        assert client.post("/api/chat/admin/close", headers=auth_headers(admin), json=body).status_code == 200
        conversation = db.get(Conversation, conversation_id)
        db.refresh(conversation)
        assert conversation.status == "closed"
        assert conversation.admin_active is False

        client.post("/api/chat/admin/reopen", headers=auth_headers(admin), json=body)
        db.refresh(conversation)
        assert conversation.status == "open"
        assert conversation.admin_active is True

        # Customer messages now go to the admin, not the assistant
        response = send(client, customer, conversation_id, "Are you still there?")
        assert response.json()["text"] == HANDOFF_REPLY
        assert fake_assistant.calls == []

    def test_delete(self, client, db, admin, customer):
        conversation_id = open_conversation(client, customer)
        response = client.post(
            "/api/chat/admin/delete", headers=auth_headers(admin), json={"conversationId": conversation_id}
        )
        assert response.json() == {"message": "Conversation deleted successfully."}
        assert db.query(Conversation).count() == 0

    def test_unknown_conversation(self, client, admin):
        response = client.post("/api/chat/admin/close", headers=auth_headers(admin), json={"conversationId": 999})
        assert response.status_code == 404

    def test_customers_cannot_list(self, client, customer):
        assert client.get("/api/chat/conversations", headers=auth_headers(customer)).status_code == 403


class TestKnowledgeBase:
    def test_includes_services_and_faqs(self, db, admin):
        make_service(db, admin, name="Gutter Cleaning", price=80.0)
        db.add(FAQ(question="Do you work weekends?", answer="Yes, Saturdays."))
        db.commit()

        knowledge_base = build_knowledge_base(db)

        assert "Gutter Cleaning" in knowledge_base
        assert "=== FREQUENTLY ASKED QUESTIONS ===" in knowledge_base
        assert "- Q: Do you work weekends? A: Yes, Saturdays." in knowledge_base
