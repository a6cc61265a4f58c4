"""
Support chat assistant backed by Gemini.

Answers are grounded on a knowledge base built from the service catalog,
recent approved reviews, the FAQ and the booking policies. The knowledge base is
cached in Redis and rebuilt after services, feedback or FAQs change.
"""

import logging
from typing import Optional

import google.generativeai as genai
from sqlalchemy.orm import Session

from ..cache import cached_knowledge_base
from ..config import GEMINI_API_KEY, GEMINI_MODEL
from ..models import FAQ, ChatMessage, Feedback, Service

logger = logging.getLogger(__name__)

EMPTY_REPLY = "Sorry, I couldn't generate a response at the moment."

POLICIES = (
    "=== COMPANY POLICIES ===\n"
    "- To book a service, the user must go to the 'Services' or 'Home' page, select a service, "
    "and click 'Book Now'.\n"
    "- If you don't know an answer from the information provided, politely say "
    "'I'm not sure about that, but I can notify an admin to help you.' and stop.\n"
    "- Do not make up information.\n"
)


class AssistantUnavailableError(Exception):
    """Raised when the model cannot be reached or is not configured"""


def build_knowledge_base(db: Session) -> str:
    return cached_knowledge_base(lambda: render_knowledge_base(db))


def render_knowledge_base(db: Session) -> str:
    lines = [
        "You are 'ServiceHub Assistant', a friendly and helpful AI for Home Service Provider. "
        "Use ONLY the following information to answer user questions.",
        "",
        "=== AVAILABLE SERVICES ===",
    ]
    for service in db.query(Service).order_by(Service.id).all():
        lines.append(
            f"- Name: {service.name}, Price: ₹{service.price}, Category: {service.category}, "
            f"Description: {service.description}"
        )

    recent = (
        db.query(Feedback)
        .filter(Feedback.approved.is_(True))
        .order_by(Feedback.created_at.desc(), Feedback.id.desc())
        .limit(3)
        .all()
    )
    if recent:
        lines += ["", "=== RECENT CUSTOMER FEEDBACK ==="]
        for fb in recent:
            name = fb.user.name if fb.user else "A customer"
            lines.append(f'- A customer named {name} gave a {fb.rating}-star review, saying: "{fb.comment}"')

    faqs = db.query(FAQ).order_by(FAQ.id).all()
    if faqs:
        lines += ["", "=== FREQUENTLY ASKED QUESTIONS ==="]
        for faq in faqs:
            lines.append(f"- Q: {faq.question} A: {faq.answer}")

    return "\n".join(lines) + "\n\n" + POLICIES


def build_prompt(knowledge_base: str, history: list[ChatMessage], text: str) -> str:
    transcript = "\n".join(
        f"{'User' if m.sender == 'user' else 'Assistant'}: {m.text}" for m in history
    )
    return (
        "You are ServiceHub Assistant, a helpful AI for a Home Service Provider platform.\n\n"
        "Use ONLY the information below to answer.\n\n"
        f"{knowledge_base}\n"
        f"Conversation so far:\n{transcript}\n\n"
        f"User question:\n{text}\n\n"
        "Rules:\n"
        "- Do not make up information\n"
        "- If unsure, say you will notify admin\n"
        "- Be clear and concise\n"
    )


class SupportAssistant:
    """Gemini client for the support chat"""

    def __init__(self, api_key: Optional[str] = GEMINI_API_KEY, model_name: str = GEMINI_MODEL):
        self.enabled = bool(api_key)
        self.model = None
        if self.enabled:
            genai.configure(api_key=api_key)
            self.model = genai.GenerativeModel(model_name)
            logger.info(f"🤖 Gemini assistant ready (model={model_name})")
        else:
            logger.warning("⚠️ GEMINI_API_KEY not set; chat will report the assistant as unavailable")

    async def reply(self, db: Session, history: list[ChatMessage], text: str) -> str:
        """
        Generate the assistant's answer to `text`.

        Raises:
            AssistantUnavailableError: when Gemini is not configured or the call fails
        """
        if not self.model:
            raise AssistantUnavailableError("Gemini API not configured")

        prompt = build_prompt(build_knowledge_base(db), history, text)
        try:
            response = await self.model.generate_content_async(prompt)
        except Exception as e:
            logger.error(f"❌ Gemini API error: {e}")
            raise AssistantUnavailableError(str(e)) from e

        try:
            answer = (response.text or "").strip()
        except ValueError:
            # .text raises when the candidate was blocked or empty
            answer = ""
        return answer or EMPTY_REPLY


assistant = SupportAssistant()
