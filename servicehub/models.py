import uuid

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from .database import Base

SERVICE_CATEGORIES = [
    "Home Maintenance",
    "Plumbing",
    "Cleaning",
    "Electrical",
    "Painting",
    "Carpentry",
    "Landscaping",
]

USER_ROLES = ["customer", "provider", "admin"]

APPOINTMENT_STATUSES = ["pending", "confirmed", "completed", "cancelled"]


def generate_tracking_id():
    """Generate a unique public tracking ID for a booking"""
    return str(uuid.uuid4())


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    email = Column(String(255), unique=True, index=True, nullable=False)
    phone = Column(String(50), nullable=True)
    password_hash = Column(String(255), nullable=False)
    role = Column(String(20), default="customer", nullable=False)  # customer, provider, admin
    status = Column(String(20), default="active", nullable=False)  # active, inactive
    image = Column(String(500), default="/images/default-user.png")
    # Provider profile
    skills = Column(JSON, default=list, nullable=True)  # Service categories the provider covers
    availability = Column(
        String(100), default="Unavailable", nullable=True
    )  # Unavailable, Available, or "YYYY-MM-DD HH:MM-HH:MM"
    location_full_address = Column(String(500), nullable=True)
    location_details = Column(JSON, default=dict, nullable=True)  # street, city, state, ...
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)
    # Provider subscription (paid tier controls booking limit)
    subscription_tier = Column(String(20), default="free", nullable=False)  # free, pro, elite
    subscription_status = Column(
        String(20), default="inactive", nullable=False
    )  # active, inactive, canceled, past_due
    subscription_start_date = Column(DateTime, nullable=True)
    current_booking_count = Column(Integer, default=0, nullable=False)
    booking_reset_date = Column(DateTime, nullable=True)  # 30 days from subscription start
    dodo_customer_id = Column(String(255), nullable=True)
    dodo_subscription_id = Column(String(255), nullable=True)
    # One-time password for admin login and password reset
    otp_hash = Column(String(255), nullable=True)
    otp_expires_at = Column(DateTime, nullable=True)
    otp_attempts = Column(Integer, default=0, nullable=False)
    otp_purpose = Column(String(20), nullable=True)  # admin_login, password_reset
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    conversations = relationship(
        "Conversation", back_populates="user", cascade="all, delete-orphan"
    )
    notifications = relationship(
        "Notification", back_populates="user", cascade="all, delete-orphan"
    )


class Service(Base):
    __tablename__ = "services"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=False)
    price = Column(Float, nullable=False)
    category = Column(String(50), nullable=False)
    created_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    image = Column(String(500), nullable=True)
    additional_images = Column(JSON, default=list, nullable=True)
    offer = Column(String(255), nullable=True)
    deal = Column(String(255), nullable=True)
    is_available = Column(Boolean, default=True, nullable=False)
    available_slots = Column(JSON, default=dict, nullable=False)  # {"YYYY-MM-DD": ["HH:MM", ...]}
    average_rating = Column(Float, default=0.0, nullable=False)
    feedback_count = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    creator = relationship("User")
    bookings = relationship("Booking", back_populates="service")


class Booking(Base):
    __tablename__ = "bookings"

    id = Column(Integer, primary_key=True, index=True)
    tracking_id = Column(String(36), unique=True, index=True, default=generate_tracking_id)
    customer_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    provider_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    service_id = Column(Integer, ForeignKey("services.id", ondelete="SET NULL"), nullable=True)
    # Snapshot of the customer's contact details at booking time
    customer_name = Column(String(255), nullable=True)
    customer_email = Column(String(255), nullable=True)
    customer_phone = Column(String(50), nullable=True)
    scheduled_time = Column(DateTime, nullable=False)
    location = Column(String(500), nullable=False)
    latitude = Column(Float, nullable=True)
    longitude = Column(Float, nullable=True)
    status = Column(
        String(20), default="pending", nullable=False
    )  # pending, assigned, in-progress, completed, cancelled, rejected
    total_price = Column(Float, default=0.0, nullable=False)
    payment_method = Column(String(20), default="COD", nullable=False)  # COD, Stripe
    payment_status = Column(String(20), default="pending", nullable=False)  # pending, completed, failed
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    customer = relationship("User", foreign_keys=[customer_id])
    provider = relationship("User", foreign_keys=[provider_id])
    service = relationship("Service", back_populates="bookings")
    feedback = relationship("Feedback", back_populates="booking", uselist=False)


class Feedback(Base):
    __tablename__ = "feedback"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    booking_id = Column(
        Integer, ForeignKey("bookings.id", ondelete="CASCADE"), unique=True, nullable=True
    )
    provider_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    comment = Column(Text, nullable=False)
    rating = Column(Integer, nullable=False)  # 1-5
    approved = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    user = relationship("User", foreign_keys=[user_id])
    provider = relationship("User", foreign_keys=[provider_id])
    booking = relationship("Booking", back_populates="feedback")


class Plan(Base):
    __tablename__ = "plans"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(20), unique=True, nullable=False)  # Pro, Elite
    price = Column(Float, nullable=False)
    currency = Column(String(10), default="inr", nullable=False)
    features = Column(JSON, default=list, nullable=False)
    booking_limit = Column(Integer, nullable=False)
    product_id = Column(String(255), nullable=True)  # Dodo product for checkout
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())


class Subscription(Base):
    """Revenue-share agreement between the platform and a provider"""

    __tablename__ = "subscriptions"

    id = Column(Integer, primary_key=True, index=True)
    provider_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    plan_type = Column(String(20), default="basic", nullable=False)  # basic, premium
    revenue_percentage = Column(Float, default=0.1, nullable=False)
    start_date = Column(DateTime, nullable=False)
    end_date = Column(DateTime, nullable=False)
    total_revenue = Column(Float, default=0.0, nullable=False)
    subscription_fee = Column(Float, default=0.0, nullable=False)
    payment_status = Column(String(20), default="pending", nullable=False)  # pending, completed, failed
    payment_details = Column(JSON, default=dict, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    provider = relationship("User")


class Conversation(Base):
    __tablename__ = "conversations"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    status = Column(String(20), default="open", nullable=False)  # open, closed, needs_attention
    admin_active = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    user = relationship("User", back_populates="conversations")
    messages = relationship(
        "ChatMessage",
        back_populates="conversation",
        cascade="all, delete-orphan",
        order_by="ChatMessage.id",
    )


class ChatMessage(Base):
    __tablename__ = "chat_messages"

    id = Column(Integer, primary_key=True, index=True)
    conversation_id = Column(
        Integer, ForeignKey("conversations.id", ondelete="CASCADE"), nullable=False, index=True
    )
    sender = Column(String(10), nullable=False)  # user, model
    text = Column(Text, nullable=False)
    created_at = Column(DateTime, server_default=func.now())

    conversation = relationship("Conversation", back_populates="messages")


class AdminMessage(Base):
    """Customer message to the admin about a provider"""

    __tablename__ = "admin_messages"

    id = Column(Integer, primary_key=True, index=True)
    customer_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    provider_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    provider_name = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    status = Column(String(20), default="new", nullable=False)  # new, read, replied, archived
    admin_reply = Column(Text, nullable=True)
    replied_at = Column(DateTime, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    customer = relationship("User", foreign_keys=[customer_id])
    provider = relationship("User", foreign_keys=[provider_id])


class ContactMessage(Base):
    __tablename__ = "contact_messages"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), nullable=False)
    email = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    responded = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, server_default=func.now())


class FAQ(Base):
    __tablename__ = "faqs"

    id = Column(Integer, primary_key=True, index=True)
    question = Column(Text, nullable=False)
    answer = Column(Text, nullable=False)
    service_id = Column(Integer, ForeignKey("services.id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())


class NewsletterSubscriber(Base):
    __tablename__ = "newsletter_subscribers"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, index=True, nullable=False)
    subscribed_at = Column(DateTime, server_default=func.now())


class ActivityLog(Base):
    __tablename__ = "activity_logs"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, nullable=True)  # Kept after the acting user is deleted
    user_name = Column(String(255), nullable=True)
    action = Column(String(255), nullable=False)
    details = Column(Text, nullable=True)
    timestamp = Column(DateTime, server_default=func.now())


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=True
    )  # None means admin/global
    type = Column(String(30), nullable=False)  # status_pending, status_assigned, status_updated
    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)
    read = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, server_default=func.now())

    user = relationship("User", back_populates="notifications")


class Appointment(Base):
    __tablename__ = "appointments"

    id = Column(Integer, primary_key=True, index=True)
    provider_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    customer_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    service_id = Column(Integer, ForeignKey("services.id", ondelete="SET NULL"), nullable=True)
    scheduled_time = Column(DateTime, nullable=False)
    status = Column(
        String(20), default="pending", nullable=False
    )  # pending, confirmed, completed, cancelled
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, server_default=func.now(), onupdate=func.now())

    provider = relationship("User", foreign_keys=[provider_id])
    customer = relationship("User", foreign_keys=[customer_id])
    service = relationship("Service")
