#!/usr/bin/env python3
"""
Seed a fresh database with an admin, sample services, the paid plans and FAQs.

Safe to run more than once: existing rows (matched by email / name / question)
are left alone.

Usage: python seed_data.py
"""
import logging
import os
import sys
from datetime import datetime, timedelta

from sqlalchemy.orm import Session

from servicehub.auth import hash_password
from servicehub.database import Base, SessionLocal, engine
from servicehub.models import FAQ, Plan, Service, User

logging.basicConfig(level=logging.INFO, format="%(message)s")
logger = logging.getLogger(__name__)

ADMIN_EMAIL = os.getenv("SEED_ADMIN_EMAIL", "admin@servicehub.app")
ADMIN_PASSWORD = os.getenv("SEED_ADMIN_PASSWORD", "admin123")

SLOT_TIMES = ["09:00", "11:00", "14:00", "16:00"]
SLOT_DAYS = 14

SERVICES = [
    {
        "name": "Deep Home Cleaning",
        "description": "Full-house deep cleaning including kitchen, bathrooms and floors.",
        "price": 2499.0,
        "category": "Cleaning",
        "offer": "10% off on first booking",
    },
    {
        "name": "Leak Repair",
        "description": "Diagnosis and repair of leaking taps, pipes and fittings.",
        "price": 499.0,
        "category": "Plumbing",
    },
    {
        "name": "Wiring Inspection",
        "description": "Safety inspection of household wiring, switches and the distribution board.",
        "price": 799.0,
        "category": "Electrical",
    },
    {
        "name": "Interior Wall Painting",
        "description": "Two-coat interior painting per room, materials included.",
        "price": 3999.0,
        "category": "Painting",
        "deal": "Free touch-up within 30 days",
    },
    {
        "name": "Furniture Assembly",
        "description": "Assembly and installation of flat-pack furniture.",
        "price": 699.0,
        "category": "Carpentry",
    },
    {
        "name": "Garden Maintenance",
        "description": "Lawn mowing, hedge trimming and general garden upkeep.",
        "price": 1199.0,
        "category": "Landscaping",
    },
]

PLANS = [
    {
        "name": "Pro",
        "price": 499.0,
        "currency": "inr",
        "features": ["Up to 20 bookings per month", "Priority listing", "Email support"],
        "booking_limit": 20,
        "product_id": os.getenv("DODO_PRO_PRODUCT_ID"),
    },
    {
        "name": "Elite",
        "price": 999.0,
        "currency": "inr",
        "features": ["Up to 50 bookings per month", "Top listing", "Priority support"],
        "booking_limit": 50,
        "product_id": os.getenv("DODO_ELITE_PRODUCT_ID"),
    },
]

FAQS = [
    (
        "How do I book a service?",
        "Open the Services page, pick a service and a free time slot, then click 'Book Now'.",
    ),
    (
        "Can I cancel a booking?",
        "Yes. Pending and assigned bookings can be cancelled from 'My Bookings'.",
    ),
    (
        "Which payment methods are accepted?",
        "You can pay cash on delivery or online by card.",
    ),
    (
        "How are providers assigned?",
        "An admin assigns an available provider whose skills and location match your booking.",
    ),
]


def upcoming_slots(now: datetime) -> dict:
    return {
        (now + timedelta(days=offset)).strftime("%Y-%m-%d"): list(SLOT_TIMES)
        for offset in range(1, SLOT_DAYS + 1)
    }


def seed_admin(db: Session) -> User:
    admin = db.query(User).filter(User.email == ADMIN_EMAIL).first()
    if admin:
        logger.info(f"⏭️  Admin {ADMIN_EMAIL} already exists")
        return admin
    admin = User(
        name="Admin",
        email=ADMIN_EMAIL,
        password_hash=hash_password(ADMIN_PASSWORD),
        role="admin",
    )
    db.add(admin)
    db.commit()
    db.refresh(admin)
    logger.info(f"✅ Created admin {ADMIN_EMAIL}")
    return admin


def seed_services(db: Session, admin: User) -> int:
    created = 0
    slots = upcoming_slots(datetime.utcnow())
    for data in SERVICES:
        if db.query(Service).filter(Service.name == data["name"]).first():
            continue
        db.add(Service(created_by=admin.id, available_slots=dict(slots), **data))
        created += 1
    db.commit()
    logger.info(f"✅ Created {created} service(s)")
    return created


def seed_plans(db: Session) -> int:
    created = 0
    for data in PLANS:
        if db.query(Plan).filter(Plan.name == data["name"]).first():
            continue
        db.add(Plan(**data))
        created += 1
    db.commit()
    logger.info(f"✅ Created {created} plan(s)")
    return created


def seed_faqs(db: Session) -> int:
    created = 0
    for question, answer in FAQS:
        if db.query(FAQ).filter(FAQ.question == question).first():
            continue
        db.add(FAQ(question=question, answer=answer))
        created += 1
    db.commit()
    logger.info(f"✅ Created {created} FAQ(s)")
    return created


def seed(db: Session) -> None:
    admin = seed_admin(db)
    seed_services(db, admin)
    seed_plans(db)
    seed_faqs(db)


if __name__ == "__main__":
    Base.metadata.create_all(bind=engine, checkfirst=True)
    db = SessionLocal()
    try:
        seed(db)
        logger.info("🌱 Seeding complete")
    except Exception as e:
        db.rollback()
        logger.error(f"❌ Seeding failed: {e}")
        sys.exit(1)
    finally:
        db.close()
