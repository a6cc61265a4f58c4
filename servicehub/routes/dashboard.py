"""
Dashboard API Routes

Aggregates for the admin dashboard. Revenue is the sum of the prices of
completed bookings.
"""

from collections import defaultdict

from fastapi import APIRouter, Depends
from sqlalchemy import func
from sqlalchemy.orm import Session

from ..auth import require_admin
from ..database import get_db
from ..domain.bookings.repository import BookingRepository
from ..models import Booking, Feedback, Service, User
from ..shared.schemas import CountResponse

router = APIRouter(prefix="/api/dashboard", tags=["Dashboard"])


@router.get("/revenue")
async def total_revenue(_: User = Depends(require_admin), db: Session = Depends(get_db)):
    return {"total": BookingRepository.completed_revenue(db)}


@router.get("/services/count", response_model=CountResponse)
async def services_count(_: User = Depends(require_admin), db: Session = Depends(get_db)):
    return {"count": db.query(Service).count()}


@router.get("/feedbacks/count", response_model=CountResponse)
async def feedbacks_count(_: User = Depends(require_admin), db: Session = Depends(get_db)):
    return {"count": db.query(Feedback).count()}


@router.get("/services/category-stats")
@router.get("/services/category")
async def category_stats(_: User = Depends(require_admin), db: Session = Depends(get_db)):
    """Number of services per category"""
    rows = (
        db.query(Service.category, func.count(Service.id))
        .group_by(Service.category)
        .order_by(Service.category)
        .all()
    )
    return {category: count for category, count in rows}


@router.get("/bookings/monthly-revenue")
@router.get("/bookings/monthly")
async def monthly_revenue(_: User = Depends(require_admin), db: Session = Depends(get_db)):
    """Completed booking revenue keyed by creation month (YYYY-MM)"""
    rows = (
        db.query(Booking.created_at, Booking.total_price)
        .filter(Booking.status == "completed", Booking.created_at.isnot(None))
        .all()
    )
    totals = defaultdict(float)
    for created_at, price in rows:
        totals[created_at.strftime("%Y-%m")] += float(price or 0)
    return dict(sorted(totals.items()))
