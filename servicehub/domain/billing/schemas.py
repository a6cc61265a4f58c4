"""Billing domain schemas - plans, revenue-share subscriptions and checkout"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from ...models import Plan, Subscription
from ...shared.schemas import ApiModel, UserRef

PLAN_NAMES = ("Pro", "Elite")
PLAN_TYPES = ("basic", "premium")
PAYMENT_STATUSES = ("pending", "completed", "failed")


class PlanCreate(BaseModel):
    name: str
    price: float = Field(ge=0)
    currency: str = "inr"
    features: list[str]
    bookingLimit: int = Field(ge=0)
    productId: Optional[str] = None

    @field_validator("features")
    @classmethod
    def validate_features(cls, v):
        cleaned = [f.strip() for f in v if f and f.strip()]
        if not cleaned:
            raise ValueError("At least one feature is required")
        return cleaned

    @field_validator("currency")
    @classmethod
    def normalize_currency(cls, v):
        return (v or "inr").strip().lower()


class PlanResponse(ApiModel):
    id: int = Field(alias="_id")
    name: str
    price: float
    currency: str
    features: list[str]
    bookingLimit: int
    productId: Optional[str] = None
    createdAt: Optional[datetime] = None

    @classmethod
    def from_plan(cls, plan: Plan) -> "PlanResponse":
        return cls(
            id=plan.id,
            name=plan.name,
            price=plan.price,
            currency=plan.currency,
            features=plan.features or [],
            bookingLimit=plan.booking_limit,
            productId=plan.product_id,
            createdAt=plan.created_at,
        )


class SubscriptionCreate(BaseModel):
    planType: str = "basic"
    subscriptionFee: float = Field(default=0.0, ge=0)
    revenuePercentage: Optional[float] = Field(default=None, ge=0, le=1)

    @field_validator("planType")
    @classmethod
    def validate_plan_type(cls, v):
        if v not in PLAN_TYPES:
            raise ValueError(f"planType must be one of: {', '.join(PLAN_TYPES)}")
        return v


class SubscriptionUpdate(BaseModel):
    planType: Optional[str] = None
    revenuePercentage: Optional[float] = Field(default=None, ge=0, le=1)
    subscriptionFee: Optional[float] = Field(default=None, ge=0)
    paymentStatus: Optional[str] = None
    endDate: Optional[datetime] = None
    paymentDetails: Optional[dict] = None

    @field_validator("planType")
    @classmethod
    def validate_plan_type(cls, v):
        if v is not None and v not in PLAN_TYPES:
            raise ValueError(f"planType must be one of: {', '.join(PLAN_TYPES)}")
        return v

    @field_validator("paymentStatus")
    @classmethod
    def validate_payment_status(cls, v):
        if v is not None and v not in PAYMENT_STATUSES:
            raise ValueError(f"paymentStatus must be one of: {', '.join(PAYMENT_STATUSES)}")
        return v


class SubscriptionResponse(ApiModel):
    id: int = Field(alias="_id")
    provider: Optional[UserRef] = None
    planType: str
    revenuePercentage: float
    startDate: datetime
    endDate: datetime
    totalRevenue: float
    subscriptionFee: float
    paymentStatus: str
    paymentDetails: dict = {}

    @classmethod
    def from_subscription(cls, sub: Subscription) -> "SubscriptionResponse":
        return cls(
            id=sub.id,
            provider=UserRef.from_user(sub.provider),
            planType=sub.plan_type,
            revenuePercentage=sub.revenue_percentage,
            startDate=sub.start_date,
            endDate=sub.end_date,
            totalRevenue=sub.total_revenue,
            subscriptionFee=sub.subscription_fee,
            paymentStatus=sub.payment_status,
            paymentDetails=sub.payment_details or {},
        )


class RevenueResponse(BaseModel):
    providerId: int
    totalRevenue: float
    revenuePercentage: float
    platformShare: float


class CheckoutRequest(BaseModel):
    planId: int


class CheckoutResponse(BaseModel):
    url: str
    sessionId: Optional[str] = None


class PortalResponse(BaseModel):
    url: str


class VerifySessionRequest(BaseModel):
    sessionId: str
    planId: Optional[int] = None
    subscriptionId: Optional[str] = None


class SubscriptionDetailsResponse(BaseModel):
    subscriptionTier: str
    subscriptionStatus: str
    currentBookingCount: int
    bookingLimit: int
    subscriptionStartDate: Optional[datetime] = None
    subscriptionStatusMessage: Optional[str] = None
