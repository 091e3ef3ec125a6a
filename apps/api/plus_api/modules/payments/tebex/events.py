"""
Tebex webhook envelope and the event variants this service models.

    {"id": str, "date": ISO-8601, "type": str, "subject": {...}}

`type` selects the subject shape. Types without a model here decode into
UnknownWebhook (raw type + raw subject map) instead of failing, so the
provider still sees a successful delivery.
"""
from __future__ import annotations

import enum
import json
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from plus_api.core.errors import ApiError

VALIDATION_TYPE = "validation.webhook"
PAYMENT_COMPLETED_TYPE = "payment.completed"


class WebhookParsingError(ApiError):
    status_code = 400
    error = "invalid_webhook_payload"


class PaymentStatusCode(int, enum.Enum):
    # https://docs.tebex.io/developers/webhooks/overview#useful-status-ids
    complete = 1
    refund = 2
    chargeback = 3
    declined = 18
    pending_checkout = 19
    refund_pending = 21


class _TebexModel(BaseModel):
    model_config = ConfigDict(extra="ignore")


class TebexCost(_TebexModel):
    amount: float
    currency: str
    base_currency: Optional[str] = None
    base_currency_price: Optional[float] = None


class TebexFees(_TebexModel):
    tax: Optional[TebexCost] = None
    gateway: Optional[TebexCost] = None


class TebexPaymentStatus(_TebexModel):
    id: int
    description: str = ""


class TebexDeclineReason(_TebexModel):
    code: str
    message: str = ""


class TebexUsername(_TebexModel):
    id: str
    username: str = ""


class TebexPaymentMethod(_TebexModel):
    name: str
    refundable: bool = False


class TebexCustomer(_TebexModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    ip: Optional[str] = None
    username: TebexUsername
    marketing_consent: bool = False
    country: Optional[str] = None
    postal_code: Optional[str] = None


class TebexProduct(_TebexModel):
    id: int
    name: str = ""
    product_type: Optional[str] = Field(default=None, alias="type")
    quantity: int = 1
    base_price: Optional[TebexCost] = None
    paid_price: Optional[TebexCost] = None
    expires_at: Optional[datetime] = None
    custom: Optional[Any] = None
    username: Optional[TebexUsername] = None


class TebexPaymentSubject(_TebexModel):
    transaction_id: str
    status: TebexPaymentStatus
    payment_sequence: Optional[str] = None
    created_at: Optional[datetime] = None
    price: Optional[TebexCost] = None
    price_paid: Optional[TebexCost] = None
    payment_method: Optional[TebexPaymentMethod] = None
    fees: Optional[TebexFees] = None
    customer: TebexCustomer
    products: List[TebexProduct] = Field(default_factory=list)
    coupons: List[Any] = Field(default_factory=list)
    gift_cards: List[Any] = Field(default_factory=list)
    recurring_payment_reference: Optional[str] = None
    decline_reason: Optional[TebexDeclineReason] = None

    @property
    def is_complete(self) -> bool:
        return self.status.id == PaymentStatusCode.complete


class _Envelope(_TebexModel):
    id: str
    date: datetime
    type: str
    subject: Any = None

    @field_validator("date", mode="before")
    @classmethod
    def _iso_date_only(cls, v: Any) -> Any:
        # lax datetime parsing would take a bare number as a unix timestamp
        if not isinstance(v, str) or v.strip().lstrip("-").replace(".", "", 1).isdigit():
            raise ValueError("date must be an ISO-8601 string")
        return v


@dataclass(frozen=True)
class WebhookValidation:
    """Endpoint liveness probe; answered with the envelope id, nothing else."""


@dataclass(frozen=True)
class PaymentCompleted:
    payment: TebexPaymentSubject


@dataclass(frozen=True)
class UnknownWebhook:
    unknown_type: str
    content: Dict[str, Any] = field(default_factory=dict)


WebhookType = Union[WebhookValidation, PaymentCompleted, UnknownWebhook]


@dataclass(frozen=True)
class WebhookPayload:
    id: str
    date: datetime
    webhook_type: WebhookType


def _classify(envelope: _Envelope) -> WebhookType:
    subject = envelope.subject
    if envelope.type == VALIDATION_TYPE:
        if subject is not None and not isinstance(subject, dict):
            raise WebhookParsingError("validation webhook subject must be an object")
        return WebhookValidation()
    if envelope.type == PAYMENT_COMPLETED_TYPE:
        return PaymentCompleted(payment=TebexPaymentSubject.model_validate(subject))
    if not isinstance(subject, dict):
        raise WebhookParsingError(f"subject of webhook type {envelope.type!r} must be an object")
    return UnknownWebhook(unknown_type=envelope.type, content=subject)


def parse_payload(body: Union[bytes, str]) -> WebhookPayload:
    """Decode an (already authenticated) body into a classified payload."""
    try:
        raw = json.loads(body)
        envelope = _Envelope.model_validate(raw)
        webhook_type = _classify(envelope)
    except (ValueError, ValidationError) as e:
        raise WebhookParsingError(f"parsing JSON webhook payload failed: {e}")
    return WebhookPayload(id=envelope.id, date=envelope.date, webhook_type=webhook_type)
