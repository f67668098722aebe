from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class PurchaseCreateRequest(BaseModel):
    event_id: int
    quantity: int
    bound_names: List[str] = Field(default_factory=list)

    model_config = {
        'json_schema_extra': {
            'example': {
                'event_id': 1,
                'quantity': 2,
                'bound_names': ['Alice Chen', 'Bob Lin'],
            }
        },
    }


class MobileDeepLinks(BaseModel):
    ios: str
    android: str
    fallback: str


class PurchaseCreateResponse(BaseModel):
    model_config = {
        'json_schema_extra': {
            'example': {
                'purchase_id': '01936d8f-5e73-7c4e-a9c5-123456789abc',  # UUID7
                'checkout_url': 'https://www.sandbox.paypal.com/checkoutnow?token=5O190127TN364715T',
                'mobile_deep_links': {
                    'ios': 'paypal://checkout?token=5O190127TN364715T',
                    'android': 'intent://checkout?token=5O190127TN364715T#Intent;scheme=paypal;package=com.paypal.android;end;',
                    'fallback': 'https://www.sandbox.paypal.com/checkoutnow?token=5O190127TN364715T',
                },
                'reservation_expires_at': '2026-01-10T10:45:00Z',
                'amount': '100.00',
                'currency': 'USD',
            }
        },
    }

    purchase_id: UUID
    checkout_url: str
    mobile_deep_links: MobileDeepLinks
    reservation_expires_at: datetime
    amount: Decimal
    currency: str


class PurchaseTicketResponse(BaseModel):
    ticket_id: UUID
    ticket_number: str
    sequence_number: int
    entry_type: str
    bound_name: Optional[str] = None
    status: str
    registration_status: str
    qr_payload: str


class RegistrationCounts(BaseModel):
    registered: int = 0
    pending: int = 0
    failed: int = 0


class PurchaseStatusResponse(BaseModel):
    purchase_id: UUID
    event_id: int
    status: str
    quantity: int
    amount: Decimal
    currency: str
    reservation_expires_at: datetime
    failure_reason: Optional[str] = None
    confirmed_at: Optional[datetime] = None
    tickets: List[PurchaseTicketResponse] = Field(default_factory=list)
    registration: RegistrationCounts = Field(default_factory=RegistrationCounts)


class PaymentWebhookResponse(BaseModel):
    status: str
    purchase_id: Optional[UUID] = None
    ticket_ids: List[UUID] = Field(default_factory=list)
