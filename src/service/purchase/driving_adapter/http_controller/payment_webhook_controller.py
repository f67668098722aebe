"""
Payment processor webhook

Always answers 200 for notifications it does not act on so the processor stops
redelivering them; guard failures (unknown intent, amount mismatch, already
failed) surface as 4xx through the platform exception handlers.
"""

import hmac
from typing import Any, Optional

import orjson
from fastapi import APIRouter, Depends, Header, Request
from opentelemetry import trace

from src.platform.config.core_setting import settings
from src.platform.exception.exceptions import AuthenticationError, DomainError
from src.platform.logging.loguru_io import Logger
from src.service.purchase.app.command.handle_payment_notification_use_case import (
    HandlePaymentNotificationUseCase,
)
from src.service.purchase.domain.value_object.payment_notification import PaymentNotification
from src.service.purchase.driving_adapter.http_controller.schema.purchase_schema import (
    PaymentWebhookResponse,
)


router = APIRouter()
tracer = trace.get_tracer(__name__)

WEBHOOK_SECRET_HEADER = 'X-Webhook-Secret'


def verify_webhook_secret(
    webhook_secret: Optional[str] = Header(None, alias=WEBHOOK_SECRET_HEADER),
) -> None:
    expected = settings.PAYMENT_WEBHOOK_SECRET.get_secret_value()
    if not expected:
        return
    if not webhook_secret or not hmac.compare_digest(webhook_secret, expected):
        raise AuthenticationError('Invalid webhook secret')


@router.post('/webhook', dependencies=[Depends(verify_webhook_secret)])
@Logger.io
async def payment_webhook(
    request: Request,
    use_case: HandlePaymentNotificationUseCase = Depends(HandlePaymentNotificationUseCase.depends),
) -> PaymentWebhookResponse:
    try:
        payload: Any = orjson.loads(await request.body())
    except orjson.JSONDecodeError:
        raise DomainError('Webhook body is not valid JSON')
    if not isinstance(payload, dict):
        raise DomainError('Webhook body must be a JSON object')

    notification = PaymentNotification.decode(payload)
    with tracer.start_as_current_span('controller.payment_webhook') as span:
        span.set_attribute('event_type', notification.event_type)
        span.set_attribute('notification.kind', notification.kind.value)

        result = await use_case.execute(notification=notification)

        return PaymentWebhookResponse(
            status=result.outcome.value,
            purchase_id=result.purchase_id,
            ticket_ids=result.ticket_ids,
        )
