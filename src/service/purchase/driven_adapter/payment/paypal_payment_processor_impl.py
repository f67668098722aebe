"""
PayPal Orders v2 client

- OAuth2 client-credentials token per checkout (`POST /v1/oauth2/token`)
- Capture-intent order scoped to the purchase amount (`POST /v2/checkout/orders`)
- Approval url taken from the `rel=approve` link

Any transport error, timeout or non-2xx answer becomes PaymentProcessorUnavailableError.
"""

from typing import Any, Optional
from uuid import UUID

import httpx

from src.platform.config.core_setting import settings
from src.platform.logging.loguru_io import Logger
from src.platform.observability.tracing import inject_trace_context
from src.service.purchase.app.interface.i_payment_processor import IPaymentProcessor
from src.service.purchase.domain.purchase_errors import PaymentProcessorUnavailableError
from src.service.purchase.domain.value_object.checkout_session import CheckoutSession


class PaypalPaymentProcessorImpl(IPaymentProcessor):
    def __init__(
        self,
        *,
        base_url: Optional[str] = None,
        client_id: Optional[str] = None,
        client_secret: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = (base_url or settings.PAYPAL_BASE_URL).rstrip('/')
        self.client_id = client_id if client_id is not None else settings.PAYPAL_CLIENT_ID
        self.client_secret = (
            client_secret
            if client_secret is not None
            else settings.PAYPAL_CLIENT_SECRET.get_secret_value()
        )
        self.timeout = timeout or settings.PAYMENT_PROCESSOR_TIMEOUT_SECONDS
        self._transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url, timeout=self.timeout, transport=self._transport
        )

    @Logger.io
    async def open_checkout(
        self,
        *,
        purchase_id: UUID,
        amount: str,
        currency: str,
        description: str,
        return_url: str,
        cancel_url: str,
    ) -> CheckoutSession:
        order_request = {
            'intent': 'CAPTURE',
            'purchase_units': [
                {
                    'reference_id': str(purchase_id),
                    'custom_id': str(purchase_id),
                    'description': description,
                    'amount': {'currency_code': currency, 'value': amount},
                }
            ],
            'application_context': {
                'return_url': return_url,
                'cancel_url': cancel_url,
                'user_action': 'PAY_NOW',
                'shipping_preference': 'NO_SHIPPING',
            },
        }

        try:
            async with self._client() as client:
                access_token = await self._fetch_access_token(client)
                response = await client.post(
                    '/v2/checkout/orders',
                    json=order_request,
                    headers=inject_trace_context(
                        headers={
                            'Authorization': f'Bearer {access_token}',
                            'PayPal-Request-Id': str(purchase_id),  # Idempotent order creation
                        }
                    ),
                )
                response.raise_for_status()
                order: dict[str, Any] = response.json()
        except httpx.HTTPStatusError as e:
            raise PaymentProcessorUnavailableError(
                f'Payment processor refused order: HTTP {e.response.status_code}'
            ) from e
        except httpx.HTTPError as e:
            raise PaymentProcessorUnavailableError(
                f'Payment processor unreachable: {type(e).__name__}'
            ) from e

        order_id = order.get('id')
        approval_url = next(
            (link.get('href') for link in order.get('links', []) if link.get('rel') == 'approve'),
            None,
        )
        if not order_id or not approval_url:
            raise PaymentProcessorUnavailableError('Payment processor returned no approval link')

        return CheckoutSession(order_id=order_id, approval_url=approval_url)

    async def _fetch_access_token(self, client: httpx.AsyncClient) -> str:
        response = await client.post(
            '/v1/oauth2/token',
            data={'grant_type': 'client_credentials'},
            auth=(self.client_id, self.client_secret),
        )
        response.raise_for_status()
        token = response.json().get('access_token')
        if not token:
            raise PaymentProcessorUnavailableError('Payment processor returned no access token')
        return token
