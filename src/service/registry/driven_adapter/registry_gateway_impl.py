"""
Revocation Registry Gateway (httpx)

Talks to the registry node's HTTP gateway:

    GET  /wallet/balance               fee wallet pre-flight check
    POST /tickets/register             single token
    POST /tickets/register-batch       several tokens in one transaction
    POST /tickets/revoke               mark a token revoked
    GET  /tickets/{token_id}           token state (1 = valid, 2 = revoked)
    GET  /tx/{tx_ref}                  transaction receipt, polled until final

Request bodies are signed with HMAC-SHA256 over the exact bytes sent.
Every call runs under a per-call deadline; register/revoke additionally run
under a whole-cycle confirmation deadline. Nothing here raises to the caller.
"""

import hashlib
import hmac
import time
from decimal import Decimal, InvalidOperation
from typing import Any, Optional, Sequence

import anyio
import httpx
import orjson

from src.platform.concurrency.deadline import DeadlineExceededError, run_with_deadline
from src.platform.config.core_setting import settings
from src.platform.logging.loguru_io import Logger
from src.platform.metrics.ticketing_metrics import metrics
from src.platform.observability.tracing import inject_trace_context
from src.service.shared_kernel.app.interface.i_registry_gateway import IRegistryGateway
from src.service.shared_kernel.domain.value_object.registry_status import (
    RegistrationFailureCategory,
    RegistrationOutcome,
    RegistryTokenState,
    RegistryTokenStatus,
    TicketRegistration,
)


CONFIRMED_RECEIPT_STATES = frozenset({'confirmed', 'success', '0x1'})
FAILED_RECEIPT_STATES = frozenset({'failed', 'reverted', '0x0'})


class RegistryGatewayImpl(IRegistryGateway):
    def __init__(
        self,
        *,
        base_url: Optional[str] = None,
        contract_address: Optional[str] = None,
        signing_key: Optional[str] = None,
        call_timeout: Optional[float] = None,
        confirmation_timeout: Optional[float] = None,
        poll_interval: Optional[float] = None,
        min_fee_balance: Optional[Decimal] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = (base_url or settings.REGISTRY_RPC_URL).rstrip('/')
        self.contract_address = (
            contract_address
            if contract_address is not None
            else settings.REGISTRY_CONTRACT_ADDRESS
        )
        self.signing_key = (
            signing_key
            if signing_key is not None
            else settings.REGISTRY_SIGNING_KEY.get_secret_value()
        )
        self.call_timeout = call_timeout or settings.REGISTRY_CALL_TIMEOUT_SECONDS
        self.confirmation_timeout = (
            confirmation_timeout or settings.REGISTRY_CONFIRMATION_TIMEOUT_SECONDS
        )
        self.poll_interval = (
            poll_interval if poll_interval is not None
            else settings.REGISTRY_CONFIRMATION_POLL_SECONDS
        )
        self.min_fee_balance = (
            min_fee_balance if min_fee_balance is not None else settings.REGISTRY_MIN_FEE_BALANCE
        )
        self._transport = transport

    # ========== Transport ==========

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url, timeout=self.call_timeout, transport=self._transport
        )

    def _signed_headers(self, body: bytes) -> dict[str, str]:
        signature = hmac.new(self.signing_key.encode(), body, hashlib.sha256).hexdigest()
        return inject_trace_context(
            headers={
                'Content-Type': 'application/json',
                'X-Registry-Address': self.contract_address,
                'X-Signature': signature,
            }
        )

    async def _call(
        self,
        client: httpx.AsyncClient,
        method: str,
        path: str,
        *,
        body: Optional[dict[str, Any]] = None,
    ) -> dict[str, Any]:
        content = orjson.dumps(body) if body is not None else b''

        async def send() -> dict[str, Any]:
            response = await client.request(
                method, path, content=content or None, headers=self._signed_headers(content)
            )
            response.raise_for_status()
            data = response.json()
            if not isinstance(data, dict):
                raise ValueError(f'Unexpected registry response for {path}')
            return data

        return await run_with_deadline(
            send, seconds=self.call_timeout, operation_name=f'registry {method} {path}'
        )

    # ========== Register ==========

    @Logger.io
    async def register(self, *, tickets: Sequence[TicketRegistration]) -> RegistrationOutcome:
        if not tickets:
            return RegistrationOutcome.failed(
                reason='Nothing to register', category=RegistrationFailureCategory.REJECTED
            )

        started = time.perf_counter()
        outcome = await self._submit_and_confirm(
            operation_name='registry registration',
            submit=lambda client: self._submit_registration(client, tickets),
        )
        metrics.record_registration(
            result='success' if outcome.success else 'failure',
            category=outcome.category.value if outcome.category else 'none',
            duration=time.perf_counter() - started,
        )
        if outcome.success:
            Logger.base.info(
                f'⛓️ [Registry] Registered {len(tickets)} token(s), tx {outcome.tx_ref}'
            )
        else:
            Logger.base.warning(
                f'⛓️ [Registry] Registration of {len(tickets)} token(s) failed '
                f'({outcome.category}): {outcome.reason}'
            )
        return outcome

    async def _submit_registration(
        self, client: httpx.AsyncClient, tickets: Sequence[TicketRegistration]
    ) -> RegistrationOutcome | str:
        balance = await self._call(client, 'GET', '/wallet/balance')
        try:
            available = Decimal(str(balance.get('balance', '0')))
        except InvalidOperation:
            available = Decimal('0')
        if available < self.min_fee_balance:
            return RegistrationOutcome.failed(
                reason=f'Fee wallet balance {available} below {self.min_fee_balance}',
                category=RegistrationFailureCategory.INSUFFICIENT_FUNDS,
            )

        if len(tickets) == 1:
            ticket = tickets[0]
            path = '/tickets/register'
            body: dict[str, Any] = {
                'contract': self.contract_address,
                'token_id': ticket.token_id,
                'ticket_id': str(ticket.ticket_id),
                'bound_name': ticket.bound_name or '',
            }
        else:
            path = '/tickets/register-batch'
            body = {
                'contract': self.contract_address,
                'tickets': [
                    {
                        'token_id': ticket.token_id,
                        'ticket_id': str(ticket.ticket_id),
                        'bound_name': ticket.bound_name or '',
                    }
                    for ticket in tickets
                ],
            }

        submitted = await self._call(client, 'POST', path, body=body)
        return self._tx_ref_of(submitted)

    # ========== Revoke ==========

    @Logger.io
    async def revoke(self, *, token_id: str, reason: str) -> RegistrationOutcome:
        async def submit(client: httpx.AsyncClient) -> RegistrationOutcome | str:
            submitted = await self._call(
                client,
                'POST',
                '/tickets/revoke',
                body={'contract': self.contract_address, 'token_id': token_id, 'reason': reason},
            )
            return self._tx_ref_of(submitted)

        return await self._submit_and_confirm(
            operation_name='registry revocation', submit=submit
        )

    # ========== Query ==========

    @Logger.io
    async def query(self, *, token_id: str) -> RegistryTokenStatus:
        try:
            async with self._client() as client:
                data = await self._call(client, 'GET', f'/tickets/{token_id}')
        except DeadlineExceededError as e:
            return RegistryTokenStatus.unreachable(e.message)
        except httpx.HTTPStatusError as e:
            if e.response.status_code == 404:
                return RegistryTokenStatus(reachable=True, state=RegistryTokenState.UNKNOWN)
            return RegistryTokenStatus.unreachable(f'HTTP {e.response.status_code}')
        except httpx.HTTPError as e:
            return RegistryTokenStatus.unreachable(type(e).__name__)
        except ValueError:
            return RegistryTokenStatus.unreachable('Malformed registry response')

        return RegistryTokenStatus(
            reachable=True,
            state=RegistryTokenState.from_code(data.get('status')),
            bound_name=data.get('bound_name') or None,
        )

    # ========== Shared ==========

    @staticmethod
    def _tx_ref_of(submitted: dict[str, Any]) -> RegistrationOutcome | str:
        tx_ref = submitted.get('tx_ref')
        if not tx_ref:
            return RegistrationOutcome.failed(
                reason=str(submitted.get('error') or 'Registry returned no transaction reference'),
                category=RegistrationFailureCategory.REJECTED,
            )
        return str(tx_ref)

    async def _submit_and_confirm(self, *, operation_name: str, submit) -> RegistrationOutcome:
        async def cycle() -> RegistrationOutcome:
            async with self._client() as client:
                submitted = await submit(client)
                if isinstance(submitted, RegistrationOutcome):
                    return submitted
                return await self._await_confirmation(client, submitted)

        try:
            return await run_with_deadline(
                cycle, seconds=self.confirmation_timeout, operation_name=operation_name
            )
        except DeadlineExceededError as e:
            return RegistrationOutcome.failed(
                reason=e.message, category=RegistrationFailureCategory.TIMEOUT
            )
        except httpx.HTTPStatusError as e:
            return RegistrationOutcome.failed(
                reason=f'Registry rejected request: HTTP {e.response.status_code}',
                category=RegistrationFailureCategory.REJECTED,
            )
        except httpx.TimeoutException as e:
            return RegistrationOutcome.failed(
                reason=f'Registry timed out: {type(e).__name__}',
                category=RegistrationFailureCategory.TIMEOUT,
            )
        except httpx.HTTPError as e:
            return RegistrationOutcome.failed(
                reason=f'Registry unreachable: {type(e).__name__}',
                category=RegistrationFailureCategory.NETWORK,
            )
        except ValueError as e:
            return RegistrationOutcome.failed(
                reason=str(e) or 'Malformed registry response',
                category=RegistrationFailureCategory.REJECTED,
            )

    async def _await_confirmation(
        self, client: httpx.AsyncClient, tx_ref: str
    ) -> RegistrationOutcome:
        while True:
            receipt = await self._call(client, 'GET', f'/tx/{tx_ref}')
            state = str(receipt.get('status', '')).lower()
            if state in CONFIRMED_RECEIPT_STATES:
                return RegistrationOutcome.succeeded(tx_ref)
            if state in FAILED_RECEIPT_STATES:
                return RegistrationOutcome.failed(
                    reason=str(receipt.get('error') or f'Transaction {tx_ref} {state}'),
                    category=RegistrationFailureCategory.REJECTED,
                )
            await anyio.sleep(self.poll_interval)
