"""
Unit tests for ValidateTicketUseCase

Test Focus:
1. Malformed and forged codes are refused before any registry call
2. A hanging or failing registry never blocks the scan
3. Admitting a ticket flips it to used; losing that race refuses entry
4. Infrastructure failures become verdict `error`, every attempt is audit-logged
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal
from unittest.mock import AsyncMock

import anyio
import pytest
from uuid_utils.compat import uuid7

from src.service.gate.app.command.validate_ticket_use_case import ValidateTicketUseCase
from src.service.gate.app.dto.validation_dto import ScannerContext
from src.service.gate.domain.validation_decision import IdentityMatch, Verdict
from src.service.gate.domain.value_object.gate_ticket_view import GateTicketView
from src.service.purchase.domain.entity.purchase_intent_entity import (
    PurchaseIntent,
    PurchaseIntentStatus,
)
from src.service.purchase.domain.ticket_issuer import issue_ticket_batch
from src.service.shared_kernel.domain.entity.ticket_entity import Ticket
from src.service.shared_kernel.domain.enum.ticket_status import RegistrationStatus
from src.service.shared_kernel.domain.value_object.qr_payload import QrPayload
from src.service.shared_kernel.domain.value_object.registry_status import (
    RegistryTokenState,
    RegistryTokenStatus,
)


SCANNER = ScannerContext(admin_id=1, location='Gate A', device_id='scanner-07')


def _issued_ticket(bound_name: str = 'Alice Chen') -> Ticket:
    now = datetime.now(timezone.utc)
    intent = PurchaseIntent(
        id=uuid7(),
        user_id=7,
        event_id=1,
        reservation_id=uuid7(),
        quantity=1,
        amount=Decimal('50.00'),
        currency='USD',
        expires_at=now + timedelta(minutes=15),
        status=PurchaseIntentStatus.CONFIRMED,
        metadata={'bound_names': [bound_name]},
    )
    [ticket] = issue_ticket_batch(intent=intent, issued_at=now)
    ticket.registration_status = RegistrationStatus.MINTED
    return ticket


def _view(ticket: Ticket) -> GateTicketView:
    return GateTicketView(
        ticket=ticket,
        event_name='Summer Arena Night',
        event_date=datetime.now(timezone.utc) - timedelta(minutes=30),
        holder_name='Alice Chen',
    )


class TestValidateTicketUseCase:
    @pytest.fixture
    def ticket(self) -> Ticket:
        return _issued_ticket()

    @pytest.fixture
    def gate_ticket_repo(self, ticket: Ticket) -> AsyncMock:
        repo = AsyncMock()
        repo.get_for_validation.return_value = _view(ticket)
        repo.mark_used.return_value = True
        return repo

    @pytest.fixture
    def validation_attempt_repo(self) -> AsyncMock:
        return AsyncMock()

    @pytest.fixture
    def registry_gateway(self) -> AsyncMock:
        gateway = AsyncMock()
        gateway.query.return_value = RegistryTokenStatus(
            reachable=True, state=RegistryTokenState.VALID, bound_name='Alice Chen'
        )
        return gateway

    @pytest.fixture
    def use_case(
        self, gate_ticket_repo, validation_attempt_repo, registry_gateway
    ) -> ValidateTicketUseCase:
        return ValidateTicketUseCase(
            gate_ticket_repo=gate_ticket_repo,
            validation_attempt_repo=validation_attempt_repo,
            registry_gateway=registry_gateway,
            registry_timeout=0.05,
        )

    # ==================== Admission ====================

    @pytest.mark.unit
    async def test_valid_ticket_is_admitted_and_marked_used(
        self, use_case, ticket, gate_ticket_repo, registry_gateway
    ) -> None:
        report = await use_case.execute(qr_data=ticket.qr_payload, scanner=SCANNER)

        assert report.verdict == Verdict.VALID
        assert report.ticket_info.ticket_number == ticket.ticket_number
        assert report.ticket_info.entry_type == 'Single Entry'
        assert report.registry.checked is True
        assert report.registry.state == 'valid'
        assert report.registry.identity_match == IdentityMatch.VERIFIED
        assert report.ui_feedback.color == 'green'
        registry_gateway.query.assert_awaited_once_with(token_id=ticket.registry_token_id)
        assert gate_ticket_repo.mark_used.await_args.kwargs['ticket_id'] == ticket.id

    @pytest.mark.unit
    async def test_legacy_code_is_accepted(self, use_case, ticket) -> None:
        legacy = QrPayload.decode(ticket.qr_payload)
        legacy_code = QrPayload(
            ticket_id=legacy.ticket_id,
            validation_hash=legacy.validation_hash,
            registry_token_id=legacy.registry_token_id,
            bound_name=legacy.bound_name,
        ).encode_legacy()

        report = await use_case.execute(qr_data=legacy_code, scanner=SCANNER)

        assert report.verdict == Verdict.VALID

    @pytest.mark.unit
    async def test_bound_name_mismatch_asks_for_photo_id(
        self, use_case, ticket, registry_gateway, gate_ticket_repo
    ) -> None:
        registry_gateway.query.return_value = RegistryTokenStatus(
            reachable=True, state=RegistryTokenState.VALID, bound_name='Bob Lin'
        )

        report = await use_case.execute(qr_data=ticket.qr_payload, scanner=SCANNER)

        assert report.verdict == Verdict.VALID_WITH_WARNING
        assert report.registry.identity_match == IdentityMatch.MISMATCH
        assert report.ui_feedback.color == 'amber'
        gate_ticket_repo.mark_used.assert_awaited_once()

    @pytest.mark.unit
    async def test_lost_mark_used_race_refuses_entry(
        self, use_case, ticket, gate_ticket_repo
    ) -> None:
        gate_ticket_repo.mark_used.return_value = False

        report = await use_case.execute(qr_data=ticket.qr_payload, scanner=SCANNER)

        assert report.verdict == Verdict.INVALID
        assert report.reason == 'Ticket already used'

    # ==================== Registry degradation ====================

    @pytest.mark.unit
    async def test_hanging_registry_falls_back_to_database(
        self, use_case, ticket, registry_gateway
    ) -> None:
        async def hang(**kwargs) -> RegistryTokenStatus:
            await anyio.sleep(10)
            return RegistryTokenStatus(reachable=True, state=RegistryTokenState.REVOKED)

        registry_gateway.query.side_effect = hang

        with anyio.fail_after(2):
            report = await use_case.execute(qr_data=ticket.qr_payload, scanner=SCANNER)

        assert report.verdict == Verdict.VALID
        assert report.warnings == ('Registry unreachable, database status used',)
        assert report.registry.checked is True
        assert report.registry.reachable is False

    @pytest.mark.unit
    async def test_registry_revocation_refuses_entry(
        self, use_case, ticket, registry_gateway, gate_ticket_repo
    ) -> None:
        registry_gateway.query.return_value = RegistryTokenStatus(
            reachable=True, state=RegistryTokenState.REVOKED
        )

        report = await use_case.execute(qr_data=ticket.qr_payload, scanner=SCANNER)

        assert report.verdict == Verdict.REVOKED
        assert report.ui_feedback.color == 'red'
        gate_ticket_repo.mark_used.assert_not_called()

    # ==================== Refusals before lookup ====================

    @pytest.mark.unit
    @pytest.mark.parametrize('qr_data', ['', 'hello', '{"ticket_id": "nope"}', 'TICKET:x'])
    async def test_malformed_code_is_invalid(
        self, use_case, gate_ticket_repo, registry_gateway, validation_attempt_repo, qr_data
    ) -> None:
        report = await use_case.execute(qr_data=qr_data, scanner=SCANNER)

        assert report.verdict == Verdict.INVALID
        assert report.reason == 'Malformed code'
        gate_ticket_repo.get_for_validation.assert_not_called()
        registry_gateway.query.assert_not_called()
        validation_attempt_repo.record.assert_awaited_once()

    @pytest.mark.unit
    async def test_unknown_ticket_is_invalid(self, use_case, ticket, gate_ticket_repo) -> None:
        gate_ticket_repo.get_for_validation.return_value = None

        report = await use_case.execute(qr_data=ticket.qr_payload, scanner=SCANNER)

        assert report.verdict == Verdict.INVALID
        assert report.reason == 'Ticket not found'

    @pytest.mark.unit
    async def test_forged_hash_is_invalid(self, use_case, ticket, registry_gateway) -> None:
        payload = QrPayload.decode(ticket.qr_payload)
        forged = QrPayload(
            ticket_id=payload.ticket_id,
            validation_hash='0' * 64,
            registry_token_id=payload.registry_token_id,
        ).encode()

        report = await use_case.execute(qr_data=forged, scanner=SCANNER)

        assert report.verdict == Verdict.INVALID
        assert report.reason == 'Code does not match ticket'
        registry_gateway.query.assert_not_called()

    # ==================== Failures ====================

    @pytest.mark.unit
    async def test_database_failure_is_error_verdict(
        self, use_case, ticket, gate_ticket_repo
    ) -> None:
        gate_ticket_repo.get_for_validation.side_effect = RuntimeError('connection reset')

        report = await use_case.execute(qr_data=ticket.qr_payload, scanner=SCANNER)

        assert report.verdict == Verdict.ERROR
        assert report.reason == 'Validation temporarily unavailable'

    @pytest.mark.unit
    async def test_audit_failure_does_not_change_verdict(
        self, use_case, ticket, validation_attempt_repo
    ) -> None:
        validation_attempt_repo.record.side_effect = RuntimeError('audit table locked')

        report = await use_case.execute(qr_data=ticket.qr_payload, scanner=SCANNER)

        assert report.verdict == Verdict.VALID

    @pytest.mark.unit
    async def test_attempt_is_recorded_with_scanner_context(
        self, use_case, ticket, validation_attempt_repo
    ) -> None:
        await use_case.execute(qr_data=ticket.qr_payload, scanner=SCANNER)

        attempt = validation_attempt_repo.record.await_args.kwargs['attempt']
        assert attempt.ticket_id == ticket.id
        assert attempt.scanner_id == 1
        assert attempt.location == 'Gate A'
        assert attempt.device_id == 'scanner-07'
        assert attempt.verdict == 'valid'
        assert attempt.registry_status == 'valid'
        assert attempt.identity_match == 'verified'
