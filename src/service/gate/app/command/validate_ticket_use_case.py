from datetime import datetime, timezone
import time
from typing import Optional, Self

from dependency_injector.wiring import Provide, inject
from fastapi import Depends
from opentelemetry import trace

from src.platform.concurrency.deadline import DeadlineExceededError, run_with_deadline
from src.platform.config.core_setting import settings
from src.platform.config.di import Container
from src.platform.logging.loguru_io import Logger
from src.platform.metrics.ticketing_metrics import metrics
from src.service.gate.app.dto.validation_dto import (
    RegistryCheck,
    ScannerContext,
    TicketInfo,
    ValidationReport,
)
from src.service.gate.app.interface.i_gate_ticket_repo import IGateTicketRepo
from src.service.gate.app.interface.i_validation_attempt_repo import IValidationAttemptRepo
from src.service.gate.domain.validation_decision import (
    IdentityMatch,
    ValidationDecision,
    Verdict,
    classify_identity,
    decide,
)
from src.service.gate.domain.value_object.gate_ticket_view import GateTicketView
from src.service.gate.domain.value_object.validation_attempt import ValidationAttempt
from src.service.shared_kernel.app.interface.i_registry_gateway import IRegistryGateway
from src.service.shared_kernel.domain.value_object.qr_payload import (
    MalformedQrCodeError,
    QrPayload,
)
from src.service.shared_kernel.domain.value_object.registry_status import RegistryTokenStatus


class ValidateTicketUseCase:
    """
    Validation decision engine for door scans

    Flow:
    1. Decode the QR payload (malformed → invalid, no DB lookup)
    2. Load ticket + event + holder; the embedded hash must match the stored one
    3. Ask the registry under a deadline (unreachable never blocks entry)
    4. Classify identity and apply the decision priority
    5. Admitting verdicts flip valid → used when configured; losing that race → invalid
    6. Audit-log every attempt (best effort)

    Infrastructure failures become verdict `error`; the scan never hangs.
    """

    def __init__(
        self,
        *,
        gate_ticket_repo: IGateTicketRepo,
        validation_attempt_repo: IValidationAttemptRepo,
        registry_gateway: IRegistryGateway,
        registry_timeout: Optional[float] = None,
    ) -> None:
        self.gate_ticket_repo = gate_ticket_repo
        self.validation_attempt_repo = validation_attempt_repo
        self.registry_gateway = registry_gateway
        self.registry_timeout = registry_timeout or settings.REGISTRY_CALL_TIMEOUT_SECONDS
        self.tracer = trace.get_tracer(__name__)

    @classmethod
    @inject
    def depends(
        cls,
        gate_ticket_repo: IGateTicketRepo = Depends(Provide[Container.gate_ticket_repo]),
        validation_attempt_repo: IValidationAttemptRepo = Depends(
            Provide[Container.validation_attempt_repo]
        ),
        registry_gateway: IRegistryGateway = Depends(Provide[Container.registry_gateway]),
    ) -> Self:
        return cls(
            gate_ticket_repo=gate_ticket_repo,
            validation_attempt_repo=validation_attempt_repo,
            registry_gateway=registry_gateway,
        )

    @Logger.io
    async def execute(self, *, qr_data: str, scanner: ScannerContext) -> ValidationReport:
        started = time.perf_counter()
        with self.tracer.start_as_current_span(
            'use_case.validate_ticket', attributes={'scanner.admin_id': scanner.admin_id}
        ) as span:
            try:
                report = await self._validate(qr_data=qr_data)
            except Exception:
                Logger.base.exception('❌ [Gate] Validation failed on infrastructure error')
                report = ValidationReport(
                    verdict=Verdict.ERROR, reason='Validation temporarily unavailable'
                )

            span.set_attribute('validation.verdict', report.verdict.value)
            await self._record_attempt(report=report, scanner=scanner)
            metrics.record_validation(
                verdict=report.verdict.value, duration=time.perf_counter() - started
            )
            return report

    async def _validate(self, *, qr_data: str) -> ValidationReport:
        try:
            payload = QrPayload.decode(qr_data)
        except MalformedQrCodeError:
            return ValidationReport(verdict=Verdict.INVALID, reason='Malformed code')

        view = await self.gate_ticket_repo.get_for_validation(ticket_id=payload.ticket_id)
        if view is None:
            return ValidationReport(
                verdict=Verdict.INVALID, reason='Ticket not found', ticket_id=payload.ticket_id
            )

        ticket = view.ticket
        ticket_info = self._ticket_info(view)
        if payload.validation_hash != ticket.validation_hash:
            return ValidationReport(
                verdict=Verdict.INVALID,
                reason='Code does not match ticket',
                ticket_id=ticket.id,
                ticket_info=ticket_info,
            )

        token_id = ticket.registry_token_id or payload.registry_token_id
        registry = await self._query_registry(token_id=token_id) if token_id else None
        identity = classify_identity(
            database_name=ticket.bound_name,
            registry_name=registry.bound_name if registry and registry.reachable else None,
            qr_name=payload.bound_name,
        )

        now = datetime.now(timezone.utc)
        decision = decide(
            ticket=ticket,
            event_end=view.event_end(default_duration_hours=settings.DEFAULT_EVENT_DURATION_HOURS),
            registry=registry,
            identity=identity,
            now=now,
            grace_minutes=settings.EVENT_END_GRACE_MINUTES,
        )

        if decision.verdict.admits_entry and settings.GATE_MARK_USED_ON_ENTRY:
            if not await self.gate_ticket_repo.mark_used(ticket_id=ticket.id, used_at=now):
                # Another scanner admitted this ticket a moment ago
                decision = ValidationDecision(Verdict.INVALID, 'Ticket already used')

        return ValidationReport(
            verdict=decision.verdict,
            reason=decision.reason,
            warnings=decision.warnings,
            ticket_id=ticket.id,
            ticket_info=ticket_info,
            registry=self._registry_check(registry=registry, identity=identity),
        )

    async def _query_registry(self, *, token_id: str) -> RegistryTokenStatus:
        try:
            return await run_with_deadline(
                lambda: self.registry_gateway.query(token_id=token_id),
                seconds=self.registry_timeout,
                operation_name='registry lookup',
            )
        except DeadlineExceededError as e:
            Logger.base.warning(f'⏱️ [Gate] {e.message}, falling back to database')
            return RegistryTokenStatus.unreachable(e.message)

    @staticmethod
    def _ticket_info(view: GateTicketView) -> TicketInfo:
        ticket = view.ticket
        return TicketInfo(
            ticket_id=ticket.id,
            ticket_number=ticket.ticket_number,
            event_name=view.event_name,
            holder_name=view.holder_name,
            bound_name=ticket.bound_name,
            entry_type=ticket.entry_type,
        )

    @staticmethod
    def _registry_check(
        *, registry: Optional[RegistryTokenStatus], identity: IdentityMatch
    ) -> RegistryCheck:
        if registry is None:
            return RegistryCheck(identity_match=identity)
        return RegistryCheck(
            checked=True,
            reachable=registry.reachable,
            state=registry.state.value if registry.reachable else None,
            identity_match=identity,
        )

    async def _record_attempt(self, *, report: ValidationReport, scanner: ScannerContext) -> None:
        try:
            await self.validation_attempt_repo.record(
                attempt=ValidationAttempt(
                    scanner_id=scanner.admin_id,
                    verdict=report.verdict.value,
                    reason=report.reason,
                    ticket_id=report.ticket_id,
                    location=scanner.location,
                    device_id=scanner.device_id,
                    registry_status=report.registry.state,
                    identity_match=(
                        report.registry.identity_match.value
                        if report.registry.identity_match
                        else None
                    ),
                )
            )
        except Exception as e:
            Logger.base.warning(f'⚠️ [Gate] Validation attempt not audit-logged: {e}')
