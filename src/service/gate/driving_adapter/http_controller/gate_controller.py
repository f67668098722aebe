from uuid import UUID

from fastapi import APIRouter, Depends
from opentelemetry import trace

from src.platform.exception.exceptions import ForbiddenError
from src.platform.logging.loguru_io import Logger
from src.service.gate.app.command.revoke_ticket_use_case import RevokeTicketUseCase
from src.service.gate.app.command.validate_ticket_use_case import ValidateTicketUseCase
from src.service.gate.app.dto.validation_dto import ScannerContext
from src.service.gate.driving_adapter.http_controller.schema.gate_schema import (
    RegistryStatusResponse,
    RevokeTicketRequest,
    RevokeTicketResponse,
    TicketInfoResponse,
    UiFeedbackResponse,
    ValidateTicketRequest,
    ValidateTicketResponse,
)
from src.service.shared_kernel.domain.entity.user_entity import UserEntity
from src.service.shared_kernel.driving_adapter.auth.role_auth import require_admin


router = APIRouter()
tracer = trace.get_tracer(__name__)


@router.post('/validate')
@Logger.io
async def validate_ticket(
    request: ValidateTicketRequest,
    current_user: UserEntity = Depends(require_admin),
    use_case: ValidateTicketUseCase = Depends(ValidateTicketUseCase.depends),
) -> ValidateTicketResponse:
    with tracer.start_as_current_span('controller.validate_ticket') as span:
        claimed_admin_id = request.scanner_info.admin_id
        if claimed_admin_id is not None and claimed_admin_id != current_user.id:
            raise ForbiddenError('Scanner admin does not match the authenticated user')
        scanner = ScannerContext(
            admin_id=current_user.id,
            location=request.scanner_info.location,
            device_id=request.scanner_info.device_id,
        )
        span.set_attribute('scanner.admin_id', scanner.admin_id)

        report = await use_case.execute(qr_data=request.qr_data, scanner=scanner)
        feedback = report.ui_feedback
        info = report.ticket_info

        return ValidateTicketResponse(
            validation_result=report.verdict.value,
            reason=report.reason,
            warnings=list(report.warnings),
            ticket_info=(
                TicketInfoResponse(
                    ticket_id=info.ticket_id,
                    ticket_number=info.ticket_number,
                    event_name=info.event_name,
                    holder_name=info.holder_name,
                    bound_name=info.bound_name,
                    entry_type=info.entry_type,
                )
                if info
                else None
            ),
            registry_status=RegistryStatusResponse(
                checked=report.registry.checked,
                reachable=report.registry.reachable,
                state=report.registry.state,
                identity_match=(
                    report.registry.identity_match.value
                    if report.registry.identity_match
                    else None
                ),
            ),
            ui_feedback=UiFeedbackResponse(
                color=feedback.color, message=feedback.message, sound=feedback.sound
            ),
        )


@router.post('/ticket/{ticket_id}/revoke')
@Logger.io
async def revoke_ticket(
    ticket_id: UUID,
    request: RevokeTicketRequest,
    current_user: UserEntity = Depends(require_admin),
    use_case: RevokeTicketUseCase = Depends(RevokeTicketUseCase.depends),
) -> RevokeTicketResponse:
    result = await use_case.execute(
        ticket_id=ticket_id, admin_id=current_user.id, reason=request.reason
    )
    return RevokeTicketResponse(
        ticket_id=result.ticket_id,
        revoked_at=result.revoked_at,
        registry_revocation_scheduled=result.registry_revocation_scheduled,
    )
