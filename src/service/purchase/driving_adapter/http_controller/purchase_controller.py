from uuid import UUID

from fastapi import APIRouter, Depends, status
from opentelemetry import trace

from src.platform.logging.loguru_io import Logger
from src.service.purchase.app.command.open_purchase_use_case import OpenPurchaseUseCase
from src.service.purchase.app.query.get_purchase_status_use_case import GetPurchaseStatusUseCase
from src.service.purchase.driving_adapter.http_controller.schema.purchase_schema import (
    MobileDeepLinks,
    PurchaseCreateRequest,
    PurchaseCreateResponse,
    PurchaseStatusResponse,
    PurchaseTicketResponse,
    RegistrationCounts,
)
from src.service.shared_kernel.domain.entity.user_entity import UserEntity
from src.service.shared_kernel.driving_adapter.auth.role_auth import (
    get_current_user,
    require_buyer,
)


router = APIRouter()
tracer = trace.get_tracer(__name__)


@router.post('', status_code=status.HTTP_201_CREATED)
@Logger.io
async def open_purchase(
    request: PurchaseCreateRequest,
    current_user: UserEntity = Depends(require_buyer),
    use_case: OpenPurchaseUseCase = Depends(OpenPurchaseUseCase.depends),
) -> PurchaseCreateResponse:
    with tracer.start_as_current_span('controller.open_purchase') as span:
        span.set_attribute('event_id', request.event_id)
        span.set_attribute('quantity', request.quantity)
        span.set_attribute('user_id', current_user.id)

        result = await use_case.execute(
            user_id=current_user.id,
            event_id=request.event_id,
            quantity=request.quantity,
            bound_names=request.bound_names,
        )
        span.set_attribute('purchase.id', str(result.purchase_id))

        return PurchaseCreateResponse(
            purchase_id=result.purchase_id,
            checkout_url=result.checkout_url,
            mobile_deep_links=MobileDeepLinks(**result.mobile_deep_links),
            reservation_expires_at=result.expires_at,
            amount=result.amount,
            currency=result.currency,
        )


@router.get('/{purchase_id}')
@Logger.io
async def get_purchase(
    purchase_id: UUID,
    current_user: UserEntity = Depends(get_current_user),
    use_case: GetPurchaseStatusUseCase = Depends(GetPurchaseStatusUseCase.depends),
) -> PurchaseStatusResponse:
    view = await use_case.execute(purchase_id=purchase_id, user_id=current_user.id)
    intent = view.intent
    counts = view.registration_counts

    return PurchaseStatusResponse(
        purchase_id=intent.id,
        event_id=intent.event_id,
        status=intent.status.value,
        quantity=intent.quantity,
        amount=intent.amount,
        currency=intent.currency,
        reservation_expires_at=intent.expires_at,
        failure_reason=intent.failure_reason,
        confirmed_at=intent.confirmed_at,
        tickets=[
            PurchaseTicketResponse(
                ticket_id=ticket.id,
                ticket_number=ticket.ticket_number,
                sequence_number=ticket.sequence_number,
                entry_type=ticket.entry_type,
                bound_name=ticket.bound_name,
                status=ticket.status.value,
                registration_status=ticket.registration_status.value,
                qr_payload=ticket.qr_payload,
            )
            for ticket in view.tickets
        ],
        registration=RegistrationCounts(
            registered=counts['minted'],
            pending=counts['pending'],
            failed=counts['failed'],
        ),
    )
