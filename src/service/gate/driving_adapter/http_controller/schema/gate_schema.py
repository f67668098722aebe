from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, Field


class ScannerInfo(BaseModel):
    admin_id: Optional[int] = None  # Must match the authenticated admin when sent
    location: Optional[str] = None
    device_id: Optional[str] = None


class ValidateTicketRequest(BaseModel):
    qr_data: str
    scanner_info: ScannerInfo = Field(default_factory=ScannerInfo)

    model_config = {
        'json_schema_extra': {
            'example': {
                'qr_data': '{"ticket_id": "01936d8f-5e73-7c4e-a9c5-123456789abc", "validation_hash": "..."}',
                'scanner_info': {'admin_id': 1, 'location': 'Gate A', 'device_id': 'scanner-07'},
            }
        },
    }


class TicketInfoResponse(BaseModel):
    ticket_id: UUID
    ticket_number: str
    event_name: str
    holder_name: Optional[str] = None
    bound_name: Optional[str] = None
    entry_type: str


class RegistryStatusResponse(BaseModel):
    checked: bool
    reachable: bool
    state: Optional[str] = None
    identity_match: Optional[str] = None


class UiFeedbackResponse(BaseModel):
    color: str
    message: str
    sound: str


class ValidateTicketResponse(BaseModel):
    validation_result: str
    reason: str
    warnings: List[str] = Field(default_factory=list)
    ticket_info: Optional[TicketInfoResponse] = None
    registry_status: RegistryStatusResponse
    ui_feedback: UiFeedbackResponse


class RevokeTicketRequest(BaseModel):
    reason: str = Field(min_length=1, max_length=1000)


class RevokeTicketResponse(BaseModel):
    ticket_id: UUID
    status: str = 'revoked'
    revoked_at: datetime
    registry_revocation_scheduled: bool
