from datetime import datetime, timezone
from typing import Optional

from src.platform.database.repo_session import SessionFactory, SessionScopedRepo
from src.platform.logging.loguru_io import Logger
from src.service.gate.app.interface.i_validation_attempt_repo import IValidationAttemptRepo
from src.service.gate.domain.value_object.validation_attempt import ValidationAttempt
from src.service.shared_kernel.driven_adapter.model import ValidationAttemptModel


class ValidationAttemptRepoImpl(SessionScopedRepo, IValidationAttemptRepo):
    def __init__(self, session_factory: Optional[SessionFactory] = None) -> None:
        super().__init__(session_factory)

    @Logger.io
    async def record(self, *, attempt: ValidationAttempt) -> None:
        async with self._write_session() as session:
            session.add(
                ValidationAttemptModel(
                    ticket_id=attempt.ticket_id,
                    scanner_id=attempt.scanner_id,
                    verdict=attempt.verdict,
                    reason=attempt.reason,
                    location=attempt.location,
                    device_id=attempt.device_id,
                    registry_status=attempt.registry_status,
                    identity_match=attempt.identity_match,
                    created_at=attempt.created_at or datetime.now(timezone.utc),
                )
            )
            await session.flush()
