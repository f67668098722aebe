from typing import Optional

from src.platform.database.repo_session import SessionFactory, SessionScopedRepo
from src.platform.logging.loguru_io import Logger
from src.service.purchase.app.interface.i_purchase_audit_repo import IPurchaseAuditRepo
from src.service.purchase.domain.entity.purchase_intent_entity import PurchaseIntent
from src.service.shared_kernel.driven_adapter.model import PurchaseAuditModel


class PurchaseAuditRepoImpl(SessionScopedRepo, IPurchaseAuditRepo):
    def __init__(self, session_factory: Optional[SessionFactory] = None) -> None:
        super().__init__(session_factory)

    @Logger.io
    async def record(self, *, intent: PurchaseIntent) -> None:
        async with self._write_session() as session:
            session.add(
                PurchaseAuditModel(
                    payment_id=intent.id,
                    user_id=intent.user_id,
                    event_id=intent.event_id,
                    quantity=intent.quantity,
                    amount=intent.amount,
                )
            )
