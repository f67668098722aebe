from abc import ABC, abstractmethod

from src.service.purchase.domain.entity.purchase_intent_entity import PurchaseIntent


class IPurchaseAuditRepo(ABC):
    @abstractmethod
    async def record(self, *, intent: PurchaseIntent) -> None:
        """Append purchase-pattern telemetry for a confirmed purchase"""
        pass
