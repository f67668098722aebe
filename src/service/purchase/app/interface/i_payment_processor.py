from abc import ABC, abstractmethod
from uuid import UUID

from src.service.purchase.domain.value_object.checkout_session import CheckoutSession


class IPaymentProcessor(ABC):
    @abstractmethod
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
        """
        Open a capture-intent checkout scoped to `amount`.

        Raises:
            PaymentProcessorUnavailableError: processor unreachable, timed out or refused
        """
        pass
