"""Failures of the purchase pipeline, mapped to HTTP by the platform exception handlers"""

from src.platform.exception.exceptions import (
    ConflictError,
    DomainError,
    ExternalServiceError,
    ForbiddenError,
    NotFoundError,
)


class QuantityOutOfRangeError(DomainError):
    def __init__(self, max_per_purchase: int) -> None:
        super().__init__(f'quantity must be between 1 and {max_per_purchase}')


class InvalidBoundNamesError(DomainError):
    pass


class EventNotFoundError(NotFoundError):
    def __init__(self) -> None:
        super().__init__('Event not found')


class EventInPastError(DomainError):
    def __init__(self) -> None:
        super().__init__('Event has already taken place')


class InsufficientCapacityError(ConflictError):
    def __init__(self, *, requested: int, available: int) -> None:
        self.requested = requested
        self.available = available
        super().__init__(f'Not enough tickets available: requested {requested}, left {available}')


class IdentityNotVerifiedError(ForbiddenError):
    def __init__(self) -> None:
        super().__init__('Identity verification must be approved before purchasing')


class PurchaseNotFoundError(NotFoundError):
    def __init__(self) -> None:
        super().__init__('Purchase not found')


class IntentNotFoundError(NotFoundError):
    def __init__(self) -> None:
        super().__init__('No purchase matches this payment notification')


class AlreadyProcessedError(ConflictError):
    def __init__(self, status: str) -> None:
        super().__init__(f'Purchase already {status}')


class AmountMismatchError(ConflictError):
    def __init__(self, *, expected: str, captured: str) -> None:
        super().__init__(f'Captured amount {captured} does not match expected {expected}')


class PaymentProcessorUnavailableError(ExternalServiceError):
    pass
