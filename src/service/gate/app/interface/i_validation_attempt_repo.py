from abc import ABC, abstractmethod

from src.service.gate.domain.value_object.validation_attempt import ValidationAttempt


class IValidationAttemptRepo(ABC):
    @abstractmethod
    async def record(self, *, attempt: ValidationAttempt) -> None:
        pass
