from typing import Sequence

import attrs

from src.service.purchase.domain.purchase_errors import InvalidBoundNamesError


@attrs.define(frozen=True)
class BoundNames:
    """Attendee names bound one-per-ticket, in ticket sequence order"""

    names: tuple[str, ...]

    @classmethod
    def create(cls, *, names: Sequence[str], quantity: int, max_length: int) -> 'BoundNames':
        if len(names) != quantity:
            raise InvalidBoundNamesError(
                f'bound_names must contain exactly {quantity} names, got {len(names)}'
            )

        cleaned = tuple(' '.join(str(name).split()) for name in names)
        for index, name in enumerate(cleaned, start=1):
            if not name:
                raise InvalidBoundNamesError(f'Name for ticket {index} is empty')
            if len(name) > max_length:
                raise InvalidBoundNamesError(
                    f'Name for ticket {index} exceeds {max_length} characters'
                )

        if len({name.casefold() for name in cleaned}) != len(cleaned):
            raise InvalidBoundNamesError('Each ticket must be bound to a different name')

        return cls(names=cleaned)

    def for_sequence(self, sequence_number: int) -> str:
        return self.names[sequence_number - 1]
