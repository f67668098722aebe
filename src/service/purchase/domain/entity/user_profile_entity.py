from enum import StrEnum

import attrs


class VerificationStatus(StrEnum):
    PENDING = 'pending'
    APPROVED = 'approved'
    REJECTED = 'rejected'


@attrs.define(frozen=True)
class UserProfile:
    """Read model of the account service's user record"""

    id: int
    full_name: str
    verification_status: VerificationStatus

    @property
    def is_verified(self) -> bool:
        return self.verification_status == VerificationStatus.APPROVED
