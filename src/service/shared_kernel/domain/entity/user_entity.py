from enum import Enum

import attrs


class UserRole(str, Enum):
    BUYER = 'buyer'
    ADMIN = 'admin'


@attrs.define(frozen=True)
class UserEntity:
    """Caller identity rebuilt from the JWT payload (no DB query)"""

    id: int
    email: str
    name: str
    role: UserRole = UserRole.BUYER
    is_active: bool = True
