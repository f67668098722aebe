import hashlib
from uuid import UUID


# 62 hex digits = 248 bits, always below the registry's uint256 token id limit
_TOKEN_HEX_DIGITS = 62


def derive_registry_token_id(ticket_id: UUID) -> str:
    """Deterministic registry token id for a ticket, as a decimal string.

    Derived only from the server-generated ticket id, never from user input.
    """
    digest = hashlib.sha256(str(ticket_id).encode()).hexdigest()
    return str(int(digest[:_TOKEN_HEX_DIGITS], 16))
