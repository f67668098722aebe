from src.platform.exception.exceptions import ConflictError, NotFoundError


class TicketNotFoundError(NotFoundError):
    def __init__(self) -> None:
        super().__init__('Ticket not found')


class TicketAlreadyRevokedError(ConflictError):
    def __init__(self) -> None:
        super().__init__('Ticket already revoked')


class TicketAlreadyUsedError(ConflictError):
    def __init__(self) -> None:
        super().__init__('Ticket already used')
