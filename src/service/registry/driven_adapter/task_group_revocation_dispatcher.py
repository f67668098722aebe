from typing import Callable, Optional
from uuid import UUID

from anyio.abc import TaskGroup

from src.platform.logging.loguru_io import Logger
from src.service.gate.app.interface.i_revocation_dispatcher import IRevocationDispatcher
from src.service.shared_kernel.app.interface.i_registry_gateway import IRegistryGateway


class TaskGroupRevocationDispatcher(IRevocationDispatcher):
    """
    Best-effort registry revocation on the app's task group.

    The database revocation is already committed when this runs, so a failed
    registry call is only logged.
    """

    def __init__(
        self,
        *,
        task_group_provider: Callable[[], Optional[TaskGroup]],
        registry_gateway: IRegistryGateway,
    ) -> None:
        self.task_group_provider = task_group_provider
        self.registry_gateway = registry_gateway

    def dispatch(self, *, ticket_id: UUID, token_id: str, reason: str) -> bool:
        task_group = self.task_group_provider()
        if task_group is None:
            Logger.base.warning(
                f'⚠️ [Registry] No task group running, {ticket_id} not revoked on registry'
            )
            return False
        task_group.start_soon(self._revoke, ticket_id, token_id, reason)
        return True

    async def _revoke(self, ticket_id: UUID, token_id: str, reason: str) -> None:
        try:
            outcome = await self.registry_gateway.revoke(token_id=token_id, reason=reason)
        except Exception:
            Logger.base.exception(f'❌ [Registry] Revocation of {ticket_id} crashed')
            return
        if outcome.success:
            Logger.base.info(f'🚫 [Registry] Ticket {ticket_id} revoked: {outcome.tx_ref}')
        else:
            Logger.base.warning(
                f'⚠️ [Registry] Revocation of {ticket_id} failed: {outcome.reason}'
            )
