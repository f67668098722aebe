from typing import Callable, Optional, Sequence

from anyio.abc import TaskGroup

from src.platform.logging.loguru_io import Logger
from src.service.purchase.app.interface.i_registration_dispatcher import IRegistrationDispatcher
from src.service.registry.app.command.register_tickets_use_case import RegisterTicketsUseCase
from src.service.shared_kernel.domain.value_object.registry_status import TicketRegistration


class TaskGroupRegistrationDispatcher(IRegistrationDispatcher):
    """
    Fire-and-forget registry mirroring on the app's task group.

    The task group is resolved at dispatch time because the lifespan overrides
    `container.task_group` only after the container is built.
    """

    def __init__(
        self,
        *,
        task_group_provider: Callable[[], Optional[TaskGroup]],
        register_tickets_use_case: RegisterTicketsUseCase,
    ) -> None:
        self.task_group_provider = task_group_provider
        self.register_tickets_use_case = register_tickets_use_case

    def dispatch(self, *, tickets: Sequence[TicketRegistration]) -> None:
        task_group = self.task_group_provider()
        if task_group is None:
            Logger.base.warning(
                f'⚠️ [Registry] No task group running, {len(tickets)} ticket(s) left for retry worker'
            )
            return
        task_group.start_soon(self._register, list(tickets))

    async def _register(self, tickets: list[TicketRegistration]) -> None:
        try:
            await self.register_tickets_use_case.execute(tickets=tickets)
        except Exception:
            # A crashed task would cancel the whole task group
            Logger.base.exception('❌ [Registry] Background registration crashed')
