"""
https://python-dependency-injector.ets-labs.org/index.html
https://python-dependency-injector.ets-labs.org/examples/fastapi-sqlalchemy.html

Use cases that are wired into FastAPI import `Container` from here, so this
module only imports adapters and background use cases, never HTTP-facing ones.
"""

from dependency_injector import containers, providers

from src.platform.config.core_setting import Settings
from src.platform.database.orm_db_setting import Database
from src.platform.database.unit_of_work import SqlAlchemyUnitOfWork
from src.service.gate.driven_adapter.repo.gate_ticket_repo_impl import GateTicketRepoImpl
from src.service.gate.driven_adapter.repo.validation_attempt_repo_impl import (
    ValidationAttemptRepoImpl,
)
from src.service.purchase.app.command.expire_purchase_use_case import ExpirePurchaseUseCase
from src.service.purchase.driven_adapter.payment.paypal_payment_processor_impl import (
    PaypalPaymentProcessorImpl,
)
from src.service.purchase.driven_adapter.repo.purchase_audit_repo_impl import (
    PurchaseAuditRepoImpl,
)
from src.service.purchase.driven_adapter.repo.purchase_intent_repo_impl import (
    PurchaseIntentRepoImpl,
)
from src.service.purchase.driven_adapter.repo.ticket_issuance_repo_impl import (
    TicketIssuanceRepoImpl,
)
from src.service.purchase.driven_adapter.repo.user_profile_query_repo_impl import (
    UserProfileQueryRepoImpl,
)
from src.service.registry.app.command.register_tickets_use_case import RegisterTicketsUseCase
from src.service.registry.app.command.retry_registrations_use_case import (
    RetryRegistrationsUseCase,
)
from src.service.registry.driven_adapter.registry_gateway_impl import RegistryGatewayImpl
from src.service.registry.driven_adapter.repo.registration_status_repo_impl import (
    RegistrationStatusRepoImpl,
)
from src.service.registry.driven_adapter.task_group_registration_dispatcher import (
    TaskGroupRegistrationDispatcher,
)
from src.service.registry.driven_adapter.task_group_revocation_dispatcher import (
    TaskGroupRevocationDispatcher,
)
from src.service.shared_kernel.driving_adapter.auth.jwt_auth import JwtAuth


class Container(containers.DeclarativeContainer):
    # Configuration
    config_service = providers.Singleton(Settings)

    # Database (event-loop-aware engine manager behind it)
    database = providers.Singleton(Database)

    # Background task group (set by main.py lifespan)
    # Used for fire-and-forget registry mirroring and revocation
    task_group = providers.Object(None)

    # Unit of Work: a fresh one per transaction, inject `unit_of_work.provider` as a factory
    unit_of_work = providers.Factory(
        SqlAlchemyUnitOfWork, session_factory=database.provided.session
    )

    # Repositories (stateless - open a session per call)
    user_profile_query_repo = providers.Singleton(
        UserProfileQueryRepoImpl, session_factory=database.provided.session
    )
    purchase_intent_repo = providers.Singleton(
        PurchaseIntentRepoImpl, session_factory=database.provided.session
    )
    ticket_issuance_repo = providers.Singleton(
        TicketIssuanceRepoImpl, session_factory=database.provided.session
    )
    purchase_audit_repo = providers.Singleton(
        PurchaseAuditRepoImpl, session_factory=database.provided.session
    )
    registration_status_repo = providers.Singleton(
        RegistrationStatusRepoImpl, session_factory=database.provided.session
    )
    gate_ticket_repo = providers.Singleton(
        GateTicketRepoImpl, session_factory=database.provided.session
    )
    validation_attempt_repo = providers.Singleton(
        ValidationAttemptRepoImpl, session_factory=database.provided.session
    )

    # External services
    payment_processor = providers.Singleton(PaypalPaymentProcessorImpl)
    registry_gateway = providers.Singleton(RegistryGatewayImpl)

    # Auth service
    jwt_auth = providers.Singleton(JwtAuth)

    # Background use cases
    register_tickets_use_case = providers.Singleton(
        RegisterTicketsUseCase,
        registry_gateway=registry_gateway,
        registration_status_repo=registration_status_repo,
    )
    retry_registrations_use_case = providers.Singleton(
        RetryRegistrationsUseCase,
        registration_status_repo=registration_status_repo,
        register_tickets_use_case=register_tickets_use_case,
    )
    registration_dispatcher = providers.Singleton(
        TaskGroupRegistrationDispatcher,
        task_group_provider=task_group.provider,
        register_tickets_use_case=register_tickets_use_case,
    )
    revocation_dispatcher = providers.Singleton(
        TaskGroupRevocationDispatcher,
        task_group_provider=task_group.provider,
        registry_gateway=registry_gateway,
    )
    expire_purchase_use_case = providers.Singleton(
        ExpirePurchaseUseCase, uow_factory=unit_of_work.provider
    )


container = Container()


def setup() -> None:
    container.config_service()


def cleanup() -> None:
    container.reset_singletons()
