"""
Gate scan flow: BDD step definitions

Scenarios drive the real HTTP app through FastAPI's TestClient. Repositories run
on a per-test SQLite file; the registry is a stub whose answer each scenario sets.
Seeding runs on the client's event loop through its blocking portal so the engine
is only ever used from one loop.
"""

from collections.abc import AsyncGenerator, Generator
from contextlib import asynccontextmanager
from datetime import timedelta
from functools import partial
from typing import Any

from fastapi import FastAPI
from fastapi.testclient import TestClient
import httpx
import pytest
from pytest_bdd import given, then, when
from pytest_bdd.model import Step

from src.platform.app_factory import create_app
from src.platform.database.orm_db_setting import AsyncEngineManager, Database
from src.service.gate.app.command.revoke_ticket_use_case import RevokeTicketUseCase
from src.service.gate.app.command.validate_ticket_use_case import ValidateTicketUseCase
from src.service.gate.driven_adapter.repo.gate_ticket_repo_impl import GateTicketRepoImpl
from src.service.gate.driven_adapter.repo.validation_attempt_repo_impl import (
    ValidationAttemptRepoImpl,
)
from src.service.registry.driven_adapter.task_group_revocation_dispatcher import (
    TaskGroupRevocationDispatcher,
)
from src.service.shared_kernel.domain.entity.user_entity import UserEntity, UserRole
from src.service.shared_kernel.domain.value_object.registry_status import (
    RegistryTokenState,
    RegistryTokenStatus,
)
from src.service.shared_kernel.driving_adapter.auth.role_auth import require_admin


GATE_ADMIN = UserEntity(id=42, email='gate@test.com', name='Gate Staff', role=UserRole.ADMIN)
VALIDATE_URL = '/api/gate/validate'


@asynccontextmanager
async def _no_lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    yield


class RegistryStub:
    def __init__(self) -> None:
        self.status = RegistryTokenStatus(
            reachable=True, state=RegistryTokenState.VALID, bound_name='Alice Chen'
        )

    async def query(self, *, token_id: str) -> RegistryTokenStatus:
        return self.status


def extract_table_data(step: Step) -> dict[str, str]:
    rows = step.data_table.rows
    headers = [cell.value for cell in rows[0].cells]
    values = [cell.value for cell in rows[1].cells]
    return dict(zip(headers, values, strict=True))


def extract_single_value(step: Step, row_index: int = 0, col_index: int = 0) -> str:
    return step.data_table.rows[row_index].cells[col_index].value


# =============================================================================
# Fixtures
# =============================================================================
@pytest.fixture
def database(sqlite_engine_manager: AsyncEngineManager) -> Database:
    """Schema is created on the client's loop, see `gate_client`"""
    return Database(engine_manager=sqlite_engine_manager)


@pytest.fixture
def registry_stub() -> RegistryStub:
    return RegistryStub()


@pytest.fixture
def gate_app(database: Database, registry_stub: RegistryStub) -> FastAPI:
    app = create_app(lifespan=_no_lifespan, title_suffix=' (Test)')
    gate_ticket_repo = GateTicketRepoImpl(session_factory=database.session)
    app.dependency_overrides[require_admin] = lambda: GATE_ADMIN
    app.dependency_overrides[ValidateTicketUseCase.depends] = lambda: ValidateTicketUseCase(
        gate_ticket_repo=gate_ticket_repo,
        validation_attempt_repo=ValidationAttemptRepoImpl(session_factory=database.session),
        registry_gateway=registry_stub,
    )
    # No lifespan task group: registry revocation is skipped and only logged
    revocation_dispatcher = TaskGroupRevocationDispatcher(
        task_group_provider=lambda: None, registry_gateway=registry_stub
    )
    app.dependency_overrides[RevokeTicketUseCase.depends] = lambda: RevokeTicketUseCase(
        gate_ticket_repo=gate_ticket_repo, revocation_dispatcher=revocation_dispatcher
    )
    return app


@pytest.fixture
def gate_client(
    gate_app: FastAPI, sqlite_engine_manager: AsyncEngineManager, schema_creator
) -> Generator[TestClient, None, None]:
    with TestClient(gate_app, raise_server_exceptions=False) as client:
        client.portal.call(schema_creator, sqlite_engine_manager)
        yield client
        client.portal.call(sqlite_engine_manager.dispose)


@pytest.fixture
def scan_context() -> dict[str, Any]:
    return {}


def _scan(client: TestClient, context: dict[str, Any], qr_data: str) -> None:
    context['response'] = client.post(
        VALIDATE_URL,
        json={'qr_data': qr_data, 'scanner_info': {'location': 'North Gate'}},
    )


def _revoke(client: TestClient, context: dict[str, Any], reason: str) -> httpx.Response:
    ticket = context['ticket']
    context['response'] = client.post(
        f'/api/gate/ticket/{ticket.id}/revoke', json={'reason': reason}
    )
    return context['response']


# =============================================================================
# Given
# =============================================================================
@given('an event that started 30 minutes ago')
def event_started(gate_client: TestClient, seed_event, scan_context: dict[str, Any]) -> None:
    scan_context['event_id'] = gate_client.portal.call(
        partial(seed_event, starts_in=-timedelta(minutes=30))
    )


@given('a purchased ticket bound to:')
def purchased_ticket(
    step: Step, gate_client: TestClient, seed_user, seed_tickets, scan_context: dict[str, Any]
) -> None:
    bound_name = extract_table_data(step)['bound_name']
    user_id = gate_client.portal.call(partial(seed_user, full_name=bound_name))
    [ticket] = gate_client.portal.call(
        partial(
            seed_tickets, event_id=scan_context['event_id'], user_id=user_id, names=[bound_name]
        )
    )
    scan_context['ticket'] = ticket


@given('the ticket has been scanned once')
def scanned_once(gate_client: TestClient, scan_context: dict[str, Any]) -> None:
    _scan(gate_client, scan_context, scan_context['ticket'].qr_payload)
    assert scan_context['response'].json()['validation_result'] == 'valid'


@given('the ticket has been revoked with reason:')
def revoked(step: Step, gate_client: TestClient, scan_context: dict[str, Any]) -> None:
    response = _revoke(gate_client, scan_context, extract_single_value(step))
    assert response.status_code == 200, response.text


@given('the registry reports the ticket as:')
def registry_reports(step: Step, registry_stub: RegistryStub) -> None:
    data = extract_table_data(step)
    registry_stub.status = RegistryTokenStatus(
        reachable=True, state=RegistryTokenState(data['state']), bound_name=data['bound_name']
    )


@given('the registry is unreachable')
def registry_down(registry_stub: RegistryStub) -> None:
    registry_stub.status = RegistryTokenStatus.unreachable('connect refused')


# =============================================================================
# When
# =============================================================================
@when('gate staff scan the ticket')
def scan_ticket(gate_client: TestClient, scan_context: dict[str, Any]) -> None:
    _scan(gate_client, scan_context, scan_context['ticket'].qr_payload)


@when('gate staff scan the code:')
def scan_code(step: Step, gate_client: TestClient, scan_context: dict[str, Any]) -> None:
    _scan(gate_client, scan_context, extract_single_value(step))


@when('gate staff revoke the ticket with reason:')
def revoke_ticket(step: Step, gate_client: TestClient, scan_context: dict[str, Any]) -> None:
    _revoke(gate_client, scan_context, extract_single_value(step))


# =============================================================================
# Then
# =============================================================================
@then('the validation result should be:')
def verify_validation_result(step: Step, scan_context: dict[str, Any]) -> None:
    expected = extract_table_data(step)
    response: httpx.Response = scan_context['response']
    assert response.status_code == 200, response.text
    body = response.json()
    assert body['validation_result'] == expected['validation_result']
    assert body['reason'] == expected['reason']
    assert body['ui_feedback']['color'] == expected['color']


@then('the registry identity match should be:')
def verify_identity_match(step: Step, scan_context: dict[str, Any]) -> None:
    body = scan_context['response'].json()
    assert body['registry_status']['identity_match'] == extract_single_value(step)


@then('the warnings should contain:')
def verify_warnings(step: Step, scan_context: dict[str, Any]) -> None:
    assert extract_single_value(step) in scan_context['response'].json()['warnings']


@then('the response status code should be:')
def verify_status_code(step: Step, scan_context: dict[str, Any]) -> None:
    response: httpx.Response = scan_context['response']
    expected_status = int(extract_single_value(step))
    assert response.status_code == expected_status, (
        f'Expected {expected_status}, got {response.status_code}: {response.text}'
    )
