from decimal import Decimal
from pathlib import Path
from typing import Annotated, List

import orjson
from pydantic import SecretStr, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


_PROJECT_ROOT = Path(__file__).resolve().parents[3]
_ENV_PATH = _PROJECT_ROOT / '.env'
_ENV_FILE = _ENV_PATH if _ENV_PATH.exists() else (_PROJECT_ROOT / '.env.example')


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=str(_ENV_FILE),
        env_ignore_empty=True,
        extra='ignore',
    )

    PROJECT_NAME: str = 'Ticket Gate System'
    VERSION: str = '0.1.0'
    DEBUG: bool = True  # Set to False in production

    # Security (tokens are issued by the account service, only decoded here)
    SECRET_KEY: SecretStr = SecretStr('test_secret_key_change_in_production')
    ALGORITHM: str = 'HS256'

    # CORS: comma-separated origins or a JSON list
    BACKEND_CORS_ORIGINS: Annotated[List[str], NoDecode] = []

    @field_validator('BACKEND_CORS_ORIGINS', mode='before')
    @classmethod
    def assemble_cors_origins(cls, v: str | List[str]) -> List[str]:
        if isinstance(v, str) and v.startswith('['):
            return orjson.loads(v)
        elif isinstance(v, str):
            return [i.strip() for i in v.split(',') if i.strip()]
        elif isinstance(v, list):
            return v
        return []

    # PostgreSQL
    POSTGRES_SERVER: str = 'localhost'
    POSTGRES_PORT: int = 5432
    POSTGRES_USER: str = 'postgres'
    POSTGRES_PASSWORD: SecretStr = SecretStr('postgres')
    POSTGRES_DB: str = 'ticket_gate_db'

    # Connection pool
    DB_POOL_SIZE: int = 10
    DB_POOL_MAX_OVERFLOW: int = 5
    DB_POOL_TIMEOUT: int = 30
    DB_POOL_RECYCLE: int = 3600
    DB_POOL_PRE_PING: bool = True

    @property
    def DATABASE_URL_ASYNC(self) -> str:
        return (
            f'postgresql+asyncpg://{self.POSTGRES_USER}:'
            f'{self.POSTGRES_PASSWORD.get_secret_value()}@'
            f'{self.POSTGRES_SERVER}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}'
        )

    # Purchase policy
    MAX_PER_PURCHASE: int = 5
    MAX_BOUND_NAME_LENGTH: int = 100
    RESERVATION_TTL_MINUTES: int = 15
    AMOUNT_EPSILON: Decimal = Decimal('0.01')
    CURRENCY: str = 'USD'
    APP_SCHEME: str = 'ticketapp'  # Mobile deep link scheme for return/cancel urls

    # Payment processor (PayPal Orders API compatible)
    PAYPAL_BASE_URL: str = 'https://api-m.sandbox.paypal.com'
    PAYPAL_CLIENT_ID: str = ''
    PAYPAL_CLIENT_SECRET: SecretStr = SecretStr('')
    PAYMENT_PROCESSOR_TIMEOUT_SECONDS: float = 10.0
    PAYMENT_WEBHOOK_SECRET: SecretStr = SecretStr('')  # Empty disables the shared-secret check

    # Revocation registry gateway
    REGISTRY_RPC_URL: str = 'http://localhost:8545'
    REGISTRY_CONTRACT_ADDRESS: str = ''
    REGISTRY_SIGNING_KEY: SecretStr = SecretStr('')
    REGISTRY_CALL_TIMEOUT_SECONDS: float = 8.0
    REGISTRY_CONFIRMATION_TIMEOUT_SECONDS: float = 120.0
    REGISTRY_CONFIRMATION_POLL_SECONDS: float = 2.0
    REGISTRY_MIN_FEE_BALANCE: Decimal = Decimal('0.001')
    REGISTRY_MAX_ATTEMPTS: int = 5
    REGISTRY_RETRY_INTERVAL_SECONDS: float = 60.0
    REGISTRY_PENDING_GRACE_SECONDS: int = 300  # Pending older than this is picked up by retry
    REGISTRY_RETRY_BATCH_SIZE: int = 50

    # Gate
    EVENT_END_GRACE_MINUTES: int = 60
    DEFAULT_EVENT_DURATION_HOURS: int = 4
    GATE_MARK_USED_ON_ENTRY: bool = True


settings = Settings()  # type: ignore
