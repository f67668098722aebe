from typing import Optional

from dependency_injector.wiring import Provide, inject
from fastapi import Cookie, Depends, Header
from opentelemetry import trace

from src.platform.config.di import Container
from src.platform.exception.exceptions import ForbiddenError
from src.service.shared_kernel.domain.entity.user_entity import UserEntity, UserRole
from src.service.shared_kernel.driving_adapter.auth.jwt_auth import JwtAuth


AUTH_COOKIE_NAME = 'fastapiusersauth'


@inject
async def get_current_user(
    jwt_auth: JwtAuth = Depends(Provide[Container.jwt_auth]),
    authorization: Optional[str] = Header(None),
    cookie_token: Optional[str] = Cookie(None, alias=AUTH_COOKIE_NAME),
) -> UserEntity:
    """Bearer header first, auth cookie second (stateless, no DB query)"""
    token = cookie_token
    if authorization:
        scheme, _, credentials = authorization.partition(' ')
        if scheme.lower() == 'bearer' and credentials:
            token = credentials.strip()
    return jwt_auth.get_current_user_info_from_jwt(token)


async def require_buyer(current_user: UserEntity = Depends(get_current_user)) -> UserEntity:
    tracer = trace.get_tracer(__name__)
    with tracer.start_as_current_span(
        'auth.require_buyer',
        attributes={'user.id': current_user.id, 'user.role': current_user.role.value},
    ):
        if current_user.role != UserRole.BUYER:
            raise ForbiddenError('Only buyers can perform this action')
        return current_user


async def require_admin(current_user: UserEntity = Depends(get_current_user)) -> UserEntity:
    if current_user.role != UserRole.ADMIN:
        raise ForbiddenError('Only gate staff can perform this action')
    return current_user
