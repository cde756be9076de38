"""
API Dependency Injection Module

Provides the dependencies required by the FastAPI routes.
"""

from typing import Annotated

from fastapi import Depends, Header, Request

from coze2openai.common.errors import AuthenticationError
from coze2openai.config import Settings, get_settings
from coze2openai.services.registry import Gateway


def get_gateway(request: Request) -> Gateway:
    """Gateway state built during application startup."""
    return request.app.state.gateway


GatewayDep = Annotated[Gateway, Depends(get_gateway)]
SettingsDep = Annotated[Settings, Depends(get_settings)]


def _extract_bearer_token(authorization: str | None) -> str | None:
    if not authorization:
        return None
    if authorization.lower().startswith("bearer "):
        return authorization[7:].strip() or None
    return authorization.strip() or None


async def verify_api_token(
    gateway: GatewayDep,
    authorization: str = Header(None, description="Bearer token"),
) -> None:
    """
    Bearer token authentication

    Only enforced when at least one token is configured.

    Raises:
        AuthenticationError: Token missing or not accepted
    """
    if not gateway.auth_enabled:
        return
    if not gateway.is_valid_token(_extract_bearer_token(authorization)):
        raise AuthenticationError()
