"""
Authentication API router.

Routes (mounted at /api/auth):
- POST /login - Check credentials and set the session cookie
- POST /logout - Close the session and clear the cookie
- GET /me - The logged-in user
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, Response

from storefront.api.dependencies import (
    get_app_settings,
    get_auth_service,
    get_current_principal,
    get_session_token,
)
from storefront.api.requests import LoginRequest
from storefront.api.responses import LoginResponse, MeResponse, MessageResponse
from storefront.auth import AuthService
from storefront.config import Settings
from storefront.domain import Principal

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/login", response_model=LoginResponse)
async def login(
    request: LoginRequest,
    response: Response,
    auth_service: AuthService = Depends(get_auth_service),
    settings: Settings = Depends(get_app_settings),
) -> LoginResponse:
    token, principal = await auth_service.login(
        request.username, request.password
    )
    response.set_cookie(
        settings.session_cookie_name,
        token,
        httponly=True,
        secure=settings.cookie_secure,
        samesite="lax",
    )
    return LoginResponse(
        message="Login successful",
        username=principal.username,
        role=principal.role,
    )


@router.post("/logout", response_model=MessageResponse)
async def logout(
    response: Response,
    token: Optional[str] = Depends(get_session_token),
    auth_service: AuthService = Depends(get_auth_service),
    settings: Settings = Depends(get_app_settings),
) -> MessageResponse:
    await auth_service.logout(token)
    response.delete_cookie(settings.session_cookie_name)
    return MessageResponse(message="Logout successful")


@router.get("/me", response_model=MeResponse)
async def me(
    principal: Principal = Depends(get_current_principal),
) -> MeResponse:
    return MeResponse.from_domain(principal)
