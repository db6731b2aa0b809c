"""Auth API routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status

from api.handlers import create_error_response
from session_auth.config import AuthConfig
from session_auth.dependencies import (
    clear_refresh_cookie,
    enforce_login_rate_limit,
    get_auth_config,
    get_current_claims,
    get_rate_limiter,
    get_session_manager,
    read_refresh_cookie,
    reset_login_rate_limit,
    set_refresh_cookie,
)
from session_auth.exceptions import AuthException, SessionNotFound
from session_auth.interfaces.rate_limiter import RateLimiter
from session_auth.models import LoginResult, TokenClaims
from session_auth.schemas import (
    ApiResponse,
    LoginRequest,
    PasscodeLoginRequest,
    PrincipalOut,
    RegisterRequest,
    SessionOut,
)
from session_auth.services.session_manager import SessionManager

router = APIRouter()


def _device_info(request: Request, declared: str | None) -> str:
    return declared or request.headers.get("user-agent") or "Unknown device"


def _login_response(response: Response, config: AuthConfig, result: LoginResult) -> ApiResponse:
    # Refresh token only ever travels in the cookie, access token only in the body
    set_refresh_cookie(response, config, result.refresh_token, result.refresh_expires_at)
    return ApiResponse(
        success=True,
        message="Login successful",
        data={
            "user": PrincipalOut(**result.principal).model_dump(mode="json"),
            "session_id": result.session_id,
            "access_token": result.access_token,
            "access_expires_at": result.access_expires_at,
        },
    )


@router.post("/register", response_model=ApiResponse, status_code=status.HTTP_201_CREATED)
async def register(
    payload: RegisterRequest,
    session_manager: SessionManager = Depends(get_session_manager),
) -> ApiResponse:
    try:
        principal = await session_manager.register(
            email=payload.email,
            password=payload.password,
            role=payload.role,
            mobile=payload.mobile,
        )
    except AuthException as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.message) from exc

    return ApiResponse(
        success=True,
        message="Registration successful",
        data={"user": PrincipalOut(**principal).model_dump(mode="json")},
    )


@router.post("/login", response_model=ApiResponse, status_code=status.HTTP_200_OK)
async def login(
    payload: LoginRequest,
    request: Request,
    response: Response,
    _: None = Depends(enforce_login_rate_limit),
    config: AuthConfig = Depends(get_auth_config),
    limiter: RateLimiter = Depends(get_rate_limiter),
    session_manager: SessionManager = Depends(get_session_manager),
) -> ApiResponse:
    try:
        result = await session_manager.login_with_password(
            payload.email, payload.password, _device_info(request, payload.device_info)
        )
    except AuthException as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.message) from exc

    await reset_login_rate_limit(request, limiter)
    return _login_response(response, config, result)


@router.post("/login/otp", response_model=ApiResponse, status_code=status.HTTP_200_OK)
async def login_otp(
    payload: PasscodeLoginRequest,
    request: Request,
    response: Response,
    _: None = Depends(enforce_login_rate_limit),
    config: AuthConfig = Depends(get_auth_config),
    limiter: RateLimiter = Depends(get_rate_limiter),
    session_manager: SessionManager = Depends(get_session_manager),
) -> ApiResponse:
    try:
        result = await session_manager.login_with_passcode(
            payload.mobile, payload.otp, _device_info(request, payload.device_info)
        )
    except AuthException as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.message) from exc

    await reset_login_rate_limit(request, limiter)
    return _login_response(response, config, result)


@router.post("/refresh", response_model=ApiResponse, status_code=status.HTTP_200_OK)
async def refresh(
    request: Request,
    response: Response,
    config: AuthConfig = Depends(get_auth_config),
    session_manager: SessionManager = Depends(get_session_manager),
):
    refresh_token = read_refresh_cookie(request, config)
    try:
        if not refresh_token:
            raise AuthException("Unauthorized", status_code=401)
        result = await session_manager.refresh(refresh_token)
    except AuthException as exc:
        # Every failure looks the same and drops the cookie so the client re-authenticates
        error_response = create_error_response(exc.status_code, "Unauthorized")
        clear_refresh_cookie(error_response, config)
        return error_response

    set_refresh_cookie(response, config, result.refresh_token, result.refresh_expires_at)
    return ApiResponse(
        success=True,
        message="Token refreshed",
        data={
            "session_id": result.session_id,
            "access_token": result.access_token,
            "access_expires_at": result.access_expires_at,
        },
    )


@router.post("/logout", response_model=ApiResponse, status_code=status.HTTP_200_OK)
async def logout(
    request: Request,
    response: Response,
    config: AuthConfig = Depends(get_auth_config),
    session_manager: SessionManager = Depends(get_session_manager),
) -> ApiResponse:
    await session_manager.logout(read_refresh_cookie(request, config))
    clear_refresh_cookie(response, config)
    return ApiResponse(success=True, message="Logged out", data={})


@router.get("/me", response_model=ApiResponse, status_code=status.HTTP_200_OK)
async def me(
    claims: TokenClaims = Depends(get_current_claims),
    session_manager: SessionManager = Depends(get_session_manager),
) -> ApiResponse:
    try:
        principal = await session_manager.get_principal(claims.principal_id)
    except AuthException as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.message) from exc

    return ApiResponse(
        success=True,
        message="User retrieved",
        data={"user": PrincipalOut(**principal).model_dump(mode="json")},
    )


@router.get("/sessions", response_model=ApiResponse, status_code=status.HTTP_200_OK)
async def list_sessions(
    claims: TokenClaims = Depends(get_current_claims),
    session_manager: SessionManager = Depends(get_session_manager),
) -> ApiResponse:
    try:
        sessions = await session_manager.list_sessions(claims.principal_id)
    except AuthException as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.message) from exc

    return ApiResponse(
        success=True,
        message="Sessions retrieved",
        data={"sessions": [SessionOut(**session).model_dump() for session in sessions]},
    )


@router.delete("/sessions/{session_id}", response_model=ApiResponse, status_code=status.HTTP_200_OK)
async def revoke_session(
    session_id: str,
    claims: TokenClaims = Depends(get_current_claims),
    session_manager: SessionManager = Depends(get_session_manager),
) -> ApiResponse:
    try:
        await session_manager.revoke(claims.principal_id, session_id)
    except SessionNotFound as exc:
        raise HTTPException(status_code=404, detail="Session not found") from exc

    return ApiResponse(success=True, message="Session revoked", data={"session_id": session_id})
