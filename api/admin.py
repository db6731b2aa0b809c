"""Administrator routes over other principals' sessions and roles."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status

from session_auth.dependencies import get_session_manager, require_role
from session_auth.exceptions import AuthException, SessionNotFound
from session_auth.models import Role, TokenClaims
from session_auth.schemas import ApiResponse, PrincipalOut, RoleUpdateRequest, SessionOut
from session_auth.services.session_manager import SessionManager

router = APIRouter()

require_admin = require_role(Role.ADMINISTRATOR)


@router.get("/principals/{principal_id}/sessions", response_model=ApiResponse, status_code=status.HTTP_200_OK)
async def list_principal_sessions(
    principal_id: str,
    _: TokenClaims = Depends(require_admin),
    session_manager: SessionManager = Depends(get_session_manager),
) -> ApiResponse:
    try:
        sessions = await session_manager.list_sessions(principal_id)
    except AuthException as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.message) from exc

    return ApiResponse(
        success=True,
        message="Sessions retrieved",
        data={"sessions": [SessionOut(**session).model_dump() for session in sessions]},
    )


@router.delete(
    "/principals/{principal_id}/sessions/{session_id}",
    response_model=ApiResponse,
    status_code=status.HTTP_200_OK,
)
async def revoke_principal_session(
    principal_id: str,
    session_id: str,
    _: TokenClaims = Depends(require_admin),
    session_manager: SessionManager = Depends(get_session_manager),
) -> ApiResponse:
    try:
        await session_manager.revoke(principal_id, session_id)
    except SessionNotFound as exc:
        raise HTTPException(status_code=404, detail="Session not found") from exc

    return ApiResponse(success=True, message="Session revoked", data={"session_id": session_id})


@router.patch("/principals/{principal_id}/role", response_model=ApiResponse, status_code=status.HTTP_200_OK)
async def update_role(
    principal_id: str,
    payload: RoleUpdateRequest,
    _: TokenClaims = Depends(require_admin),
    session_manager: SessionManager = Depends(get_session_manager),
) -> ApiResponse:
    try:
        principal = await session_manager.set_role(principal_id, payload.role)
    except AuthException as exc:
        raise HTTPException(status_code=exc.status_code, detail=exc.message) from exc

    return ApiResponse(
        success=True,
        message="Role updated",
        data={"user": PrincipalOut(**principal).model_dump(mode="json")},
    )
