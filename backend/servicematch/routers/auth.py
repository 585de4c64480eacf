from fastapi import APIRouter, Depends, HTTPException

from servicematch.auth import DEMO_PASSWORD, TokenClaims, create_access_token, require_claims
from servicematch.models import AuthLoginRequest, AuthLoginResponse, AuthMeResponse
from servicematch.services.matching_engine import matching_engine

router = APIRouter(prefix="/auth", tags=["auth"])


def _issue(user_id: str, role: str) -> AuthLoginResponse:
    token, expires_at = create_access_token(user_id=user_id, role=role)
    return AuthLoginResponse(access_token=token, user_id=user_id, role=role, expires_at=expires_at)


@router.post("/login", response_model=AuthLoginResponse)
def login(payload: AuthLoginRequest):
    user_id = payload.user_id.strip()
    if not user_id:
        raise HTTPException(status_code=400, detail="user_id is required")
    if payload.password != DEMO_PASSWORD:
        raise HTTPException(status_code=401, detail="Invalid credentials")
    # Provider accounts share their id with the catalogue entry.
    if payload.role == "provider" and matching_engine.store.get_provider(user_id) is None:
        raise HTTPException(status_code=404, detail="Provider not found")
    return _issue(user_id, payload.role)


@router.post("/refresh", response_model=AuthLoginResponse)
def refresh(claims: TokenClaims = Depends(require_claims)):
    return _issue(claims.user_id, claims.role)


@router.get("/me", response_model=AuthMeResponse)
def me(claims: TokenClaims = Depends(require_claims)):
    return AuthMeResponse(user_id=claims.user_id, role=claims.role, expires_at=claims.expires_at.isoformat())
