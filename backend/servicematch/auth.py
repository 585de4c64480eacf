import base64
import hashlib
import hmac
import os
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Header, HTTPException, status

ROLES = ("client", "provider")


def _read_ttl_hours(default: int = 24) -> int:
    try:
        value = int(os.getenv("AUTH_TOKEN_TTL_HOURS", str(default)))
    except ValueError:
        return default
    return value if value > 0 else default


TOKEN_TTL_HOURS = _read_ttl_hours()
AUTH_REQUIRED = os.getenv("AUTH_REQUIRED", "false").lower() in {"1", "true", "yes"}
DEMO_PASSWORD = os.getenv("AUTH_DEMO_PASSWORD", "servicematch-demo")
_AUTH_SECRET = os.getenv("AUTH_SECRET", "dev-insecure-secret-change-me")


@dataclass(frozen=True)
class TokenClaims:
    user_id: str
    role: str
    expires_at: datetime


def _b64url(data: bytes) -> str:
    return base64.urlsafe_b64encode(data).decode("utf-8").rstrip("=")


def _b64urldecode(value: str) -> bytes:
    padding = "=" * ((4 - len(value) % 4) % 4)
    return base64.urlsafe_b64decode((value + padding).encode("utf-8"))


def _sign(payload: bytes) -> bytes:
    return hmac.new(_AUTH_SECRET.encode("utf-8"), payload, hashlib.sha256).digest()


def create_access_token(user_id: str, role: str = "client") -> tuple[str, str]:
    """Signed ``user|role|expiry`` token; returns the token and its ISO expiry."""
    if role not in ROLES:
        raise ValueError(f"Unknown role: {role}")
    expiry = datetime.now(timezone.utc) + timedelta(hours=TOKEN_TTL_HOURS)
    payload = f"{user_id}|{role}|{int(expiry.timestamp())}".encode("utf-8")
    return f"{_b64url(payload)}.{_b64url(_sign(payload))}", expiry.isoformat()


def decode_access_token(token: str) -> Optional[TokenClaims]:
    try:
        payload_part, sig_part = token.split(".", 1)
        payload = _b64urldecode(payload_part)
        if not hmac.compare_digest(_b64urldecode(sig_part), _sign(payload)):
            return None
        user_id, role, expiry_ts = payload.decode("utf-8").split("|", 2)
        expires_at = datetime.fromtimestamp(int(expiry_ts), tz=timezone.utc)
    except (ValueError, UnicodeDecodeError):
        return None
    if role not in ROLES or datetime.now(timezone.utc) > expires_at:
        return None
    return TokenClaims(user_id=user_id, role=role, expires_at=expires_at)


def parse_bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    scheme, _, value = authorization.partition(" ")
    if scheme.lower() != "bearer":
        return None
    return value.strip() or None


def resolve_request_claims(authorization: Optional[str]) -> Optional[TokenClaims]:
    token = parse_bearer_token(authorization)
    return decode_access_token(token) if token else None


def require_claims(authorization: Optional[str] = Header(default=None)) -> TokenClaims:
    claims = resolve_request_claims(authorization)
    if claims is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid or missing bearer token")
    return claims


def assert_actor_authorized(actor_user_id: str, authorization: Optional[str] = None) -> None:
    """Client identity stays opaque; a token, when sent, must name the acting user."""
    claims = resolve_request_claims(authorization)
    if claims is None:
        if AUTH_REQUIRED:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Authentication required")
        return
    if claims.user_id != actor_user_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Token user does not match actor user")
