from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import JWTError, jwt
import structlog

from fincontrols.actor import ActorContext
from fincontrols.config import settings

logger = structlog.get_logger()

security = HTTPBearer()

_public_key: Optional[str] = None


def _load_public_key() -> str:
    global _public_key
    if _public_key is None:
        with open(settings.JWT_PUBLIC_KEY_PATH, "r") as f:
            _public_key = f.read()
    return _public_key


def verify_access_token(token: str) -> dict:
    """Decode an access token issued by the identity provider; raises JWTError."""
    payload = jwt.decode(token, _load_public_key(), algorithms=[settings.JWT_ALGORITHM])
    if payload.get("type") != "access":
        raise JWTError("Invalid token type")
    return payload


async def get_current_actor(
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> ActorContext:
    """FastAPI dependency: verify the bearer JWT and build the ActorContext."""
    try:
        payload = verify_access_token(credentials.credentials)
        return ActorContext(
            user_id=payload["sub"],
            tenant_id=payload["tenant_id"],
            role=payload["role"],
            email=payload.get("email"),
        )
    except (JWTError, KeyError) as e:
        logger.warning("auth_token_invalid", error=str(e))
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={
                "error": {
                    "code": "AUTH_TOKEN_INVALID",
                    "message": "Invalid or expired token",
                }
            },
            headers={"WWW-Authenticate": "Bearer"},
        )
