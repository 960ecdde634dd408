"""
FastAPI Authentication Dependencies for Microservices

Builds an explicit SessionContext for each request. Business operations
receive the session as an argument; a missing session is None.

Accepted credentials, in priority order:
1. Internal service (X-Internal-Service + X-Internal-Service-Secret)
2. Bearer access token (Authorization header)
3. Trusted gateway headers (X-User-Id / user-id)
"""

import logging
from typing import Optional

from fastapi import Depends, Header, HTTPException, Request, status
from pydantic import BaseModel

from core.config import get_settings
from core.jwt_manager import JWTManager

logger = logging.getLogger(__name__)

INTERNAL_SERVICE_USER = "internal-service"


class SessionContext(BaseModel):
    """Authenticated caller"""
    user_id: str
    email: Optional[str] = None
    role: str = "authenticated"
    access_token: Optional[str] = None

    @property
    def is_internal(self) -> bool:
        return self.user_id == INTERNAL_SERVICE_USER


_jwt_manager: Optional[JWTManager] = None


def get_jwt_manager() -> Optional[JWTManager]:
    """JWT manager built from settings, None when no secret is configured"""
    global _jwt_manager
    secret = get_settings().jwt_secret
    if not secret:
        return None
    if _jwt_manager is None or _jwt_manager.secret_key != secret:
        _jwt_manager = JWTManager(secret_key=secret, audience=get_settings().jwt_audience)
    return _jwt_manager


def _bearer_token(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token:
        return None
    return token.strip()


async def get_session_context(
    request: Request,
    authorization: Optional[str] = Header(None),
    user_id: Optional[str] = Header(None, alias="user-id"),
    x_user_id: Optional[str] = Header(None, alias="X-User-Id"),
    x_internal_service: Optional[str] = Header(None, alias="X-Internal-Service"),
    x_internal_service_secret: Optional[str] = Header(None, alias="X-Internal-Service-Secret"),
) -> Optional[SessionContext]:
    """Resolve the caller, or None for anonymous requests"""
    settings = get_settings()

    # 1. Internal service
    if x_internal_service == "true" and x_internal_service_secret:
        if x_internal_service_secret == settings.internal_service_secret:
            logger.debug(f"Internal service request to {request.url.path}")
            return SessionContext(user_id=INTERNAL_SERVICE_USER, role="service")
        client_host = request.client.host if request.client else "unknown"
        logger.warning(f"Invalid internal service secret from {client_host}")

    # 2. Bearer token
    token = _bearer_token(authorization)
    if token:
        manager = get_jwt_manager()
        if manager is None:
            logger.warning("Bearer token received but JWT_SECRET is not configured")
        else:
            result = manager.verify_token(token)
            if result["valid"]:
                return SessionContext(
                    user_id=result["user_id"],
                    email=result.get("email"),
                    role=result.get("role", "authenticated"),
                    access_token=token,
                )
            logger.info(f"Rejected bearer token: {result['error']}")
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail=result["error"],
            )

    # 3. Gateway headers
    user_id_value = user_id or x_user_id
    if user_id_value:
        return SessionContext(user_id=user_id_value)

    return None


async def require_session(
    session: Optional[SessionContext] = Depends(get_session_context),
) -> SessionContext:
    """Require an authenticated caller"""
    if session is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User authentication required"
        )
    return session


async def require_internal_service(
    session: Optional[SessionContext] = Depends(get_session_context),
) -> SessionContext:
    """Require an internal service caller"""
    if session is None or not session.is_internal:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Internal service authentication required"
        )
    return session


__all__ = [
    "SessionContext",
    "INTERNAL_SERVICE_USER",
    "get_session_context",
    "require_session",
    "require_internal_service",
    "get_jwt_manager",
]
