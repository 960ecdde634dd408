"""
JWT Token Manager for the Concierge Platform

Verifies HS256 access tokens issued by the auth backend. Tokens carry the
user id in `sub` and the audience "authenticated".
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import jwt

logger = logging.getLogger(__name__)


@dataclass
class TokenClaims:
    """Standard token claims"""
    user_id: str
    email: Optional[str] = None
    role: str = "authenticated"
    metadata: Dict[str, Any] = field(default_factory=dict)


class JWTManager:
    """Access token verification (and issuance for local development)"""

    def __init__(
        self,
        secret_key: str,
        algorithm: str = "HS256",
        audience: str = "authenticated",
        access_token_expiry: int = 3600,
    ):
        """
        Initialize JWT Manager

        Args:
            secret_key: Shared secret used to sign tokens
            algorithm: JWT algorithm (default: HS256)
            audience: Expected audience claim
            access_token_expiry: Access token expiry in seconds
        """
        if not secret_key:
            raise ValueError("JWT secret key is required")
        self.secret_key = secret_key
        self.algorithm = algorithm
        self.audience = audience
        self.access_token_expiry = access_token_expiry

    def create_access_token(
        self,
        claims: TokenClaims,
        expires_delta: Optional[timedelta] = None
    ) -> str:
        """Create an access token"""
        now = datetime.now(tz=timezone.utc)
        expires = now + (expires_delta or timedelta(seconds=self.access_token_expiry))

        payload = {
            "sub": claims.user_id,
            "aud": self.audience,
            "iat": int(now.timestamp()),
            "exp": int(expires.timestamp()),
            "role": claims.role,
            "email": claims.email,
            "user_metadata": claims.metadata,
        }
        payload = {k: v for k, v in payload.items() if v is not None}

        return jwt.encode(payload, self.secret_key, algorithm=self.algorithm)

    def verify_token(self, token: str) -> Dict[str, Any]:
        """
        Verify and decode a JWT token

        Args:
            token: JWT token string

        Returns:
            Dictionary with verification result and payload
        """
        try:
            payload = jwt.decode(
                token,
                self.secret_key,
                algorithms=[self.algorithm],
                audience=self.audience,
            )
        except jwt.ExpiredSignatureError:
            return {"valid": False, "error": "Token has expired"}
        except jwt.InvalidAudienceError:
            return {"valid": False, "error": "Invalid token audience"}
        except jwt.InvalidTokenError as e:
            return {"valid": False, "error": f"Invalid token: {str(e)}"}

        if not payload.get("sub"):
            return {"valid": False, "error": "Token has no subject"}

        return {
            "valid": True,
            "payload": payload,
            "user_id": payload["sub"],
            "email": payload.get("email"),
            "role": payload.get("role", "authenticated"),
            "expires_at": datetime.fromtimestamp(payload.get("exp", 0), tz=timezone.utc),
        }
