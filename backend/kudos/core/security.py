import jwt
from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any
from kudos.core.config import settings


class SecurityService:
    """Verifies bearer tokens issued by the external identity provider"""

    @staticmethod
    def decode_token(token: str) -> Optional[Dict[str, Any]]:
        """Decode and validate a JWT token"""
        options = {"require": ["sub", "exp"]}
        try:
            return jwt.decode(
                token,
                settings.JWT_SECRET_KEY,
                algorithms=[settings.JWT_ALGORITHM],
                audience=settings.JWT_AUDIENCE,
                options=options,
            )
        except jwt.ExpiredSignatureError:
            return None
        except jwt.InvalidTokenError:
            return None

    @staticmethod
    def create_access_token(
        subject: str,
        email: str,
        name: Optional[str] = None,
        expires_delta: Optional[timedelta] = None
    ) -> str:
        """Mint a token shaped like the identity provider's (local development and tests)"""
        now = datetime.now(timezone.utc)
        payload = {
            "sub": subject,
            "email": email,
            "name": name,
            "iat": now,
            "exp": now + (expires_delta or timedelta(hours=24)),
        }
        if settings.JWT_AUDIENCE:
            payload["aud"] = settings.JWT_AUDIENCE
        return jwt.encode(payload, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)
