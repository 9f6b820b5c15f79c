"""Authentication service for identity-provider issued JWTs."""

from dataclasses import dataclass
from typing import Optional
from uuid import UUID

import jwt

from src.exceptions import InvalidTokenError, MissingTokenError
from src.utils.logger import get_logger

log = get_logger(__name__)


@dataclass
class AuthenticatedUser:
    """Claims of a verified token."""

    user_id: UUID
    tenant_id: Optional[str] = None
    email: Optional[str] = None


class AuthService:
    """Verifies HMAC-signed bearer tokens issued by the identity provider."""

    def __init__(self, secret: str, algorithm: str = "HS256", issuer: Optional[str] = None) -> None:
        self._secret = secret
        self._algorithm = algorithm
        self._issuer = issuer

    async def verify_token(self, authorization_header: Optional[str]) -> AuthenticatedUser:
        """
        Verify a JWT and extract the user id.

        Args:
            authorization_header: The Authorization header value (Bearer <token>)

        Returns:
            AuthenticatedUser with the token's subject

        Raises:
            MissingTokenError: If no token is provided
            InvalidTokenError: If token is invalid or expired
        """
        if not authorization_header:
            raise MissingTokenError()

        # Extract token from Bearer scheme
        parts = authorization_header.split()
        if len(parts) != 2 or parts[0].lower() != "bearer":
            raise InvalidTokenError("Invalid authorization header format")

        token = parts[1]

        if not self._secret:
            log.error("token verification failed", error="jwt secret not configured")
            raise InvalidTokenError("Token verification failed")

        try:
            options = {"verify_exp": True, "verify_iat": True, "verify_nbf": True}
            kwargs = {"issuer": self._issuer} if self._issuer else {}
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                options=options,
                **kwargs,
            )

            subject = payload.get("sub") or payload.get("userId")
            if not subject:
                raise InvalidTokenError("Token missing user identifier")

            try:
                user_id = UUID(str(subject))
            except ValueError:
                raise InvalidTokenError("Token user identifier is not a valid id")

            log.debug("token verified", user_id=str(user_id))

            return AuthenticatedUser(
                user_id=user_id,
                tenant_id=payload.get("tenantId") or payload.get("tenant_id"),
                email=payload.get("email"),
            )

        except jwt.ExpiredSignatureError:
            log.warning("token expired")
            raise InvalidTokenError("Token has expired")
        except InvalidTokenError:
            raise
        except jwt.InvalidTokenError as e:
            log.warning("token invalid", error=str(e))
            raise InvalidTokenError(f"Token validation failed: {str(e)}")


# Singleton instance
_auth_service: Optional[AuthService] = None


def get_auth_service() -> AuthService:
    """Get singleton auth service instance."""
    global _auth_service
    if _auth_service is None:
        from src.config import get_settings

        settings = get_settings()
        _auth_service = AuthService(
            secret=settings.jwt_secret,
            algorithm=settings.jwt_algorithm,
            issuer=settings.jwt_issuer,
        )
    return _auth_service
