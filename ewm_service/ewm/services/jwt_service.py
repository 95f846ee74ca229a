"""
Bearer token checks for the EWM admin API.
Tokens are issued by the auth service; this module only verifies them and
decides whether the caller may moderate events.
"""

from typing import Optional, Dict, Any
from jose import JWTError, jwt
import logging

from ewm.core.config import config

logger = logging.getLogger(__name__)

REQUIRED_CLAIMS = ("user_id", "role")
MODERATOR_ROLES = frozenset({"admin"})


class JWTService:
    """
    Verifies tokens and applies the moderator role rule.
    """

    def __init__(self):
        self.secret_key: Optional[str] = None
        self.algorithm: Optional[str] = None
        self._initialized = False

    async def initialize(self):
        """Load the signing secret and algorithm."""
        self.secret_key = await config.get_jwt_secret()
        self.algorithm = await config.get_jwt_algorithm()
        self._initialized = True

    def verify_token(self, token: str) -> Optional[Dict[str, Any]]:
        """
        Decode a token and check that it names a user and a role.

        Returns:
            Token claims if valid, None otherwise
        """
        if not self._initialized:
            logger.error("JWT service not initialized")
            return None

        try:
            claims = jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except JWTError as e:
            logger.warning(f"JWT verification failed: {e}")
            return None

        missing = [claim for claim in REQUIRED_CLAIMS if claim not in claims]
        if missing:
            logger.warning(f"JWT is missing claims: {', '.join(missing)}")
            return None

        return claims

    @staticmethod
    def can_moderate(claims: Dict[str, Any]) -> bool:
        """Only moderators may publish or reject events."""
        return claims.get("role") in MODERATOR_ROLES

    @staticmethod
    def actor_id(claims: Dict[str, Any]) -> Optional[int]:
        """User ID from the claims, or None when it is not an integer."""
        try:
            return int(claims["user_id"])
        except (KeyError, TypeError, ValueError):
            return None


# Global JWT service instance
jwt_service = JWTService()
