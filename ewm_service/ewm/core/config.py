"""
Configuration management for EWM Service.
Uses Zero Python SDK for secure configuration.
"""

import os
import asyncio
import concurrent.futures
from urllib.parse import quote_plus
from typing import Dict, Any, Optional
import logging
from zero_python_sdk import zero

logger = logging.getLogger(__name__)


class ZeroSecretsManager:
    """
    Zero secrets client using the official Zero Python SDK.
    Secrets are fetched once and cached for the process lifetime.
    """

    def __init__(self, zero_token: str, caller_name: str = "ewm"):
        self.zero_token = zero_token
        self.caller_name = caller_name
        self._cache: Dict[str, Any] = {}
        self._secrets = None

    async def _fetch_secrets(self):
        """Fetch secrets from Zero if not already cached."""
        if self._secrets is None:
            try:
                loop = asyncio.get_running_loop()
                with concurrent.futures.ThreadPoolExecutor() as executor:
                    self._secrets = await loop.run_in_executor(
                        executor,
                        lambda: zero(
                            token=self.zero_token,
                            pick=["ewm"],
                            caller_name=self.caller_name
                        ).fetch()
                    )
                logger.info("Successfully fetched secrets from Zero")
            except Exception as e:
                logger.error(f"Failed to fetch secrets from Zero: {e}")
                self._secrets = {}

    def _normalize_key(self, key: str) -> str:
        """Normalize a key to lowercase and replace underscores with hyphens."""
        return key.lower().replace("_", "-")

    async def get_secret(self, key: str) -> Optional[str]:
        """
        Get a secret value by key.

        Args:
            key: The secret key to retrieve

        Returns:
            Secret value or None if not found
        """
        key = self._normalize_key(key)
        if key in self._cache:
            return self._cache[key]

        await self._fetch_secrets()
        secret_value = self._secrets.get("ewm", {}).get(key)

        if secret_value:
            self._cache[key] = secret_value

        return secret_value

    async def close(self):
        """Drop cached secrets."""
        self._cache.clear()
        self._secrets = None


class EwmConfig:
    """
    EWM Service configuration manager.
    Every getter falls back to a local default when the secret is absent.
    """

    def __init__(self):
        self.zero_token = os.getenv("ZERO_TOKEN")
        if not self.zero_token:
            raise ValueError("ZERO_TOKEN environment variable is required")

        self.secrets_manager = ZeroSecretsManager(self.zero_token)

    async def get_database_url(self) -> str:
        """Get the database connection URL."""
        host = await self.secrets_manager.get_secret("DB_HOST") or "localhost"
        port = await self.secrets_manager.get_secret("DB_PORT") or "5432"
        name = await self.secrets_manager.get_secret("DB_NAME") or "ewm"
        user = await self.secrets_manager.get_secret("DB_USER") or "ewm"
        password = await self.secrets_manager.get_secret("DB_PASSWORD") or "ewm"

        return f"postgresql+psycopg://{user}:{quote_plus(password)}@{host}:{port}/{name}"

    async def get_redis_url(self) -> str:
        """Get the Redis connection URL."""
        host = await self.secrets_manager.get_secret("REDIS_HOST") or "localhost"
        port = await self.secrets_manager.get_secret("REDIS_PORT") or "6379"
        password = await self.secrets_manager.get_secret("REDIS_PASSWORD")
        use_tls = await self.secrets_manager.get_secret("REDIS_USE_TLS")

        protocol = "rediss://" if use_tls else "redis://"

        if password:
            return f"{protocol}:{password}@{host}:{port}"
        return f"{protocol}{host}:{port}"

    async def get_jwt_secret(self) -> str:
        """Get JWT secret key."""
        return await self.secrets_manager.get_secret("JWT_SECRET") or "your-secret-key-change-in-production"

    async def get_jwt_algorithm(self) -> str:
        """Get JWT algorithm."""
        return await self.secrets_manager.get_secret("JWT_ALGORITHM") or "HS256"

    async def get_consistency_config(self) -> Dict[str, Any]:
        """Get locking and retry settings for capacity-sensitive writes."""
        return {
            "lock_timeout_seconds": int(await self.secrets_manager.get_secret("LOCK_TIMEOUT_SECONDS") or "30"),
            "lock_blocking_timeout_seconds": int(await self.secrets_manager.get_secret("LOCK_BLOCKING_TIMEOUT_SECONDS") or "10"),
            "max_retry_attempts": int(await self.secrets_manager.get_secret("MAX_RETRY_ATTEMPTS") or "3"),
            "retry_delay_ms": int(await self.secrets_manager.get_secret("RETRY_DELAY_MS") or "100"),
            "enable_distributed_locks": await self.secrets_manager.get_secret("ENABLE_DISTRIBUTED_LOCKS") == "true",
        }

    async def get_event_rules_config(self) -> Dict[str, int]:
        """Get lead-time rules for event dates."""
        return {
            "creation_lead_hours": int(await self.secrets_manager.get_secret("EVENT_CREATION_LEAD_HOURS") or "2"),
            "publish_lead_hours": int(await self.secrets_manager.get_secret("EVENT_PUBLISH_LEAD_HOURS") or "1"),
        }

    async def get_stats_config(self) -> Dict[str, Any]:
        """Get stats server client settings."""
        return {
            "base_url": await self.secrets_manager.get_secret("STATS_SERVER_URL") or "http://localhost:9090",
            "timeout_seconds": float(await self.secrets_manager.get_secret("STATS_TIMEOUT_SECONDS") or "2"),
        }

    async def get_database_config(self) -> Dict[str, Any]:
        """Get database pool configuration."""
        return {
            "pool_size": int(await self.secrets_manager.get_secret("DB_POOL_SIZE") or "20"),
            "max_overflow": int(await self.secrets_manager.get_secret("DB_MAX_OVERFLOW") or "30"),
            "pool_timeout": int(await self.secrets_manager.get_secret("DB_POOL_TIMEOUT") or "30"),
            "pool_recycle": int(await self.secrets_manager.get_secret("DB_POOL_RECYCLE") or "3600"),
        }

    async def close(self):
        """Close the secrets manager."""
        await self.secrets_manager.close()


# Global config instance
config = EwmConfig()
