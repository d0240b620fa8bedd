# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Redis service for the JWT logout blocklist.

Uses the redis-py client. When no ``REDIS_URL`` is configured the service
stays disabled: tokens are never considered blocked and logout cannot
revoke a token before it expires.
"""

import time
from typing import Optional, Dict, Any
import redis
from opentelemetry import trace
import logging

tracer = trace.get_tracer(__name__)
logger = logging.getLogger(__name__)

BLOCKLIST_PREFIX = "jwt:blocked:"


class RedisConnectionError(Exception):
    """Raised when Redis connection fails."""
    pass


class RedisService:
    """
    Redis service with the standard redis-py client.

    Connection failures at startup leave the client unset so the API keeps
    serving requests without the blocklist.
    """

    def __init__(self, redis_url: Optional[str] = None, client: Optional[redis.Redis] = None):
        """
        Initialize the Redis service.

        Args:
            redis_url: Redis connection URL (redis://host:port); None disables the service
            client: Pre-built client, mainly for tests
        """
        self.redis_url = redis_url
        self.client: Optional[redis.Redis] = client

        if self.client is not None or not self.redis_url:
            if self.client is None:
                logger.info("REDIS_URL not configured, token blocklist disabled")
            return

        try:
            self.client = redis.from_url(self.redis_url, decode_responses=True)
            self._test_connection()
            logger.info(f"Redis service initialized successfully at {self.redis_url}")
        except RedisConnectionError as e:
            logger.error(f"Failed to initialize Redis service: {str(e)}")
            self.client = None

    def _test_connection(self) -> None:
        """Test Redis connection."""
        try:
            if not self.client.ping():
                raise RedisConnectionError("Redis ping failed")
        except redis.RedisError as e:
            raise RedisConnectionError(f"Redis connection failed: {str(e)}")

    def is_available(self) -> bool:
        """Check if Redis service is available."""
        return self.client is not None

    def _handle_redis_error(self, operation: str, error: Exception) -> None:
        logger.error(f"Redis {operation} failed: {str(error)}")

    def set_with_ttl(self, key: str, value: str, ttl_seconds: int) -> bool:
        """
        Set a key with an expiry.

        Returns:
            True if successful, False otherwise
        """
        if not self.is_available():
            return False

        with tracer.start_as_current_span("redis.set_with_ttl") as span:
            span.set_attributes({"redis.key": key, "redis.ttl": ttl_seconds})
            try:
                result = self.client.setex(key, max(int(ttl_seconds), 1), value)
                span.set_attribute("redis.result", "success")
                return bool(result)
            except redis.RedisError as e:
                span.set_attribute("redis.result", "error")
                self._handle_redis_error("SETEX", e)
                return False

    def exists(self, key: str) -> bool:
        if not self.is_available():
            return False
        try:
            return self.client.exists(key) > 0
        except redis.RedisError as e:
            self._handle_redis_error("EXISTS", e)
            return False

    # JWT Token Blocklist Methods

    def is_token_blocked(self, token_id: str) -> bool:
        """
        Check if a JWT token is in the blocklist.

        Returns False when Redis is unavailable.
        """
        if not self.is_available():
            logger.debug("Redis unavailable for token blocklist check - allowing token")
            return False

        with tracer.start_as_current_span("redis.is_token_blocked") as span:
            span.set_attributes({
                "redis.operation": "is_token_blocked",
                "auth.token_id": token_id
            })

            result = self.exists(f"{BLOCKLIST_PREFIX}{token_id}")

            span.set_attribute("auth.token_blocked", result)
            logger.debug(f"Token blocklist check: {token_id} -> {'blocked' if result else 'allowed'}")
            return result

    def block_token(self, token_id: str, ttl_seconds: int) -> bool:
        """
        Add a JWT token to the blocklist.

        Args:
            token_id: Unique token identifier
            ttl_seconds: Time to live (should match remaining token lifetime)

        Returns:
            True if token was blocked, False otherwise
        """
        if not self.is_available():
            logger.warning("Redis unavailable - token blocklist disabled, token not revoked")
            return False

        with tracer.start_as_current_span("redis.block_token") as span:
            span.set_attributes({
                "redis.operation": "block_token",
                "auth.token_id": token_id,
                "redis.ttl": ttl_seconds
            })

            result = self.set_with_ttl(f"{BLOCKLIST_PREFIX}{token_id}", "1", ttl_seconds)

            span.set_attribute("auth.token_block_result", "success" if result else "failed")
            if result:
                logger.info(f"Token blocked successfully: {token_id} (TTL: {ttl_seconds}s)")
            else:
                logger.error(f"Failed to block token: {token_id}")
            return result

    # Health Check Methods

    def health_check(self) -> Dict[str, Any]:
        """
        Perform Redis health check.

        Returns:
            Health check results
        """
        if not self.is_available():
            return {
                "status": "disabled" if not self.redis_url else "unavailable",
                "message": "Redis client not initialized",
                "timestamp": time.time()
            }

        start_time = time.time()
        try:
            self.client.ping()
        except redis.RedisError as e:
            return {
                "status": "unhealthy",
                "message": str(e),
                "timestamp": time.time()
            }

        return {
            "status": "healthy",
            "response_time_ms": round((time.time() - start_time) * 1000, 2),
            "timestamp": time.time()
        }
