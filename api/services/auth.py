# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Authentication service for JWT token management and password hashing.

This module provides JWT token generation and validation using RS256 signing
and bcrypt password hashing for police and citizen accounts.
"""

import os
import uuid
import jwt
import bcrypt
from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any, Tuple
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from opentelemetry import trace
import logging

from models.entities import User

tracer = trace.get_tracer(__name__)
logger = logging.getLogger(__name__)


class AuthenticationError(Exception):
    """Raised when authentication fails."""
    pass


class TokenValidationError(Exception):
    """Raised when token validation fails."""
    pass


def generate_key_pair() -> Tuple[str, str]:
    """Generate an RSA key pair as (private PEM, public PEM)."""
    private_key = rsa.generate_private_key(
        public_exponent=65537,
        key_size=2048
    )

    private_pem = private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption()
    ).decode('utf-8')

    public_pem = private_key.public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo
    ).decode('utf-8')

    return private_pem, public_pem


_dev_key_pair: Optional[Tuple[str, str]] = None


def _get_dev_key_pair() -> Tuple[str, str]:
    global _dev_key_pair
    if _dev_key_pair is None:
        logger.warning("No JWT key pair configured, generating development key pair")
        _dev_key_pair = generate_key_pair()
    return _dev_key_pair


class AuthService:
    """
    JWT authentication service with RS256 signing and bcrypt password hashing.

    Issues a single access token per login; there are no refresh tokens.
    Logout is handled by blocklisting the token id in Redis.
    """

    def __init__(self, private_key: Optional[str] = None, public_key: Optional[str] = None,
                 access_token_expires: Optional[int] = None, bcrypt_rounds: Optional[int] = None):
        """
        Initialize the authentication service.

        Args:
            private_key: RS256 private key for token signing (PEM format)
            public_key: RS256 public key for token verification (PEM format)
            access_token_expires: Access token lifetime in seconds
            bcrypt_rounds: bcrypt cost factor
        """
        private_key = private_key or os.getenv("JWT_PRIVATE_KEY")
        public_key = public_key or os.getenv("JWT_PUBLIC_KEY")
        if not private_key or not public_key:
            # Both halves must come from the same pair
            private_key, public_key = _get_dev_key_pair()

        # Keys passed through env files often carry escaped newlines
        self.private_key = private_key.replace('\\n', '\n')
        self.public_key = public_key.replace('\\n', '\n')
        self.algorithm = "RS256"
        self.access_token_expires = int(
            access_token_expires or os.getenv("JWT_ACCESS_TOKEN_EXPIRES", "86400")
        )
        self.bcrypt_rounds = int(bcrypt_rounds or os.getenv("BCRYPT_ROUNDS", "12"))

    def hash_password(self, password: str) -> str:
        """
        Hash a password using bcrypt with salt.

        Args:
            password: Plain text password to hash

        Returns:
            Hashed password string
        """
        with tracer.start_as_current_span("auth.hash_password") as span:
            span.set_attribute("auth.operation", "hash_password")

            salt = bcrypt.gensalt(rounds=self.bcrypt_rounds)
            hashed = bcrypt.hashpw(password.encode('utf-8'), salt)

            logger.debug("Password hashed successfully")
            return hashed.decode('utf-8')

    def verify_password(self, password: str, hashed_password: str) -> bool:
        """
        Verify a password against its hash.

        Returns False for a malformed hash instead of raising.
        """
        with tracer.start_as_current_span("auth.verify_password") as span:
            span.set_attribute("auth.operation", "verify_password")

            try:
                result = bcrypt.checkpw(
                    password.encode('utf-8'),
                    hashed_password.encode('utf-8')
                )
            except ValueError as e:
                span.set_attribute("auth.verification_result", "error")
                logger.error(f"Password verification error: {str(e)}")
                return False

            span.set_attribute("auth.verification_result", "success" if result else "failed")
            logger.debug(f"Password verification: {'success' if result else 'failed'}")
            return result

    def generate_access_token(self, user: User) -> Dict[str, Any]:
        """
        Generate an access token for a user.

        Args:
            user: User entity to generate the token for

        Returns:
            Dictionary containing access_token and expiry metadata
        """
        with tracer.start_as_current_span("auth.generate_access_token") as span:
            span.set_attributes({
                "auth.operation": "generate_access_token",
                "user.id": user.id,
                "user.type": user.user_type
            })

            now = datetime.now(timezone.utc)
            access_exp = now + timedelta(seconds=self.access_token_expires)

            payload = {
                "sub": user.id,
                "username": user.username,
                "name": user.name,
                "user_type": user.user_type,
                "jti": uuid.uuid4().hex,
                "iat": now,
                "exp": access_exp,
                "type": "access"
            }

            try:
                access_token = jwt.encode(payload, self.private_key, algorithm=self.algorithm)
            except (jwt.PyJWTError, ValueError, TypeError) as e:
                span.set_attribute("auth.tokens_generated", "error")
                logger.error(f"Token generation failed: {str(e)}")
                raise AuthenticationError(f"Failed to generate token: {str(e)}")

            span.set_attribute("auth.tokens_generated", "success")
            logger.info(
                "JWT access token generated",
                extra={
                    "user_id": user.id,
                    "user_type": user.user_type,
                    "access_expires_at": access_exp.isoformat()
                }
            )

            return {
                "access_token": access_token,
                "token_type": "Bearer",
                "expires_in": self.access_token_expires,
                "expires_at": access_exp.isoformat()
            }

    def validate_token(self, token: str, token_type: str = "access") -> Dict[str, Any]:
        """
        Validate and decode a JWT token.

        Raises:
            TokenValidationError: If token is invalid or expired
        """
        with tracer.start_as_current_span("auth.validate_token") as span:
            span.set_attributes({
                "auth.operation": "validate_token",
                "auth.token_type": token_type
            })

            try:
                payload = jwt.decode(
                    token,
                    self.public_key,
                    algorithms=[self.algorithm],
                    options={"verify_exp": True, "require": ["sub", "exp", "iat"]}
                )
            except jwt.ExpiredSignatureError:
                span.set_attribute("auth.validation_result", "expired")
                logger.warning("Token validation failed: token expired")
                raise TokenValidationError("Token has expired")
            except jwt.InvalidTokenError as e:
                span.set_attribute("auth.validation_result", "invalid")
                logger.warning(f"Token validation failed: {str(e)}")
                raise TokenValidationError(f"Invalid token: {str(e)}")

            if payload.get("type") != token_type:
                span.set_attribute("auth.validation_result", "invalid")
                raise TokenValidationError(f"Invalid token type. Expected {token_type}")

            span.set_attributes({
                "auth.validation_result": "success",
                "user.id": payload.get("sub")
            })
            logger.debug(
                "Token validated successfully",
                extra={"user_id": payload.get("sub"), "token_type": token_type}
            )
            return payload

    def extract_token_id(self, token: str) -> str:
        """
        Extract a unique identifier from a token for blocklist purposes.

        Raises:
            TokenValidationError: If the token cannot be decoded
        """
        try:
            payload = jwt.decode(token, options={"verify_signature": False})
        except jwt.InvalidTokenError as e:
            logger.error(f"Failed to extract token ID: {str(e)}")
            raise TokenValidationError(f"Invalid token format: {str(e)}")

        if payload.get("jti"):
            return payload["jti"]
        return f"{payload.get('sub')}:{payload.get('iat')}:{payload.get('type')}"

    def get_token_remaining_ttl(self, payload: Dict[str, Any]) -> int:
        """Seconds until the token expires, never negative."""
        exp = payload.get("exp")
        if exp is None:
            return 0
        remaining = int(exp - datetime.now(timezone.utc).timestamp())
        return max(remaining, 0)
