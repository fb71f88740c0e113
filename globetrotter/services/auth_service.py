"""
Authentication service: credential issuance, refresh rotation and password reset.

Two credential classes are issued:
- access token: short-lived, self-verifying JWT sent on every request
- refresh token: long-lived JWT that is also recorded on the user document,
  so each one can be revoked on its own and is rotated out on use
"""

import hashlib
import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any

import bcrypt
import jwt

from globetrotter.config import settings
from globetrotter.errors import Conflict, Unauthorized, ValidationFailed
from globetrotter.models.user import default_preferences
from globetrotter.services.firestore_service import FirestoreService

logger = logging.getLogger(__name__)

PRIVATE_USER_FIELDS = ("passwordHash", "refreshTokens", "passwordResetToken", "passwordResetExpires")
GENERIC_FORGOT_MESSAGE = "If an account with that email exists, a password reset link has been sent"


def public_user(user: Dict[str, Any]) -> Dict[str, Any]:
    """User document without credentials or reset state."""
    return {k: v for k, v in user.items() if k not in PRIVATE_USER_FIELDS}


def hash_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


class PasswordHasher:
    """bcrypt hashing; inputs are cut to bcrypt's 72-byte limit."""

    def __init__(self, rounds: int = 12):
        self.rounds = rounds

    def hash(self, password: str) -> str:
        return bcrypt.hashpw(password.encode("utf-8")[:72], bcrypt.gensalt(self.rounds)).decode("utf-8")

    def verify(self, password: str, hashed: Optional[str]) -> bool:
        if not password or not hashed:
            return False
        try:
            return bcrypt.checkpw(password.encode("utf-8")[:72], hashed.encode("utf-8"))
        except ValueError:
            logger.warning("Stored password hash is malformed")
            return False


class TokenManager:
    """Issues and verifies HS256 access and refresh tokens."""

    def __init__(
        self,
        secret_key: str,
        algorithm: str = "HS256",
        access_token_expire_minutes: int = 15,
        refresh_token_expire_days: int = 30,
    ):
        self.secret_key = secret_key
        self.algorithm = algorithm
        self.access_ttl = timedelta(minutes=access_token_expire_minutes)
        self.refresh_ttl = timedelta(days=refresh_token_expire_days)

    def _encode(self, user_id: str, token_type: str, ttl: timedelta, extra: Optional[Dict[str, Any]] = None):
        now = datetime.now(timezone.utc)
        expires_at = now + ttl
        payload = {
            "sub": str(user_id),
            "type": token_type,
            "iat": now,
            "exp": expires_at,
            "jti": secrets.token_hex(16),
        }
        if extra:
            payload.update(extra)
        return jwt.encode(payload, self.secret_key, algorithm=self.algorithm), expires_at

    def create_access_token(self, user_id: str, role: str = "user"):
        return self._encode(user_id, "access", self.access_ttl, {"role": role})

    def create_refresh_token(self, user_id: str):
        return self._encode(user_id, "refresh", self.refresh_ttl)

    def decode(self, token: str, expected_type: str) -> Dict[str, Any]:
        try:
            payload = jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except jwt.ExpiredSignatureError:
            raise Unauthorized("Token has expired")
        except jwt.InvalidTokenError:
            raise Unauthorized("Invalid token")
        if payload.get("type") != expected_type or not payload.get("sub"):
            raise Unauthorized("Invalid token")
        return payload


class AuthService:
    def __init__(self, fs: FirestoreService, tokens: Optional[TokenManager] = None,
                 hasher: Optional[PasswordHasher] = None):
        self.fs = fs
        self.tokens = tokens or TokenManager(
            settings.jwt_secret_key,
            settings.jwt_algorithm,
            settings.access_token_expire_minutes,
            settings.refresh_token_expire_days,
        )
        self.hasher = hasher or PasswordHasher(settings.bcrypt_rounds)

    def _now(self):
        return datetime.now(timezone.utc)

    # -------------------------
    # Sessions
    # -------------------------
    def _issue_session(self, user: Dict[str, Any], refresh_tokens: list) -> Dict[str, Any]:
        access_token, access_expires = self.tokens.create_access_token(user["id"], user.get("role", "user"))
        refresh_token, refresh_expires = self.tokens.create_refresh_token(user["id"])
        now = self._now()
        active = [rt for rt in refresh_tokens if rt.get("expiresAt") and rt["expiresAt"] > now]
        active.append({"token": refresh_token, "expiresAt": refresh_expires})
        user["refreshTokens"] = active
        self.fs.update_user(user["id"], {"refreshTokens": active})
        return {
            "user": public_user(user),
            "accessToken": access_token,
            "refreshToken": refresh_token,
            "expiresIn": int(self.tokens.access_ttl.total_seconds()),
            "accessTokenExpiresAt": access_expires,
        }

    def signup(self, name: str, email: str, password: str) -> Dict[str, Any]:
        email = email.strip().lower()
        if self.fs.find_user_by_email(email):
            raise Conflict("User with this email already exists")
        record = {
            "name": name,
            "email": email,
            "passwordHash": self.hasher.hash(password),
            "role": "user",
            "isActive": True,
            "avatar": "",
            "preferences": default_preferences(),
            "savedDestinations": [],
            "refreshTokens": [],
            "passwordResetToken": None,
            "passwordResetExpires": None,
            "lastLogin": self._now(),
        }
        uid = self.fs.create_user(record)
        logger.info(f"Created user {uid}")
        return self._issue_session(self.fs.get_user(uid), [])

    def login(self, email: str, password: str) -> Dict[str, Any]:
        user = self.fs.find_user_by_email(email.strip().lower())
        if not user or not self.hasher.verify(password, user.get("passwordHash")):
            logger.warning("Failed login attempt")
            raise Unauthorized("Invalid credentials")
        if not user.get("isActive", True):
            logger.warning(f"Login refused for deactivated user {user['id']}")
            raise Unauthorized("Your account has been deactivated")
        user["lastLogin"] = self._now()
        self.fs.update_user(user["id"], {"lastLogin": user["lastLogin"]})
        logger.info(f"User {user['id']} logged in")
        return self._issue_session(user, user.get("refreshTokens") or [])

    def refresh(self, refresh_token: str) -> Dict[str, Any]:
        """Rotate a refresh token: the presented one is consumed, a new pair is issued."""
        try:
            payload = self.tokens.decode(refresh_token, "refresh")
        except Unauthorized:
            raise Unauthorized("Invalid refresh token")
        user = self.fs.get_user(payload["sub"])
        if not user or not user.get("isActive", True):
            raise Unauthorized("Invalid refresh token")
        stored = user.get("refreshTokens") or []
        if not any(rt.get("token") == refresh_token for rt in stored):
            logger.warning(f"Refresh token not on record for user {user['id']}")
            raise Unauthorized("Invalid refresh token")
        remaining = [rt for rt in stored if rt.get("token") != refresh_token]
        return self._issue_session(user, remaining)

    def logout(self, user: Dict[str, Any], refresh_token: Optional[str]) -> bool:
        if not refresh_token:
            return False
        fresh = self.fs.get_user(user["id"]) or user
        stored = fresh.get("refreshTokens") or []
        remaining = [rt for rt in stored if rt.get("token") != refresh_token]
        if len(remaining) == len(stored):
            return False
        self.fs.update_user(user["id"], {"refreshTokens": remaining})
        logger.info(f"Revoked one refresh token for user {user['id']}")
        return True

    def authenticate_access_token(self, token: str) -> Dict[str, Any]:
        payload = self.tokens.decode(token, "access")
        user = self.fs.get_user(payload["sub"])
        if not user:
            raise Unauthorized("User no longer exists")
        if not user.get("isActive", True):
            raise Unauthorized("Your account has been deactivated")
        return user

    # -------------------------
    # Password reset
    # -------------------------
    def forgot_password(self, email: str) -> Optional[str]:
        """
        Start a password reset.

        Returns the raw reset token for an existing account, None otherwise. Callers
        must answer both cases identically.
        """
        user = self.fs.find_user_by_email(email.strip().lower())
        if not user:
            return None
        raw_token = secrets.token_hex(32)
        expires = self._now() + timedelta(minutes=settings.password_reset_expire_minutes)
        self.fs.update_user(user["id"], {
            "passwordResetToken": hash_token(raw_token),
            "passwordResetExpires": expires,
        })
        logger.info(f"Password reset requested for user {user['id']}")
        return raw_token

    def reset_password(self, token: str, new_password: str):
        user = self.fs.find_user_by_reset_token(hash_token(token))
        expires = user.get("passwordResetExpires") if user else None
        if not user or not expires or expires <= self._now():
            raise ValidationFailed.single("token", "Invalid or expired reset token")
        self.fs.update_user(user["id"], {
            "passwordHash": self.hasher.hash(new_password),
            "passwordResetToken": None,
            "passwordResetExpires": None,
        })
        logger.info(f"Password reset completed for user {user['id']}")

    def verify_password(self, user: Dict[str, Any], password: str) -> bool:
        return self.hasher.verify(password, user.get("passwordHash"))

    def hash_password(self, password: str) -> str:
        return self.hasher.hash(password)
