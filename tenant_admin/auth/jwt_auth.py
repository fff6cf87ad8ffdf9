"""
Token issuing and password handling.
Signs bearer tokens with PyJWT and hashes credentials with passlib/bcrypt.
"""

import logging
import re
from datetime import datetime, timedelta
from typing import Callable, Optional

import jwt
from jwt.exceptions import ExpiredSignatureError, ImmatureSignatureError, InvalidTokenError
from passlib.context import CryptContext

from ..clock import utcnow
from ..config import INSECURE_JWT_SECRET, Settings
from ..errors import ConfigurationError, InvalidPassword, Unauthenticated

logger = logging.getLogger(__name__)

SUPPORTED_ALGORITHMS = ("HS256", "HS384", "HS512")
MIN_SECRET_LENGTH = 32


class PasswordHasher:
    """Password hashing and verification utilities"""

    def __init__(self, rounds: int = 12):
        self.context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=rounds)

    @classmethod
    def from_settings(cls, settings: Settings) -> "PasswordHasher":
        return cls(rounds=settings.BCRYPT_ROUNDS)

    def hash_password(self, password: str) -> str:
        return self.context.hash(password)

    def verify_password(self, plain_password: str, hashed_password: str) -> bool:
        if not plain_password or not hashed_password:
            return False
        try:
            return self.context.verify(plain_password, hashed_password)
        except ValueError:
            # Unrecognised or corrupt stored hash
            logger.warning("Stored password hash could not be verified")
            return False


class PasswordPolicy:
    """Complexity rules applied to every new password"""

    PASSWORD_CONSTRAINTS = {"minimum": 8, "maximum": 72}
    PASSWORD_FORMAT = re.compile(r"^(?=.*\d)(?=.*[a-z])(?=.*[A-Z])(?=.*[^\w\s]).*$")

    @classmethod
    def violations(cls, password: Optional[str]) -> list:
        if not password:
            return ["Password is required"]
        errors = []
        if len(password) < cls.PASSWORD_CONSTRAINTS["minimum"]:
            errors.append(f"Password must be at least {cls.PASSWORD_CONSTRAINTS['minimum']} characters")
        if len(password.encode("utf-8")) > cls.PASSWORD_CONSTRAINTS["maximum"]:
            errors.append(f"Password must be at most {cls.PASSWORD_CONSTRAINTS['maximum']} bytes")
        if not cls.PASSWORD_FORMAT.match(password):
            errors.append(
                "Password must contain an uppercase letter, a lowercase letter, a digit and a special character"
            )
        return errors

    @classmethod
    def validate(cls, password: Optional[str]) -> None:
        errors = cls.violations(password)
        if errors:
            raise InvalidPassword("; ".join(errors))


class TokenIssuer:
    """Issues and verifies signed bearer tokens"""

    def __init__(self, settings: Settings, clock: Callable[[], datetime] = utcnow):
        if not settings.JWT_SECRET_KEY or len(settings.JWT_SECRET_KEY) < MIN_SECRET_LENGTH:
            raise ConfigurationError(
                f"JWT_SECRET_KEY must be at least {MIN_SECRET_LENGTH} characters"
            )
        if settings.is_production and settings.JWT_SECRET_KEY == INSECURE_JWT_SECRET:
            raise ConfigurationError("JWT_SECRET_KEY must be set in production")
        if settings.JWT_ALGORITHM not in SUPPORTED_ALGORITHMS:
            raise ConfigurationError(f"Unsupported JWT algorithm: {settings.JWT_ALGORITHM}")
        if settings.JWT_EXPIRATION_HOURS <= 0:
            raise ConfigurationError("JWT_EXPIRATION_HOURS must be positive")

        self._secret = settings.JWT_SECRET_KEY
        self.algorithm = settings.JWT_ALGORITHM
        self.lifetime = timedelta(hours=settings.JWT_EXPIRATION_HOURS)
        self.clock = clock

    def issue(self, user_id: int) -> str:
        """Create a signed token asserting the user's identity"""
        now = self.clock()
        payload = {
            "sub": str(user_id),
            "user_id": user_id,
            "iat": now,
            "nbf": now,
            "exp": now + self.lifetime,
        }
        return jwt.encode(payload, self._secret, algorithm=self.algorithm)

    def verify(self, token: str) -> int:
        """Return the subject user id, or raise Unauthenticated"""
        if not token:
            raise Unauthenticated("Missing token")
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self.algorithm],
                options={"require": ["exp", "iat", "nbf", "sub"]},
            )
        except ExpiredSignatureError:
            raise Unauthenticated("Token has expired")
        except ImmatureSignatureError:
            raise Unauthenticated("Token is not yet valid")
        except InvalidTokenError:
            raise Unauthenticated("Invalid token")

        try:
            return int(payload["sub"])
        except (TypeError, ValueError):
            raise Unauthenticated("Invalid token subject")
