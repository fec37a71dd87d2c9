"""
ZipMetro Backend — Authentication Service
===========================================

What:  Registration, login, bearer-token issuing/verification and the
       startup admin account.
Why:   Keeps password hashing and token handling out of the route layer, and
       in one place for both stores.
How:   bcrypt for password hashes (run in Starlette's threadpool, hashing is
       CPU-bound), joserfc HS256 JWTs carrying id, email, role, iat and exp.
Who:   routes/auth.py, dependencies.py (token → user), main.lifespan (admin).
When:  Built once per app in create_app() with that app's settings.

Token Lifecycle:
    issue:   {"id", "email", "role", "iat", "exp"}, signed with JWT_SECRET,
             exp = iat + JWT_EXPIRES_DAYS
    verify:  signature, then `exp` is required and must be in the future,
             then the user must still exist in the store
    Any failure along the way is a 401; the reason is only logged.
"""

import logging
import time
from typing import Any, Dict, Optional, Tuple

import bcrypt
from joserfc import jwt
from joserfc.errors import JoseError
from joserfc.jwk import OctKey
from starlette.concurrency import run_in_threadpool

from zipmetro.config import Settings, settings as default_settings
from zipmetro.exceptions import AuthenticationError, DatabaseError, ValidationError
from zipmetro.store.base import Row
from zipmetro.store.facade import StoreFacade

logger = logging.getLogger(__name__)

# Fields returned for an authenticated principal
PRINCIPAL_FIELDS = ["id", "email", "first_name", "last_name", "role"]


def public_user(user: Row) -> Dict[str, Any]:
    """The account fields safe to send to a client."""
    return {field: user.get(field) for field in PRINCIPAL_FIELDS}


class AuthService:
    """
    Accounts and bearer tokens.

    Args:
        settings: Source of JWT_SECRET, JWT_EXPIRES_DAYS, BCRYPT_ROUNDS and the
                  admin credentials. Defaults to the process settings.
    """

    ALGORITHM = "HS256"

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or default_settings
        self._key = OctKey.import_key(self.settings.jwt_secret)

    # ── Passwords ─────────────────────────────────────────────────────────

    def _hash_sync(self, password: str) -> str:
        salt = bcrypt.gensalt(rounds=self.settings.bcrypt_rounds)
        return bcrypt.hashpw(password.encode("utf-8"), salt).decode("utf-8")

    async def hash_password(self, password: str) -> str:
        return await run_in_threadpool(self._hash_sync, password)

    async def verify_password(self, password: str, password_hash: Optional[str]) -> bool:
        if not password_hash:
            return False
        try:
            return await run_in_threadpool(
                bcrypt.checkpw, password.encode("utf-8"), password_hash.encode("utf-8")
            )
        except ValueError:
            # Stored value is not a bcrypt hash
            logger.warning("Stored password hash could not be parsed")
            return False

    # ── Tokens ────────────────────────────────────────────────────────────

    def issue_token(self, user: Row) -> str:
        now = int(time.time())
        claims = {
            "id": user["id"],
            "email": user["email"],
            "role": user.get("role") or "customer",
            "iat": now,
            "exp": now + self.settings.jwt_expires_days * 86400,
        }
        return jwt.encode({"alg": self.ALGORITHM}, claims, self._key)

    def decode_token(self, token: str) -> Dict[str, Any]:
        """
        Verified claims of a bearer token.

        Raises:
            AuthenticationError: bad signature, malformed token, missing or
                                 past `exp`
        """
        try:
            decoded = jwt.decode(token, self._key, algorithms=[self.ALGORITHM])
            jwt.JWTClaimsRegistry(exp={"essential": True}).validate(decoded.claims)
        except (JoseError, ValueError) as e:
            logger.info("Rejected bearer token: %s", type(e).__name__)
            raise AuthenticationError(message="Invalid token")
        return decoded.claims

    async def authenticate(self, store: StoreFacade, token: str) -> Row:
        """
        The stored user a token belongs to.

        Raises:
            AuthenticationError: invalid token, or the user no longer exists
        """
        claims = self.decode_token(token)
        user_id = claims.get("id")
        user = None
        if user_id is not None:
            user = await store.find_by_id("users", user_id, fields=PRINCIPAL_FIELDS)
        if user is None:
            logger.warning("Token for unknown user id %r", user_id)
            raise AuthenticationError(message="User not found. Please log in again.")
        return user

    # ── Accounts ──────────────────────────────────────────────────────────

    async def register(
        self,
        store: StoreFacade,
        email: Optional[str],
        password: Optional[str],
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
        phone: Optional[str] = None,
    ) -> Tuple[str, Dict[str, Any]]:
        """
        Creates a customer account with default notification preferences.

        Returns:
            (token, public user)

        Raises:
            ValidationError: missing email/password, or email already registered
        """
        if not email or not password:
            raise ValidationError(message="Email and password are required")

        existing = await store.find_one("users", {"email": email}, fields=["id"])
        if existing is not None:
            raise ValidationError(message="Email already registered", field="email")

        password_hash = await self.hash_password(password)
        try:
            result = await store.insert(
                "users",
                {
                    "email": email,
                    "password_hash": password_hash,
                    "first_name": first_name or "",
                    "last_name": last_name or "",
                    "phone": phone or "",
                    "dob": None,
                    "id_verified": False,
                    "id_image_path": None,
                    "role": "customer",
                },
            )
        except DatabaseError:
            # A concurrent registration won the unique email index
            if await store.find_one("users", {"email": email}, fields=["id"]) is not None:
                logger.info("Registration raced on an existing email")
                raise ValidationError(message="Email already registered", field="email")
            raise
        await store.insert(
            "notification_preferences",
            {"user_id": store.native_id(result.last_id), "sms": True, "email": True, "push": False},
        )
        logger.info("Registered user %s", result.last_id)

        user = {
            "id": result.last_id,
            "email": email,
            "first_name": first_name or "",
            "last_name": last_name or "",
            "role": "customer",
        }
        return self.issue_token(user), user

    async def login(
        self,
        store: StoreFacade,
        email: Optional[str],
        password: Optional[str],
    ) -> Tuple[str, Dict[str, Any]]:
        """
        Raises:
            ValidationError:     missing email/password
            AuthenticationError: unknown email or wrong password (same message)
        """
        if not email or not password:
            raise ValidationError(message="Email and password are required")

        user = await store.find_one("users", {"email": email})
        if user is None or not await self.verify_password(password, user.get("password_hash")):
            raise AuthenticationError(message="Invalid credentials")

        logger.info("User %s logged in", user["id"])
        return self.issue_token(user), public_user(user)

    async def ensure_admin(self, store: StoreFacade) -> None:
        """
        Makes sure ADMIN_EMAIL exists with the admin role and a password that
        verifies against ADMIN_PASSWORD. Creates, promotes or re-hashes as needed.
        """
        email = self.settings.admin_email
        password = self.settings.admin_password
        user = await store.find_one("users", {"email": email})

        if user is None:
            await store.insert(
                "users",
                {
                    "email": email,
                    "password_hash": await self.hash_password(password),
                    "first_name": "Admin",
                    "last_name": "User",
                    "phone": "",
                    "dob": None,
                    "id_verified": True,
                    "id_image_path": None,
                    "role": "admin",
                },
            )
            logger.info("Admin account created: %s", email)
            return

        changes: Dict[str, Any] = {}
        if user.get("role") != "admin":
            changes["role"] = "admin"
        if not await self.verify_password(password, user.get("password_hash")):
            changes["password_hash"] = await self.hash_password(password)
        if changes:
            await store.update_by_id("users", user["id"], changes)
            logger.info("Admin account updated (%s): %s", ", ".join(sorted(changes)), email)
