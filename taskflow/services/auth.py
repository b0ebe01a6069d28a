"""Authentication service: credentials, sessions and password resets."""

import hashlib
import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta

import bcrypt
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from taskflow.config import get_settings
from taskflow.errors import ConflictError, Forbidden, NotFoundError, Unauthenticated, ValidationError
from taskflow.models.user import User
from taskflow.schemas.user import SignupRequest, UpdateProfileRequest
from taskflow.services.jwt import TokenError, get_jwt_service

logger = logging.getLogger("taskflow")


@dataclass
class LoginResult:
    """Tokens and lifetimes produced by a successful login."""

    user: User
    access_token: str
    refresh_token: str
    access_max_age: int
    refresh_max_age: int


def hash_password(password: str) -> str:
    rounds = get_settings().BCRYPT_ROUNDS
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt(rounds=rounds)).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))


def hash_reset_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


class AuthService:
    """Handles signup, login, session refresh/logout, profile changes and password resets."""

    # --- credential store ---

    def find_by_email(self, db: Session, email: str) -> User | None:
        return db.query(User).filter(User.email == email.strip().lower()).first()

    def find_by_id(self, db: Session, user_id: int) -> User | None:
        return db.get(User, user_id)

    def save(self, db: Session, user: User) -> User:
        """Persist pending changes. Unique-field violations surface as ConflictError."""
        db.add(user)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            raise ConflictError("Email or username already taken") from None
        db.refresh(user)
        return user

    # --- signup / login ---

    def signup(self, db: Session, data: SignupRequest) -> User:
        """Create an account. Never authenticates the new user."""
        if self.find_by_email(db, data.email):
            raise ConflictError("User already exists")

        user = User(
            first_name=data.first_name,
            last_name=data.last_name,
            email=data.email,
            username=data.username,
            password_hash=hash_password(data.password),
        )
        self.save(db, user)
        logger.info("User %s signed up", user.id)
        return user

    def login(self, db: Session, email: str, password: str, remember_me: bool = False) -> LoginResult:
        """Verify credentials and start a new session, replacing any previous one."""
        user = self.find_by_email(db, email)
        if not user:
            raise NotFoundError("User not found")

        if not verify_password(password, user.password_hash):
            raise Unauthenticated("Invalid email or password")

        jwt_service = get_jwt_service()
        access_token, _ = jwt_service.issue_access_token(user.id)
        refresh_token, _ = jwt_service.issue_refresh_token(user.id, remember_me=remember_me)

        # Overwriting the stored value ends the previous session
        user.refresh_token = refresh_token
        self.save(db, user)

        lifetime = jwt_service.remember_me_expire if remember_me else jwt_service.refresh_expire
        return LoginResult(
            user=user,
            access_token=access_token,
            refresh_token=refresh_token,
            access_max_age=int(jwt_service.access_expire.total_seconds()),
            refresh_max_age=int(lifetime.total_seconds()),
        )

    # --- session lifecycle ---

    def refresh(self, db: Session, refresh_token: str | None) -> str:
        """Exchange a refresh token for a new access token.

        The refresh token is not rotated. Concurrent calls with the same token
        all succeed because the comparison is against the stored value.
        """
        if not refresh_token:
            raise Unauthenticated("Refresh token missing")

        jwt_service = get_jwt_service()
        try:
            payload = jwt_service.verify_refresh_token(refresh_token)
        except TokenError:
            raise Forbidden("Session expired") from None

        user = self.find_by_id(db, payload.user_id)
        if not user or not user.refresh_token or not secrets.compare_digest(user.refresh_token, refresh_token):
            raise Forbidden("Invalid refresh token")

        access_token, _ = jwt_service.issue_access_token(user.id)
        return access_token

    def logout(self, db: Session, user_id: int) -> None:
        """Clear the stored refresh token. Safe when no session is active."""
        user = self.find_by_id(db, user_id)
        if user is None or user.refresh_token is None:
            return
        user.refresh_token = None
        db.commit()

    # --- profile ---

    def get_profile(self, db: Session, user_id: int) -> User:
        user = self.find_by_id(db, user_id)
        if not user:
            raise NotFoundError("User not found")
        return user

    def update_profile(self, db: Session, user_id: int, data: UpdateProfileRequest) -> User:
        """Update names/username and optionally the password (current password required)."""
        user = self.get_profile(db, user_id)

        if data.wants_password_change:
            if not verify_password(data.current_password or "", user.password_hash):
                raise ValidationError("Current password incorrect")
            user.password_hash = hash_password(data.new_password)  # type: ignore[arg-type]

        user.first_name = (data.first_name or "").strip() or user.first_name
        user.last_name = (data.last_name or "").strip() or user.last_name
        user.username = (data.username or "").strip().lower() or user.username

        return self.save(db, user)

    # --- password reset ---

    def request_password_reset(self, db: Session, email: str) -> str | None:
        """Generate a password reset token for the given email.

        Returns the plain token if the user exists, None otherwise. Only its
        sha256 digest is stored. Callers must not reveal whether the user was found.
        """
        user = self.find_by_email(db, email)
        if not user:
            return None

        settings = get_settings()
        token = secrets.token_hex(32)
        user.reset_password_token = hash_reset_token(token)
        user.reset_password_expires_at = datetime.utcnow() + timedelta(minutes=settings.RESET_TOKEN_EXPIRE_MINUTES)
        db.commit()

        return token

    def reset_password(self, db: Session, token: str, new_password: str) -> User:
        """Set a new password using a valid, unexpired reset token (single use)."""
        user = db.query(User).filter(User.reset_password_token == hash_reset_token(token)).first()
        if not user:
            raise ValidationError("Invalid or expired reset token.")

        if not user.reset_password_expires_at or user.reset_password_expires_at < datetime.utcnow():
            user.reset_password_token = None
            user.reset_password_expires_at = None
            db.commit()
            raise ValidationError("Invalid or expired reset token.")

        user.password_hash = hash_password(new_password)
        user.reset_password_token = None
        user.reset_password_expires_at = None
        db.commit()
        logger.info("Password reset completed for user %s", user.id)

        return user


_auth_service: AuthService | None = None


def get_auth_service() -> AuthService:
    """Get singleton auth service instance."""
    global _auth_service
    if _auth_service is None:
        _auth_service = AuthService()
    return _auth_service
