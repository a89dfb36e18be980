"""Identity service — registration, authentication and user profiles."""

import logging
import re
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.orm import Session

from ead.config import settings
from ead.errors import DuplicateEmail, InvalidCredential, InvalidInput, NotFoundError
from ead.middleware.auth import hash_password, verify_password
from ead.models.user import User
from ead.repositories import UserRepository
from ead.services.notification_service import NotificationKind, create_notification

logger = logging.getLogger(__name__)

ROLES = ("student", "teacher", "admin")
MIN_PASSWORD_LENGTH = 6

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

# Fields a user may change on their own profile
PROFILE_FIELDS = ("name", "nickname", "avatar", "bio", "phone", "address", "birth_date")


def validate_email(email: str) -> bool:
    return bool(EMAIL_RE.match(email or ""))


def validate_password(password: str) -> tuple[bool, str]:
    if len(password or "") < MIN_PASSWORD_LENGTH:
        return False, f"Password must be at least {MIN_PASSWORD_LENGTH} characters"
    return True, ""


def register_user(
    db: Session,
    name: str,
    email: str,
    password: str,
    role: str = "student",
    **profile,
) -> User:
    """Create a user account and send the welcome notification."""
    email = (email or "").strip().lower()
    if not validate_email(email):
        raise InvalidInput("Invalid email address")
    ok, message = validate_password(password)
    if not ok:
        raise InvalidInput(message)
    if role not in ROLES:
        raise InvalidInput(f"Role must be one of {', '.join(ROLES)}")

    users = UserRepository(db)
    if users.get_by_email(email):
        raise DuplicateEmail(email)

    user = User(
        name=name.strip(),
        email=email,
        password_hash=hash_password(password),
        role=role,
        nickname=profile.get("nickname") or name.strip(),
        bio=profile.get("bio") or f"{role} at EAD",
        avatar=profile.get("avatar"),
        phone=profile.get("phone"),
        address=profile.get("address"),
        birth_date=profile.get("birth_date"),
        completed_courses=[],
        in_progress_courses=[],
        study_minutes=0.0,
        score=0,
    )
    users.put(user)

    create_notification(
        db,
        user.id,
        NotificationKind.SUCCESS,
        "Welcome to EAD!",
        "Your account was created. Explore the catalog and start learning!",
    )
    db.commit()
    db.refresh(user)
    logger.info("registered %s user %s", role, user.id)
    return user


def authenticate(db: Session, email: str, password: str) -> User:
    """Return the active user matching the credentials or raise InvalidCredential."""
    user = UserRepository(db).get_by_email(email or "")
    if not user or not user.active or not verify_password(password, user.password_hash):
        logger.warning("failed login for %s", email)
        raise InvalidCredential()

    user.last_login_at = datetime.now(timezone.utc)
    db.commit()
    return user


def get_user(db: Session, user_id: str) -> Optional[User]:
    return UserRepository(db).get(user_id)


def find_user_by_email(db: Session, email: str) -> Optional[User]:
    user = UserRepository(db).get_by_email(email)
    return user if user and user.active else None


def list_users(db: Session, role: Optional[str] = None, q: str = "") -> list[User]:
    query = db.query(User)
    if role:
        query = query.filter(User.role == role)
    if q:
        like = f"%{q.lower()}%"
        query = query.filter((User.name.ilike(like)) | (User.email.ilike(like)))
    return query.order_by(User.created_at.desc()).all()


def update_user_profile(db: Session, user_id: str, updates: dict) -> Optional[User]:
    """Apply profile field updates; unknown keys are ignored."""
    user = UserRepository(db).get(user_id)
    if not user:
        return None
    for field in PROFILE_FIELDS:
        if field in updates and updates[field] is not None:
            setattr(user, field, updates[field])
    db.commit()
    db.refresh(user)
    return user


def change_role(db: Session, user_id: str, role: str) -> User:
    if role not in ROLES:
        raise InvalidInput(f"Role must be one of {', '.join(ROLES)}")
    user = UserRepository(db).get(user_id)
    if not user:
        raise NotFoundError("User not found")
    user.role = role
    db.commit()
    return user


def deactivate_user(db: Session, user_id: str) -> bool:
    """Soft delete: the account can no longer log in, its history stays."""
    user = UserRepository(db).get(user_id)
    if not user:
        return False
    user.active = False
    db.commit()
    logger.info("deactivated user %s", user_id)
    return True


def ensure_default_admin(db: Session) -> Optional[User]:
    """Seed an administrator when the user table is empty."""
    if UserRepository(db).count() > 0:
        return None
    admin = register_user(
        db,
        name="Administrator",
        email=settings.DEFAULT_ADMIN_EMAIL,
        password=settings.DEFAULT_ADMIN_PASSWORD,
        role="admin",
        nickname="Admin",
        bio="EAD system administrator",
    )
    logger.info("seeded default admin %s", admin.email)
    return admin
