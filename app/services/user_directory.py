"""User directory: the single source of truth mapping open_id to a user row."""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import UTC, datetime
from typing import Any

from sqlalchemy import func, text
from sqlalchemy.exc import IntegrityError, InterfaceError, OperationalError, SQLAlchemyError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.orm import Session

from app.core.config import Settings
from app.models.user import LoginMethod, User, UserRole
from app.schemas.users import UserUpsert
from app.services.exceptions import (
    BadRequestError,
    ConflictError,
    UnavailableError,
    UserNotFoundError,
)

logger = logging.getLogger(__name__)

# Errors meaning "the store did not answer", as opposed to "the store said no".
STORE_UNAVAILABLE_ERRORS = (OperationalError, InterfaceError, PoolTimeoutError)

# Columns an admin may edit through update().
EDITABLE_FIELDS = frozenset({"name", "email", "role"})


def _utcnow() -> datetime:
    return datetime.now(UTC)


def _plain(value: Any) -> Any:
    """Store enum members by their string value."""
    if isinstance(value, (UserRole, LoginMethod)):
        return value.value
    return value


def check_password_material(user: User) -> None:
    """Enforce that password_hash and password_salt are set together or not at all."""
    if bool(user.password_hash) != bool(user.password_salt):
        raise BadRequestError(
            "password_hash and password_salt must be set together",
            code="INVALID_PASSWORD_MATERIAL",
        )


class UserDirectory:
    """Typed CRUD over the users table; one instance per request session."""

    def __init__(self, db: Session, settings: Settings) -> None:
        self.db = db
        self.settings = settings

    @contextmanager
    def _store(self, action: str) -> Iterator[None]:
        """Translate store failures; roll back so the session stays usable."""
        try:
            yield
        except IntegrityError as e:
            self.db.rollback()
            logger.info("User store rejected %s: uniqueness violation", action)
            raise ConflictError("User already exists", code="USER_EXISTS") from e
        except STORE_UNAVAILABLE_ERRORS as e:
            self.db.rollback()
            logger.error("User store unavailable during %s: %s", action, e)
            raise UnavailableError() from e

    def _is_owner(self, open_id: str) -> bool:
        return bool(self.settings.OWNER_OPEN_ID) and open_id == self.settings.OWNER_OPEN_ID

    # Reads

    def get_by_id(self, user_id: int) -> User:
        with self._store("get_by_id"):
            user = self.db.get(User, user_id)
        if user is None:
            raise UserNotFoundError(user_id)
        return user

    def find_by_open_id(self, open_id: str) -> User | None:
        with self._store("find_by_open_id"):
            return self.db.query(User).filter(User.open_id == open_id).first()

    def find_by_email(self, email: str) -> User | None:
        with self._store("find_by_email"):
            return self.db.query(User).filter(User.email == email).first()

    def list_all(self) -> list[User]:
        """All users, newest first."""
        with self._store("list_all"):
            return self.db.query(User).order_by(User.created_at.desc(), User.id.desc()).all()

    def count(self) -> int:
        with self._store("count"):
            return int(self.db.query(func.count(User.id)).scalar() or 0)

    # Writes

    def lock_table(self) -> None:
        """Serialize concurrent bootstrap attempts until the current transaction ends (PostgreSQL only)."""
        if self.db.get_bind().dialect.name != "postgresql":
            return
        with self._store("lock_table"):
            self.db.execute(text("LOCK TABLE users IN SHARE ROW EXCLUSIVE MODE"))

    def upsert_by_open_id(self, open_id: str, patch: UserUpsert) -> User:
        """
        Create the row for open_id if absent, otherwise apply only the fields set on patch.

        Role is never changed unless patch sets it, except that the configured owner
        open_id is forced to admin. With nothing to write, last_signed_in is refreshed.
        """
        if not open_id or not open_id.strip():
            raise BadRequestError("open_id is required for upsert")
        values = {k: _plain(v) for k, v in patch.model_dump(exclude_unset=True).items()}
        if values.get("role") is None:
            values.pop("role", None)
            if self._is_owner(open_id):
                values["role"] = UserRole.ADMIN.value

        user = self.find_by_open_id(open_id)
        if user is None:
            try:
                return self._insert(open_id, values)
            except ConflictError:
                # A concurrent request may have inserted the same open_id first.
                user = self.find_by_open_id(open_id)
                if user is None:
                    raise
                logger.info("Upsert race on open_id=%s resolved as update", open_id)

        if not values:
            values = {"last_signed_in": _utcnow()}
        for field, value in values.items():
            setattr(user, field, value)
        check_password_material(user)
        with self._store("upsert_by_open_id"):
            self.db.commit()
            self.db.refresh(user)
        return user

    def _insert(self, open_id: str, values: dict[str, Any]) -> User:
        values = dict(values)
        values.setdefault("last_signed_in", _utcnow())
        values.setdefault("role", UserRole.USER.value)
        user = User(open_id=open_id, **values)
        check_password_material(user)
        with self._store("insert"):
            self.db.add(user)
            self.db.commit()
            self.db.refresh(user)
        logger.info(
            "Created user",
            extra={"user_id": user.id, "login_method": user.login_method, "role": user.role},
        )
        return user

    def create(
        self,
        *,
        open_id: str,
        email: str,
        name: str | None,
        password_hash: str,
        password_salt: str,
        role: UserRole = UserRole.USER,
        login_method: LoginMethod = LoginMethod.LOCAL,
    ) -> User:
        """
        Insert a local account. Fails with ConflictError, writing nothing, when the
        open_id or email is already taken.
        """
        if self.find_by_email(email) is not None:
            self.db.rollback()
            raise ConflictError("User with this email already exists", code="EMAIL_TAKEN")
        if self.find_by_open_id(open_id) is not None:
            self.db.rollback()
            raise ConflictError("User with this open_id already exists", code="OPEN_ID_TAKEN")
        if self._is_owner(open_id):
            role = UserRole.ADMIN
        user = User(
            open_id=open_id,
            email=email,
            name=name,
            password_hash=password_hash,
            password_salt=password_salt,
            login_method=_plain(login_method),
            role=_plain(role),
            last_signed_in=_utcnow(),
        )
        check_password_material(user)
        with self._store("create"):
            self.db.add(user)
            self.db.commit()
            self.db.refresh(user)
        logger.info(
            "Created user",
            extra={"user_id": user.id, "login_method": user.login_method, "role": user.role},
        )
        return user

    def update(self, user_id: int, changes: dict[str, Any]) -> User:
        """Apply an admin edit of name, email or role."""
        unknown = set(changes) - EDITABLE_FIELDS
        if unknown:
            raise BadRequestError(f"Fields not editable: {', '.join(sorted(unknown))}")
        user = self.get_by_id(user_id)
        email = changes.get("email")
        if email is not None and email != user.email:
            other = self.find_by_email(email)
            if other is not None and other.id != user.id:
                raise ConflictError("User with this email already exists", code="EMAIL_TAKEN")
        if "role" in changes and changes["role"] is None:
            raise BadRequestError("role must not be null")
        for field, value in changes.items():
            setattr(user, field, _plain(value))
        check_password_material(user)
        with self._store("update"):
            self.db.commit()
            self.db.refresh(user)
        return user

    def delete(self, user_id: int) -> None:
        """Hard delete; the caller has already passed the owner-tier gate."""
        user = self.get_by_id(user_id)
        with self._store("delete"):
            self.db.delete(user)
            self.db.commit()
        logger.info("Deleted user", extra={"user_id": user_id})

    def touch_last_signed_in(self, open_id: str) -> bool:
        """
        Best-effort refresh of last_signed_in.

        Losing a login timestamp is not worth failing a request over: store errors are
        logged and reported as False.
        """
        try:
            self.db.query(User).filter(User.open_id == open_id).update(
                {User.last_signed_in: _utcnow()}, synchronize_session=False
            )
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.warning("Could not refresh last_signed_in for open_id=%s: %s", open_id, e)
            return False
        return True
