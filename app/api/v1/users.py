"""User administration (admin only): list, inspect, create, edit and delete accounts."""

import logging

from fastapi import APIRouter, status

from app.api.v1.dependencies import AppSettings, DbSession, Owner
from app.schemas.auth import RegisterRequest
from app.schemas.users import UserCreate, UserOut, UsersListResponse, UserUpdate
from app.services.exceptions import ConflictError
from app.services.identity import register_local_user
from app.services.user_directory import UserDirectory

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("", response_model=UsersListResponse)
def list_users(admin: Owner, db: DbSession, settings: AppSettings) -> UsersListResponse:
    """List all users, newest first."""
    users = UserDirectory(db, settings).list_all()
    return UsersListResponse(users=[UserOut.model_validate(u) for u in users])


@router.get("/{user_id}", response_model=UserOut)
def get_user(user_id: int, admin: Owner, db: DbSession, settings: AppSettings) -> UserOut:
    return UserOut.model_validate(UserDirectory(db, settings).get_by_id(user_id))


@router.post("", response_model=UserOut, status_code=status.HTTP_201_CREATED)
def create_user(
    body: UserCreate, admin: Owner, db: DbSession, settings: AppSettings
) -> UserOut:
    """Create a local account with an explicit role. 409 if the email is taken."""
    data = RegisterRequest(email=body.email, password=body.password, name=body.name)
    user = register_local_user(db, settings, data, role=body.role)
    logger.info(
        "Admin created user",
        extra={"admin_id": admin.id, "user_id": user.id, "role": user.role},
    )
    return UserOut.model_validate(user)


@router.patch("/{user_id}", response_model=UserOut)
def update_user(
    user_id: int, body: UserUpdate, admin: Owner, db: DbSession, settings: AppSettings
) -> UserOut:
    """Edit name, email or role. An admin cannot change their own role."""
    changes = body.model_dump(exclude_unset=True)
    if "role" in changes and user_id == admin.id:
        raise ConflictError("Cannot change your own role", code="SELF_ROLE_CHANGE")
    user = UserDirectory(db, settings).update(user_id, changes)
    if "role" in changes:
        logger.info(
            "Admin changed role",
            extra={"admin_id": admin.id, "user_id": user.id, "role": user.role},
        )
    return UserOut.model_validate(user)


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_user(user_id: int, admin: Owner, db: DbSession, settings: AppSettings) -> None:
    """Hard-delete an account. An admin cannot delete their own account."""
    if user_id == admin.id:
        raise ConflictError("Cannot delete your own account", code="SELF_DELETE")
    UserDirectory(db, settings).delete(user_id)
    logger.info("Admin deleted user", extra={"admin_id": admin.id, "user_id": user_id})
