"""Authorization tiers and the pure checks that gate every protected operation."""

from collections.abc import Callable
from enum import IntEnum

from app.models.user import UserRole
from app.schemas.auth import Principal
from app.services.exceptions import ForbiddenError, UnauthorizedError


class Tier(IntEnum):
    """Ordered tiers; each one requires everything the lower tiers require."""

    ANONYMOUS = 0
    AUTHENTICATED = 1
    CONTENT_OPERATOR = 2
    OWNER = 3


CONTENT_OPERATOR_ROLES = frozenset({UserRole.CONTENT_EDITOR, UserRole.ADMIN})


def is_content_operator(principal: Principal) -> bool:
    return principal.role in CONTENT_OPERATOR_ROLES


def is_owner(principal: Principal) -> bool:
    return principal.role == UserRole.ADMIN


# (tier, role predicate, denial message) applied in order above AUTHENTICATED.
ROLE_CHECKS: tuple[tuple[Tier, Callable[[Principal], bool], str], ...] = (
    (Tier.CONTENT_OPERATOR, is_content_operator, "Admin or content editor access required"),
    (Tier.OWNER, is_owner, "Admin access required"),
)


def check_tier(principal: Principal | None, required: Tier) -> Principal | None:
    """
    Return the principal if it satisfies the required tier.

    Raises UnauthorizedError when a session is needed but absent, ForbiddenError when
    the role is too low. Reads only; never touches the user row.
    """
    if required == Tier.ANONYMOUS:
        return principal
    if principal is None:
        raise UnauthorizedError("Not authenticated")
    for tier, allowed, message in ROLE_CHECKS:
        if tier > required:
            break
        if not allowed(principal):
            raise ForbiddenError(message)
    return principal
