"""Actor resolution - turn an authenticated user row into a request Actor."""

from app.core.errors import ForbiddenError
from app.core.policies import REASON_NO_ROLE
from app.db.enums import Role
from app.db.models import User
from app.schemas.auth import Actor


def actor_from_user(user: User) -> Actor:
    """
    Build the immutable Actor for one request.

    Raises:
        ForbiddenError: the user has no (known) role yet
    """
    if not user.role or not Role.has_value(user.role):
        raise ForbiddenError(REASON_NO_ROLE)
    return Actor(id=user.id, role=Role(user.role), company_id=user.company_id)
