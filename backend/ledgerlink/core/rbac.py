"""Role-Based Access Control (RBAC) utilities."""

import logging
from typing import Annotated, Optional

from fastapi import Depends, HTTPException, Request, status

from ledgerlink.core.security import decode_access_token
from ledgerlink.db.session import DbSession
from ledgerlink.models.organization import User, UserRole
from ledgerlink.services.audit_service import AuditContext

logger = logging.getLogger(__name__)


class TokenData:
    """Acting user of a request.

    Attributes:
        user_id: The user's database ID.
        email: The user's email address.
        role: The user's role.
        org_id: The organization the user belongs to (None for app admins).
        store_id: The user's home store, if any.
    """

    def __init__(self, user_id: int, email: str, role: UserRole,
                 org_id: Optional[int] = None, store_id: Optional[int] = None):
        self.user_id = user_id
        self.id = user_id
        self.email = email
        self.role = role
        self.org_id = org_id
        self.store_id = store_id


async def get_current_user(request: Request, db: DbSession) -> TokenData:
    """Resolve the acting user from the ``Authorization: Bearer <token>`` header.

    The user must still exist and be active. The user becomes the actor of the
    request's audit context.
    """
    payload = None
    auth_header = request.headers.get("Authorization", "")
    if auth_header.startswith("Bearer "):
        token = auth_header.split(" ", 1)[1]
        if token:
            payload = decode_access_token(token)

    if payload is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user_id = payload.get("sub")
    if user_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token payload",
        )

    user = db.query(User).filter(User.id == int(user_id)).first()
    if user is None or not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User account is disabled",
        )

    context = AuditContext.of(db)
    if context is not None:
        context.actor_id = user.id

    return TokenData(
        user_id=user.id, email=user.email, role=user.role,
        org_id=user.org_id, store_id=user.store_id,
    )


def require_roles(*roles: UserRole):
    """Dependency allowing only the given roles."""

    async def role_checker(
        current_user: Annotated[TokenData, Depends(get_current_user)]
    ) -> TokenData:
        if current_user.role not in roles:
            logger.warning(f"User {current_user.user_id} ({current_user.role.value}) denied")
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Requires one of: {', '.join(role.value for role in roles)}",
            )
        return current_user

    return role_checker


CurrentUser = Annotated[TokenData, Depends(get_current_user)]
RequireStoreManager = Annotated[
    TokenData,
    Depends(require_roles(UserRole.APP_ADMIN, UserRole.ORG_ADMIN, UserRole.STORE_MANAGER)),
]
