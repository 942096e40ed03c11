"""Organization ownership checks for stores and users."""

import logging
from typing import Iterable, Optional

from sqlalchemy.orm import Session

from ledgerlink.core.exceptions import AuthorizationMismatchError
from ledgerlink.models.organization import Store, User

logger = logging.getLogger(__name__)


class AccessGuard:
    """Verifies that referenced stores and users belong to the actor's organization."""

    def __init__(self, db: Session):
        self.db = db

    def organization_of(self, user_id: int) -> int:
        org_id = self.db.query(User.org_id).filter(User.id == user_id).scalar()
        if org_id is None:
            raise AuthorizationMismatchError("Unable to resolve the logged-in user's organization.")
        return org_id

    def validate_org_association(
        self,
        actor_user_id: int,
        store_ids: Optional[Iterable[int]] = None,
        user_ids: Optional[Iterable[int]] = None,
    ) -> bool:
        """True when every given store and user belongs to the actor's organization.

        Unknown ids are ignored here; resolving them is the caller's job.
        """
        org_id = self.organization_of(actor_user_id)

        store_ids = [s for s in (store_ids or []) if s is not None]
        if store_ids:
            store_orgs = {
                row[0]
                for row in self.db.query(Store.org_id).filter(Store.id.in_(store_ids)).distinct()
            }
            if any(other != org_id for other in store_orgs):
                return False

        user_ids = [u for u in (user_ids or []) if u is not None]
        if user_ids:
            user_orgs = {
                row[0]
                for row in self.db.query(User.org_id).filter(User.id.in_(user_ids)).distinct()
            }
            if any(other != org_id for other in user_orgs):
                return False

        return True

    def ensure_org_association(
        self,
        actor_user_id: int,
        store_ids: Optional[Iterable[int]] = None,
        user_ids: Optional[Iterable[int]] = None,
    ) -> None:
        if not self.validate_org_association(actor_user_id, store_ids=store_ids, user_ids=user_ids):
            logger.warning(
                f"User {actor_user_id} denied access to stores={list(store_ids or [])} "
                f"users={list(user_ids or [])}"
            )
            raise AuthorizationMismatchError()
