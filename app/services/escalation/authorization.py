"""
Admin authorization for escalation controls.

Authentication happens upstream; this only answers "is this caller an admin?".
"""

from abc import ABC, abstractmethod
from typing import Iterable, Optional
import logging

logger = logging.getLogger(__name__)

ADMIN_ROLE = "admin"


class AdminAuthorizer(ABC):

    @abstractmethod
    def is_admin(self, caller_id: Optional[str]) -> bool:
        """True if the authenticated caller holds the admin role."""


class FirestoreAdminAuthorizer(AdminAuthorizer):
    """Looks up users/{caller_id} and checks its role field."""

    def __init__(self, db):
        self.db = db

    def is_admin(self, caller_id: Optional[str]) -> bool:
        if not caller_id:
            return False
        doc = self.db.collection("users").document(caller_id).get()
        if not doc.exists:
            logger.info(f"Admin check failed: unknown user {caller_id}")
            return False
        return (doc.to_dict() or {}).get("role") == ADMIN_ROLE


class StaticAdminAuthorizer(AdminAuthorizer):
    """Fixed allow-list of admin user ids (mock DB mode and tests)."""

    def __init__(self, admin_ids: Iterable[str]):
        self.admin_ids = frozenset(admin_ids)

    def is_admin(self, caller_id: Optional[str]) -> bool:
        return bool(caller_id) and caller_id in self.admin_ids
