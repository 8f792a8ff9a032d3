"""
Privilege Resolver

Maps an identity to its five named permissions.

CRITICAL: Callers never see an error from resolve(). A missing record
or a failed lookup resolves to the configured fallback policy, and the
failure is recorded as a PRIVILEGE_FALLBACK audit event instead.

The default policy is fail-open (everything granted). Navigation relies
on that; switching to fail-closed hides every privileged entry whenever
the lookup fails.
"""

from typing import Optional

from finance_tracker.audit import AuditLogger
from finance_tracker.config import get_settings
from finance_tracker.models.auth import (
    PrivilegeFallbackPolicy,
    PrivilegeKey,
    PrivilegeSet,
    fallback_privileges,
)
from finance_tracker.services.backend import FinanceStorageInterface


class PrivilegeResolver:
    """Looks up privilege records and applies the fallback policy."""

    def __init__(
        self,
        storage: Optional[FinanceStorageInterface] = None,
        policy: Optional[PrivilegeFallbackPolicy] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        """
        Args:
            storage: Where privilege records live. None means no
                     records exist and every lookup falls back.
            policy: Fallback policy (defaults to AUTH_PRIVILEGE_FALLBACK)
        """
        self._storage = storage
        self._policy = PrivilegeFallbackPolicy(
            policy or get_settings().auth.privilege_fallback
        )
        self._audit = audit_logger or AuditLogger()

    @property
    def policy(self) -> PrivilegeFallbackPolicy:
        return self._policy

    @property
    def fallback(self) -> PrivilegeSet:
        return fallback_privileges(self._policy)

    async def resolve(self, user_id: str) -> PrivilegeSet:
        """Privileges for an identity. Never raises."""
        if self._storage is None:
            return self._fall_back(user_id, "no privilege store configured")

        try:
            record = await self._storage.get_privileges(user_id)
        except Exception as e:
            return self._fall_back(user_id, f"lookup failed: {e}")

        if record is None:
            return self._fall_back(user_id, "no privilege record")

        self._audit.log_privileges_resolved(
            user_id=user_id,
            granted=[key.value for key in PrivilegeKey if record.allows(key)],
        )
        return record

    def _fall_back(self, user_id: str, reason: str) -> PrivilegeSet:
        self._audit.log_privilege_fallback(
            user_id=user_id,
            policy=self._policy.value,
            reason=reason,
        )
        return self.fallback
