"""Audit event repository protocol."""

from typing import List, Protocol

from domain.entities.audit import AuditEvent


class IAuditRepository(Protocol):
    """Repository interface for AuditEvent entries."""

    async def create(self, event: AuditEvent) -> AuditEvent:
        """Append a new audit event."""
        ...

    async def get_for_group(self, group_id: str, limit: int = 30) -> List[AuditEvent]:
        """Get audit events for a group, ordered by newest first."""
        ...
