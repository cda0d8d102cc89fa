"""
Append-only audit trail of survey, parameter and response events.

Entries are kept newest first and the stored log is capped at
SURVEYTRACK_AUDIT_LOG_LIMIT entries; the oldest entries fall off the end.
Recording never raises: a failed write is logged by the storage layer and
the workflow carries on.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable

from django.conf import settings

from surveytrack_app.core.storage import CollectionStorage

from .records import AuditLog
from .store import get_audit_logs, save_audit_logs

logger = logging.getLogger(__name__)

DEFAULT_LOG_LIMIT = 1000


def _get_log_limit() -> int:
    return getattr(settings, "SURVEYTRACK_AUDIT_LOG_LIMIT", DEFAULT_LOG_LIMIT)


class AuditRecorder:
    def __init__(self, storage: CollectionStorage, limit: int | None = None):
        self.storage = storage
        self.limit = limit if limit is not None else _get_log_limit()

    def record(
        self,
        action: str,
        entity_type: str,
        entity_id: str,
        user_id: str,
        details: str,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        entry = AuditLog(
            action=str(action),
            entity_type=str(entity_type),
            entity_id=entity_id,
            user_id=user_id,
            details=details,
            metadata=metadata,
        )
        logs = get_audit_logs(self.storage)
        logs.insert(0, entry)
        save_audit_logs(self.storage, logs[: self.limit])
        logger.info(
            f"Audit {entry.action} {entry.entity_type} {entry.entity_id} "
            f"by {entry.user_id}: {entry.details}"
        )

    def list(self) -> list[AuditLog]:
        return get_audit_logs(self.storage)


def _selected(value: str | None) -> bool:
    return bool(value) and value != "all"


def filter_audit_logs(
    logs: Iterable[AuditLog],
    action: str | None = None,
    entity_type: str | None = None,
    search: str = "",
) -> list[AuditLog]:
    """Filter entries in memory, keeping their order.

    ``action`` and ``entity_type`` match exactly ("all" or empty matches
    everything). ``search`` is a case-insensitive substring test against the
    details, entity id and user id.
    """
    term = (search or "").lower()
    filtered = []
    for log in logs:
        if _selected(action) and log.action != action:
            continue
        if _selected(entity_type) and log.entity_type != entity_type:
            continue
        if term and not (
            term in log.details.lower()
            or term in log.entity_id.lower()
            or term in log.user_id.lower()
        ):
            continue
        filtered.append(log)
    return filtered
