"""Audit sink: append-only log of workflow actions.

Audit writes are best-effort.  A failing write is logged and never
propagated: it must not roll back or fail the workflow that produced it.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import structlog
from django.db import DatabaseError

from modules.core.models import AuditLogEntry

logger = structlog.get_logger(__name__)


class IAuditSink(ABC):
    @abstractmethod
    def record(
        self,
        action: str,
        aggregate_id: Any,
        user_id: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Append one entry to the audit trail."""


class DatabaseAuditSink(IAuditSink):
    """Writes ``AuditLogEntry`` rows for the ``order`` aggregate."""

    def __init__(self, aggregate_type: str = "order") -> None:
        self._aggregate_type = aggregate_type

    def record(
        self,
        action: str,
        aggregate_id: Any,
        user_id: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        try:
            AuditLogEntry.objects.create(
                action=action,
                aggregate_type=self._aggregate_type,
                aggregate_id=str(aggregate_id),
                user_id=user_id,
                details=details or {},
            )
        except DatabaseError as exc:
            logger.warning(
                "audit.write_failed",
                action=action,
                aggregate_id=str(aggregate_id),
                error=str(exc),
            )
