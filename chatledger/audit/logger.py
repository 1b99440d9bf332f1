"""
Audit Logger

Every ledger mutation, confirmation transition, rejected oracle command
and storage degradation goes through AuditLogger.log():

- the event is always written to the local structured log
- it is also appended to audit storage (the AuditLog worksheet) when one
  is configured
- a failed audit write is logged and reported as False, never raised

Events caused by one chat message share a correlation id.
"""

import logging
from typing import Optional
from uuid import UUID, uuid4

import structlog

from chatledger.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity
from chatledger.services.storage import AuditStorageInterface


def configure_logging(log_level: str = "INFO") -> None:
    """Route structlog through stdlib logging as JSON lines, at log_level."""
    logging.basicConfig(
        format="%(message)s",
        level=getattr(logging, log_level.upper(), logging.INFO),
    )
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.processors.JSONRenderer()
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


configure_logging()


# Local log method per audit severity
_LOG_METHODS = {
    AuditSeverity.DEBUG: "debug",
    AuditSeverity.INFO: "info",
    AuditSeverity.WARNING: "warning",
    AuditSeverity.ERROR: "error",
    AuditSeverity.CRITICAL: "critical",
}


class AuditLogger:
    """
    Central audit logging service.

    Usage:
        audit = AuditLogger(GoogleSheetsAuditStorage(client))
        await audit.log(AuditEventBuilder.history_cleared(user_id, count))

    With no storage the events only reach the local log.
    """

    def __init__(self, storage: Optional[AuditStorageInterface] = None):
        self._storage = storage
        self._logger = structlog.get_logger("chatledger.audit")

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event locally and persist it when storage is set.

        Returns False only when the storage write failed.
        """
        method = getattr(self._logger, _LOG_METHODS.get(event.severity, "info"))
        method("audit_event", **event.to_log_dict())

        if self._storage is None:
            return True

        try:
            return await self._storage.append_event(event)
        except Exception as e:
            self._logger.error(
                "audit_storage_failed",
                error=str(e),
                event_id=str(event.event_id),
                event_type=event.event_type.value,
            )
            return False

    async def log_storage_degraded(
        self,
        user_id: str,
        operation: str,
        error_message: str,
        details: Optional[dict] = None,
    ) -> None:
        """A row-store call failed and the ledger carried on in memory."""
        await self.log(
            AuditEventBuilder.storage_degraded(
                user_id=user_id,
                operation=operation,
                error_message=error_message,
                details=details,
            )
        )

    async def log_oracle_command_rejected(
        self,
        user_id: str,
        command: str,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(
            AuditEventBuilder.oracle_command_rejected(
                user_id=user_id,
                command=command,
                correlation_id=correlation_id,
            )
        )

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        user_id: Optional[str] = None,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        await self.log(
            AuditEventBuilder.system_error(
                error_type=error_type,
                error_message=error_message,
                user_id=user_id,
                details=details,
                correlation_id=correlation_id,
            )
        )


def create_correlation_id() -> UUID:
    """New correlation id, created once per inbound chat message."""
    return uuid4()
