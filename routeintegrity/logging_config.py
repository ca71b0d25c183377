"""
Logging for the Route Integrity Registry.

Everything goes through the standard logging module. Records can carry
an ``extra_fields`` dict, which the JSON formatter merges into the
output line; the audit logger uses this to attach route hashes, error
kinds and committers to each registry event.
"""

import json
import logging
import sys
import uuid
from contextvars import ContextVar
from datetime import datetime, timezone
from typing import Any, Dict, Optional

# Bound per HTTP request by the service middleware
request_id_var: ContextVar[str] = ContextVar("routeintegrity_request_id", default="")

_BASE_FIELDS = ("module", "funcName", "lineno")


class StructuredFormatter(logging.Formatter):
    """One JSON object per line, for log shippers."""

    def format(self, record: logging.LogRecord) -> str:
        created = datetime.fromtimestamp(record.created, tz=timezone.utc)
        entry: Dict[str, Any] = {
            "timestamp": created.isoformat(timespec="milliseconds").replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for attr in _BASE_FIELDS:
            entry[attr] = getattr(record, attr, None)

        rid = request_id_var.get()
        if rid:
            entry["request_id"] = rid
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)

        entry.update(getattr(record, "extra_fields", None) or {})
        return json.dumps(entry, default=str)


class AuditLogger:
    """
    Registry audit trail.

    Event types: COMMIT_ACCEPTED, COMMIT_REJECTED, COMMIT_LOOKUP,
    COMMIT_VERIFIED, EVENT_SINK_FAILED, RATE_LIMIT_EXCEEDED.
    """

    def __init__(self, name: str = "routeintegrity.audit"):
        self._logger = logging.getLogger(name)

    def _emit(self, level: int, event_type: str, message: str, **fields: Any) -> None:
        if not self._logger.isEnabledFor(level):
            return
        fields["event_type"] = event_type
        self._logger.log(level, "%s: %s", event_type, message, extra={"extra_fields": fields})

    def commit_accepted(self, route_hash: str, committer: str, timestamp: int, expiry: int) -> None:
        self._emit(
            logging.INFO, "COMMIT_ACCEPTED",
            f"route {route_hash} committed at {timestamp}",
            route_hash=route_hash, committer=committer, timestamp=timestamp, expiry=expiry,
        )

    def commit_rejected(self, route_hash: str, error_kind: str, reason: str) -> None:
        self._emit(
            logging.WARNING, "COMMIT_REJECTED",
            f"route {route_hash} refused ({error_kind}): {reason}",
            route_hash=route_hash, error_kind=error_kind, reason=reason,
        )

    def commit_lookup(self, route_hash: str, found: bool) -> None:
        self._emit(
            logging.DEBUG, "COMMIT_LOOKUP",
            f"route {route_hash} {'found' if found else 'not found'}",
            route_hash=route_hash, found=found,
        )

    def commit_verified(self, route_hash: str, verified: bool) -> None:
        self._emit(
            logging.INFO, "COMMIT_VERIFIED",
            f"route {route_hash} {'matches' if verified else 'does not match'}",
            route_hash=route_hash, verified=verified,
        )

    def event_sink_failed(self, sink: str, route_hash: str, error: str) -> None:
        """A notification was dropped. The commitment itself is already stored."""
        self._emit(
            logging.ERROR, "EVENT_SINK_FAILED",
            f"sink {sink} dropped notification for {route_hash}: {error}",
            sink=sink, route_hash=route_hash, error=error,
        )

    def rate_limit_exceeded(self, client_id: str, endpoint: str) -> None:
        self._emit(
            logging.WARNING, "RATE_LIMIT_EXCEEDED",
            f"{client_id} throttled on {endpoint}",
            client_id=client_id, endpoint=endpoint,
        )


def configure_logging(level: str = "INFO", json_format: bool = True, log_file: Optional[str] = None) -> None:
    """
    Replace the root handlers with a stdout handler (and optionally a
    file handler) using JSON or plain text formatting.
    """
    formatter: logging.Formatter
    if json_format:
        formatter = StructuredFormatter()
    else:
        formatter = logging.Formatter("%(asctime)s %(levelname)s [%(name)s] %(message)s")

    handlers = [logging.StreamHandler(sys.stdout)]
    if log_file:
        handlers.append(logging.FileHandler(log_file))
    for handler in handlers:
        handler.setFormatter(formatter)

    root = logging.getLogger()
    for old in list(root.handlers):
        root.removeHandler(old)
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level.upper())


def set_request_id(request_id: Optional[str] = None) -> str:
    """Bind a request id to the current context, generating one if needed."""
    if request_id is None:
        request_id = str(uuid.uuid4())
    request_id_var.set(request_id)
    return request_id


def get_request_id() -> str:
    return request_id_var.get()


audit_log = AuditLogger()
