"""Unified event schema and module-level emit helpers.

All timestamps use UTC ISO-8601 with ``Z`` suffix.  The ``emit()``
family of functions is safe to call from any context -- failures are
printed to stderr and never interrupt the caller.
"""

from __future__ import annotations

import sys
import time
import traceback
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class EventLevel(str, Enum):
    info = "info"
    warning = "warning"
    error = "error"


class EventType(str, Enum):
    # Compute lifecycle
    compute_completed = "compute_completed"
    compute_failed = "compute_failed"

    # Record batch lifecycle
    batch_started = "batch_started"
    batch_completed = "batch_completed"


# ---------------------------------------------------------------------------
# Error codes
# ---------------------------------------------------------------------------

FORMULA_PARSE_ERROR = "formula_parse_error"
FORMULA_REF_ERROR = "formula_ref_error"
FORMULA_FUNCTION_ERROR = "formula_function_error"
FORMULA_DEPTH_ERROR = "formula_depth_error"
COMPUTE_LENGTH_MISMATCH = "compute_length_mismatch"
MALFORMED_AST_PAYLOAD = "malformed_ast_payload"


# ---------------------------------------------------------------------------
# Value truncation
# ---------------------------------------------------------------------------

# Formula text and error messages can be arbitrarily long.
_MAX_VALUE_LEN = 256
_TRUNCATED = "...[truncated]"


def truncate_text(text: str) -> str:
    """Cut *text* to 256 chars, marking the cut."""
    if len(text) > _MAX_VALUE_LEN:
        return text[:_MAX_VALUE_LEN] + _TRUNCATED
    return text


def truncate_context(context: dict[str, Any]) -> dict[str, Any]:
    """Return a copy of *context* with long strings truncated.

    Nested dicts and lists are processed recursively.
    """
    return {key: _truncate_value(value) for key, value in context.items()}


def _truncate_value(value: Any) -> Any:
    if isinstance(value, dict):
        return truncate_context(value)
    if isinstance(value, list):
        return [_truncate_value(item) for item in value]
    if isinstance(value, str):
        return truncate_text(value)
    return value


# ---------------------------------------------------------------------------
# Event model
# ---------------------------------------------------------------------------


def _utc_now() -> str:
    """Return current UTC timestamp in ISO-8601 with Z suffix."""
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


class QuantEvent(BaseModel):
    """A single structured log event."""

    schema_version: int = 1
    ts: str = Field(default_factory=_utc_now)
    level: EventLevel
    event_type: EventType
    context: dict[str, Any] = Field(default_factory=dict)
    message: str = ""
    error_code: str | None = None


def make_compute_event(
    event_type: EventType,
    level: EventLevel,
    message: str,
    *,
    compute_id: str,
    formula_name: str | None = None,
    error_code: str | None = None,
    extra: dict[str, Any] | None = None,
) -> QuantEvent:
    """Build an event with guaranteed compute attribution context."""
    ctx: dict[str, Any] = {"compute_id": compute_id}
    if formula_name is not None:
        ctx["formula_name"] = formula_name
    if extra:
        ctx.update(extra)
    return QuantEvent(
        level=level,
        event_type=event_type,
        message=message,
        context=ctx,
        error_code=error_code,
    )


# ---------------------------------------------------------------------------
# Module-level sink reference
# ---------------------------------------------------------------------------

# Set by ``set_project_dir``; ``None`` means events are discarded.
_sink: Any = None  # EventSink | None


def set_project_dir(project_dir: Any) -> None:
    """Configure the module-level event sink for a project directory.

    Reads ``logging_enabled``, ``logging_fsync`` and ``logging_tail_bytes``
    from the project config (``quantcalc.yaml``).  Passing ``None``
    disables the sink.
    """
    global _sink
    from pathlib import Path

    from quantcalc.logging.sink import EventSink
    from quantcalc.project import load_project_config

    if project_dir is None:
        _sink = None
        return

    cfg = load_project_config(Path(project_dir))
    if not cfg.get("logging_enabled", True):
        _sink = None
        return

    tail_bytes = cfg.get("logging_tail_bytes")
    _sink = EventSink(
        Path(project_dir),
        fsync=bool(cfg.get("logging_fsync", False)),
        tail_bytes=int(tail_bytes) if tail_bytes is not None else None,
    )


def get_sink() -> Any:
    """Return the module-level sink, or None."""
    return _sink


# ---------------------------------------------------------------------------
# Rate-limited stderr warnings
# ---------------------------------------------------------------------------

_last_stderr_ts: float = 0.0
_STDERR_INTERVAL_SECS = 60.0


def _stderr_warning(msg: str) -> None:
    """Print a warning to stderr, rate-limited to one per 60 seconds."""
    global _last_stderr_ts
    now = time.monotonic()
    if now - _last_stderr_ts < _STDERR_INTERVAL_SECS:
        return
    _last_stderr_ts = now
    print(f"[quantcalc] {msg}", file=sys.stderr)


# ---------------------------------------------------------------------------
# Safe emit helpers
# ---------------------------------------------------------------------------


def emit(event: QuantEvent) -> None:
    """Write an event to the project log.

    **Never raises.**  On failure, prints a rate-limited warning to stderr.
    """
    sink = get_sink()
    if sink is None:
        return
    try:
        event = event.model_copy(update={
            "context": truncate_context(event.context),
            "message": truncate_text(event.message),
        })
        sink.write(event)
    except Exception:
        _stderr_warning(f"logging failed: {traceback.format_exc()}")


def emit_info(
    event_type: EventType,
    message: str,
    context: dict[str, Any] | None = None,
) -> None:
    """Convenience: emit an info-level event."""
    emit(QuantEvent(
        level=EventLevel.info,
        event_type=event_type,
        message=message,
        context=context or {},
    ))


def emit_warning(
    event_type: EventType,
    message: str,
    context: dict[str, Any] | None = None,
    *,
    error_code: str | None = None,
) -> None:
    """Convenience: emit a warning-level event."""
    emit(QuantEvent(
        level=EventLevel.warning,
        event_type=event_type,
        message=message,
        context=context or {},
        error_code=error_code,
    ))


def emit_error(
    event_type: EventType,
    message: str,
    context: dict[str, Any] | None = None,
    *,
    error_code: str | None = None,
) -> None:
    """Convenience: emit an error-level event."""
    emit(QuantEvent(
        level=EventLevel.error,
        event_type=event_type,
        message=message,
        context=context or {},
        error_code=error_code,
    ))
