"""Structured event logging for quantcalc.

Provides a unified event schema, filesystem NDJSON sink, and safe
emit helpers that never raise uncaught exceptions.
"""

from quantcalc.logging.events import (
    EventLevel,
    EventType,
    QuantEvent,
    emit,
    emit_error,
    emit_info,
    emit_warning,
    make_compute_event,
    set_project_dir,
    truncate_context,
    truncate_text,
)
from quantcalc.logging.sink import EventSink

__all__ = [
    "EventLevel",
    "EventSink",
    "EventType",
    "QuantEvent",
    "emit",
    "emit_error",
    "emit_info",
    "emit_warning",
    "make_compute_event",
    "set_project_dir",
    "truncate_context",
    "truncate_text",
]
