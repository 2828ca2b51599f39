"""OpenTelemetry tracing + structured logging for the archive lifecycle.

The Telemetry class is a small facade over OTel's TracerProvider and a
trace-aware logging adapter. Span helpers never raise, so instrumentation
cannot take the lifecycle controller down with it.
"""

from __future__ import annotations

import json
import logging
import os
from contextlib import contextmanager
from datetime import datetime
from pathlib import Path
from typing import Generator

from opentelemetry import trace
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import SimpleSpanProcessor
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter
from opentelemetry.trace import Status, StatusCode

from archivelib.engine.exceptions import EngineError

LOGGER_NAME = "archivelib"
TRACER_NAME = "archivelib.lifecycle"
ENGINE_TAG_ATTRIBUTE = "engine.tag"
STORE_PATH_ATTRIBUTE = "store.path"


class _Span:
    """Span wrapper whose setters ignore OTel errors.

    Engine outcomes land under ``engine.tag``: ``"ok"`` on success, the
    failure tag otherwise. A failure also attaches the exception as a span
    event and marks the span status as an error.
    """

    def __init__(self, span: object) -> None:
        self._span = span

    def set_attribute(self, key: str, value: object) -> None:
        try:
            self._span.set_attribute(key, value)  # type: ignore[attr-defined]
        except Exception:
            pass

    def engine_ok(self) -> None:
        self.set_attribute(ENGINE_TAG_ATTRIBUTE, "ok")

    def engine_failed(self, exc: EngineError) -> None:
        self.set_attribute(ENGINE_TAG_ATTRIBUTE, exc.tag)
        try:
            self._span.record_exception(exc)  # type: ignore[attr-defined]
            self._span.set_status(Status(StatusCode.ERROR, exc.tag))  # type: ignore[attr-defined]
        except Exception:
            pass


class _OtelLogAdapter(logging.LoggerAdapter):
    """LoggerAdapter that stamps trace_id and span_id onto every record."""

    def process(self, msg: str, kwargs: dict) -> tuple[str, dict]:  # type: ignore[override]
        ctx = trace.get_current_span().get_span_context()
        extra = kwargs.get("extra", {})
        if ctx.is_valid:
            extra["trace_id"] = format(ctx.trace_id, "032x")
            extra["span_id"] = format(ctx.span_id, "016x")
        kwargs["extra"] = extra
        return msg, kwargs


class Telemetry:
    """Thin OTel facade shared by the controller, scheduler and UI.

    ``span()`` opens an OTel span; ``log`` is a logger whose records carry
    the active trace and span ids.
    """

    def __init__(self, tracer: object) -> None:
        self._tracer = tracer
        self.log: _OtelLogAdapter = _OtelLogAdapter(logging.getLogger(LOGGER_NAME), {})

    @contextmanager
    def span(
        self, name: str, store_path: Path | None = None
    ) -> Generator[_Span, None, None]:
        """Open an OTel span named *name* (e.g. ``"lifecycle.open"``).

        When *store_path* is given it is recorded as ``store.path`` at span
        start.
        """
        attributes = {STORE_PATH_ATTRIBUTE: str(store_path)} if store_path is not None else None
        with self._tracer.start_as_current_span(name, attributes=attributes) as otel_span:  # type: ignore[attr-defined]
            yield _Span(otel_span)

    @classmethod
    def for_testing(cls) -> tuple["Telemetry", InMemorySpanExporter]:
        """Create a Telemetry instance backed by an in-memory exporter.

        Returns:
            ``(Telemetry, InMemorySpanExporter)``; call
            ``exporter.get_finished_spans()`` to assert on span names and
            attributes.
        """
        exporter = InMemorySpanExporter()
        provider = TracerProvider()
        provider.add_span_processor(SimpleSpanProcessor(exporter))
        return cls(provider.get_tracer(TRACER_NAME)), exporter

    @classmethod
    def noop(cls) -> "Telemetry":
        """Create a Telemetry instance whose spans are discarded."""
        provider = TracerProvider()
        return cls(provider.get_tracer(TRACER_NAME))


_singleton: Telemetry | None = None


def get_telemetry() -> Telemetry:
    """Return the active Telemetry instance (noop if not yet configured)."""
    global _singleton
    if _singleton is None:
        _singleton = Telemetry.noop()
    return _singleton


def set_telemetry(tel: Telemetry) -> None:
    """Replace the active Telemetry instance."""
    global _singleton
    _singleton = tel


# ---------------------------------------------------------------------------
# File logging helpers
# ---------------------------------------------------------------------------


class _DefaultsFilter(logging.Filter):
    """Give records emitted outside any span zero-valued trace/span ids."""

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "trace_id"):
            record.trace_id = "0" * 32  # type: ignore[attr-defined]
        if not hasattr(record, "span_id"):
            record.span_id = "0" * 16  # type: ignore[attr-defined]
        return True


class _JsonFormatter(logging.Formatter):
    """One JSON object per line: ts, level, logger, trace, span, msg."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "ts": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "logger": record.name,
            "trace": getattr(record, "trace_id", "0" * 32),
            "span": getattr(record, "span_id", "0" * 16),
            "msg": record.getMessage(),
        }
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)


def configure_file_logging(log_dir: str = "logs") -> str:
    """Send the ``archivelib`` logger tree to a JSON-lines file.

    Creates ``{log_dir}/archive-YYYYMMDD.log``. Calling it twice does not
    add a second handler. Tests do not call this.

    Args:
        log_dir: Directory for log files (created if absent).

    Returns:
        Path of the log file.
    """
    os.makedirs(log_dir, exist_ok=True)
    log_path = os.path.join(log_dir, f"archive-{datetime.now().strftime('%Y%m%d')}.log")

    logger = logging.getLogger(LOGGER_NAME)
    if any(isinstance(h, logging.FileHandler) for h in logger.handlers):
        return log_path

    handler = logging.FileHandler(log_path, encoding="utf-8")
    handler.setLevel(logging.DEBUG)
    handler.addFilter(_DefaultsFilter())
    handler.setFormatter(_JsonFormatter())

    logger.setLevel(logging.DEBUG)
    logger.addHandler(handler)
    return log_path
