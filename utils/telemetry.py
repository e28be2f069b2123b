"""Optional tracing hooks around persistence, model calls and tool calls.

The default `Telemetry` does nothing; `LoggingTelemetry` turns spans into
structured log lines. Nothing here is a global client: callers receive an
instance and pass it down.
"""

import time
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from utils.logger import get_logger

logger = get_logger(__name__)


class Telemetry:
    """No-op telemetry port."""

    @contextmanager
    def span(self, name: str, **attributes: Any) -> Iterator[dict[str, Any]]:
        # Callers may add attributes to the yielded dict while the span is open
        yield dict(attributes)

    def event(self, name: str, **attributes: Any) -> None:
        return None


class LoggingTelemetry(Telemetry):
    """Emit spans and events as JSON log records."""

    def __init__(self, service_name: str = "deepsearch"):
        self.service_name = service_name

    @contextmanager
    def span(self, name: str, **attributes: Any) -> Iterator[dict[str, Any]]:
        span_attributes = dict(attributes)
        start = time.perf_counter()
        status = "ok"
        try:
            yield span_attributes
        except BaseException as exc:
            status = type(exc).__name__
            raise
        finally:
            duration_ms = int((time.perf_counter() - start) * 1000)
            logger.info(
                f"span {name}",
                extra={
                    "extra_fields": {
                        "service": self.service_name,
                        "span": name,
                        "status": status,
                        "duration_ms": duration_ms,
                        **span_attributes,
                    }
                },
            )

    def event(self, name: str, **attributes: Any) -> None:
        logger.info(
            f"event {name}",
            extra={"extra_fields": {"service": self.service_name, "event": name, **attributes}},
        )


def create_telemetry(enabled: bool) -> Telemetry:
    return LoggingTelemetry() if enabled else Telemetry()
