"""
Structured logging for feature generation events.

Emits one JSON line per outcome so build logs can be filtered by event.
Diagnostic detail stays on the regular module loggers at debug level.

Logged events:
- features.detected
- feature.conflict
- scanner.unavailable
- features.written
- features.unchanged

Usage:
    from featuregen.logger import GenerationLogger

    events = GenerationLogger(server="defaultServer")
    events.log_conflict(conflict)
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Optional

from featuregen.models import FeatureConflict

_events_logger = logging.getLogger("featuregen.events")
_events_logger.setLevel(logging.INFO)

if not _events_logger.handlers:
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter("%(message)s"))
    _events_logger.addHandler(handler)
    _events_logger.propagate = False

_TEXT_FORMAT = "%(levelname)s %(name)s: %(message)s"


def configure_logging(level: str = "info", fmt: str = "text") -> None:
    """
    Configure the root logger and the event logger for CLI use.

    ``json`` keeps events as raw JSON lines; ``text`` prefixes them with the
    level like every other log line.
    """
    logging.basicConfig(level=level.upper(), format=_TEXT_FORMAT, stream=sys.stderr)
    logging.getLogger().setLevel(level.upper())
    formatter = logging.Formatter("%(message)s" if fmt == "json" else _TEXT_FORMAT)
    for h in _events_logger.handlers:
        h.setFormatter(formatter)


class GenerationLogger:
    """
    Structured logger for feature generation events.

    Each entry carries the server name and the event type so that runs for
    different servers can be told apart.
    """

    def __init__(
        self,
        server: Optional[str] = None,
        service_name: str = "featuregen",
        extra_labels: Optional[Dict[str, str]] = None,
    ):
        self.server = server
        self.service_name = service_name
        self.extra_labels = extra_labels or {}
        self._logger = _events_logger

    def _emit(self, event: str, level: str = "info", **extra_fields: Any) -> None:
        entry: Dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": level,
            "event": event,
            "service": self.service_name,
        }
        if self.server:
            entry["server"] = self.server
        entry.update(extra_fields)
        if self.extra_labels:
            entry["labels"] = self.extra_labels

        log_line = json.dumps(entry, default=str)

        if level == "error":
            self._logger.error(log_line)
        elif level == "warn":
            self._logger.warning(log_line)
        else:
            self._logger.info(log_line)

    def log_features_detected(
        self,
        dependency_features: Iterable[str],
        visible_features: Iterable[str],
        declared_features: Iterable[str],
    ) -> None:
        """Log the feature sets the reconciliation starts from."""
        self._emit(
            event="features.detected",
            dependency_features=sorted(dependency_features),
            visible_features=sorted(visible_features),
            declared_features=sorted(declared_features),
        )

    def log_conflict(self, conflict: FeatureConflict) -> None:
        """Log a scanned feature that is stricter than the declared one."""
        self._emit(
            event="feature.conflict",
            level="warn",
            message=conflict.message,
            feature=conflict.feature,
            expected_version=conflict.expected_version,
            declared_version=conflict.declared_version,
        )

    def log_scanner_unavailable(self, reason: str) -> None:
        self._emit(event="scanner.unavailable", reason=reason)

    def log_features_written(self, features: Iterable[str], path: Optional[str] = None) -> None:
        self._emit(event="features.written", features=sorted(features), path=path)

    def log_unchanged(self) -> None:
        self._emit(event="features.unchanged")
