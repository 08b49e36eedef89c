from __future__ import annotations

import logging

HEALTH_PROBE_PATHS: tuple[str, ...] = ("/healthz", "/readyz")


class SkipHealthzFilter(logging.Filter):
    """Drop access/error log records produced by health probes."""

    def __init__(self, prefixes: tuple[str, ...] = HEALTH_PROBE_PATHS) -> None:
        super().__init__()
        self.prefixes = prefixes

    def filter(self, record: logging.LogRecord) -> bool:
        path = _request_path(record)
        if path is None:
            # runserver access lines only carry the path inside the message.
            message = record.getMessage()
            return not any(prefix in message for prefix in self.prefixes)
        return not path.startswith(self.prefixes)


def _request_path(record: logging.LogRecord) -> str | None:
    candidates = [getattr(record, "request", None)]
    if isinstance(record.args, tuple):
        candidates.extend(record.args)

    for obj in candidates:
        path = getattr(obj, "path", None) or getattr(obj, "path_info", None)
        if isinstance(path, str) and path:
            return path
    return None
