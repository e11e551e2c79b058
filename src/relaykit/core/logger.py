"""
Structured logging for relaykit with key=value and JSON output.

[Logger][relaykit.core.logger.Logger] is a thin wrapper over a stdlib
``logging.Logger`` that accepts keyword arguments and renders them either
as ``key=value`` pairs or as a single JSON object per record. The pool and
the client use it for lifecycle events; lower layers (``utils``, ``nips``)
log through plain ``logging.getLogger(__name__)``.

[StructuredFormatter][relaykit.core.logger.StructuredFormatter] can be
installed on a root handler by the host application to render both styles
uniformly.

Examples:
    ```python
    from relaykit.core.logger import Logger

    logger = Logger("pool")
    logger.info("relay_connected", url="wss://relay.damus.io")
    # Output: relay_connected url=wss://relay.damus.io
    ```
"""

import datetime
import json
import logging
from typing import Any, ClassVar


def format_kv_pairs(
    kwargs: dict[str, Any],
    max_value_length: int | None = 1000,
    prefix: str = " ",
) -> str:
    """Render ``kwargs`` as space-separated ``key=value`` pairs.

    Values longer than ``max_value_length`` are truncated. Values that are
    empty or contain whitespace, ``=`` or quotes are escaped and quoted so
    the line stays machine-parseable.

    Returns:
        The rendered pairs preceded by ``prefix``, or ``""`` when
        ``kwargs`` is empty.
    """
    if not kwargs:
        return ""

    parts = []
    for key, value in kwargs.items():
        text = _truncate(str(value), max_value_length)
        if not text or any(c in text for c in ' ="\''):
            escaped = text.replace("\\", "\\\\").replace('"', '\\"')
            parts.append(f'{key}="{escaped}"')
        else:
            parts.append(f"{key}={text}")

    return prefix + " ".join(parts)


def _truncate(text: str, limit: int | None) -> str:
    if limit and len(text) > limit:
        return text[:limit] + f"...<truncated {len(text) - limit} chars>"
    return text


class StructuredFormatter(logging.Formatter):
    """Render records as ``level logger message key=value ...``.

    Reads the ``structured_kv`` extra attached by
    [Logger][relaykit.core.logger.Logger]. Records logged without it are
    emitted with the same prefix and no trailing pairs.
    """

    def format(self, record: logging.LogRecord) -> str:
        line = f"{record.levelname.lower()} {record.name} {record.getMessage()}"
        extra: dict[str, Any] = getattr(record, "structured_kv", {})
        if extra:
            line += format_kv_pairs(extra)
        return line


class Logger:
    """Structured logger accepting keyword arguments as extra fields.

    Mirrors the stdlib logging methods, each taking ``**kwargs`` that are
    rendered as ``key=value`` pairs (default) or merged into a JSON object
    when ``json_output`` is enabled.

    Examples:
        ```python
        logger = Logger("client")
        logger.warning("notifications_lagged", skipped=12)
        # Output: notifications_lagged skipped=12
        ```
    """

    _DEFAULT_MAX_VALUE_LENGTH: ClassVar[int] = 1000

    def __init__(
        self,
        name: str,
        *,
        json_output: bool = False,
        max_value_length: int | None = None,
    ) -> None:
        """Initialize a structured logger.

        Args:
            name: Name passed to ``logging.getLogger``.
            json_output: Emit one JSON object per record instead of pairs.
            max_value_length: Truncation limit for individual values.
                Defaults to 1000.
        """
        if max_value_length is None:
            max_value_length = self._DEFAULT_MAX_VALUE_LENGTH
        self._logger = logging.getLogger(name)
        self._json_output = json_output
        self._max_value_length = max_value_length

    @property
    def name(self) -> str:
        return self._logger.name

    def _format_json(self, msg: str, level: str, kwargs: dict[str, Any]) -> str:
        record = {
            "timestamp": datetime.datetime.now(datetime.UTC).isoformat(),
            "level": level,
            "logger": self._logger.name,
            "message": msg,
            **kwargs,
        }
        return json.dumps(record, default=str)

    def _make_extra(self, kwargs: dict[str, Any]) -> dict[str, Any]:
        if not kwargs:
            return {}
        # Values that fit are kept as-is so the formatter sees the original type
        truncated: dict[str, Any] = {}
        for key, value in kwargs.items():
            text = str(value)
            limited = _truncate(text, self._max_value_length)
            truncated[key] = value if limited == text else limited
        return {"structured_kv": truncated}

    def _log(self, level: int, msg: str, kwargs: dict[str, Any], *, exc_info: bool = False) -> None:
        if self._json_output:
            name = logging.getLevelName(level).lower()
            self._logger.log(level, self._format_json(msg, name, kwargs), exc_info=exc_info)
        else:
            self._logger.log(level, msg, extra=self._make_extra(kwargs), exc_info=exc_info)

    def debug(self, msg: str, **kwargs: Any) -> None:
        """Log at DEBUG level."""
        self._log(logging.DEBUG, msg, kwargs)

    def info(self, msg: str, **kwargs: Any) -> None:
        """Log at INFO level."""
        self._log(logging.INFO, msg, kwargs)

    def warning(self, msg: str, **kwargs: Any) -> None:
        """Log at WARNING level."""
        self._log(logging.WARNING, msg, kwargs)

    def error(self, msg: str, **kwargs: Any) -> None:
        """Log at ERROR level."""
        self._log(logging.ERROR, msg, kwargs)

    def exception(self, msg: str, **kwargs: Any) -> None:
        """Log at ERROR level with the active exception's traceback."""
        self._log(logging.ERROR, msg, kwargs, exc_info=True)
