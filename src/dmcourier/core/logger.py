"""
Structured logging with key=value and JSON output support.

Wraps the standard library ``logging`` module. Events are logged as a short
snake_case name followed by key=value pairs (default) or as one JSON object
per line. Verbosity is never read from ambient state: the CLI builds a
[LogConfig][dmcourier.core.logger.LogConfig] once at startup, passes it to
[setup_logging()][dmcourier.core.logger.setup_logging], and threads its
``json_output`` flag into every [Logger][dmcourier.core.logger.Logger].

Examples:
    ```python
    from dmcourier.core.logger import Logger

    logger = Logger("prober")
    logger.warning("relay_unreachable", relay="wss://relay.example.com", error="refused")
    # Output: warning prober relay_unreachable relay=wss://relay.example.com error=refused
    ```
"""

import datetime
import json
import logging
from typing import Any, ClassVar, Literal

from pydantic import BaseModel, Field


LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR"]


class LogConfig(BaseModel):
    """Logging configuration, read once at startup.

    Attributes:
        level: Root log level.
        json_output: Emit JSON objects instead of key=value pairs.
    """

    level: LogLevel = Field(default="WARNING", description="Root log level")
    json_output: bool = Field(default=False, description="Emit JSON log lines")


def format_kv_pairs(
    kwargs: dict[str, Any],
    max_value_length: int | None = 1000,
    prefix: str = " ",
) -> str:
    """Format a dictionary as space-separated key=value pairs.

    Values are truncated to ``max_value_length`` characters, and values
    containing whitespace, equals signs, or quotes are escaped and quoted.

    Args:
        kwargs: Key-value pairs to format.
        max_value_length: Maximum characters per value before truncation.
            Pass None to disable truncation.
        prefix: String prepended to the output (default: single space).

    Returns:
        Formatted string, e.g. ' key1=value1 key2="value with spaces"'.
        Returns empty string if kwargs is empty.
    """
    if not kwargs:
        return ""

    parts = []
    for k, v in kwargs.items():
        s = str(v)
        if max_value_length and len(s) > max_value_length:
            s = s[:max_value_length] + f"...<truncated {len(s) - max_value_length} chars>"
        if not s or " " in s or "=" in s or '"' in s or "'" in s:
            escaped = s.replace("\\", "\\\\").replace('"', '\\"')
            parts.append(f'{k}="{escaped}"')
        else:
            parts.append(f"{k}={s}")

    return prefix + " ".join(parts)


class StructuredFormatter(logging.Formatter):
    """Formats every log record as ``level name message key=value ...``.

    Reads structured data from the ``structured_kv`` extra field attached
    by [Logger][dmcourier.core.logger.Logger]. Plain ``logging.getLogger()``
    records (models and utils layers) are emitted with the same prefix.
    """

    def format(self, record: logging.LogRecord) -> str:
        base = f"{record.levelname.lower()} {record.name} {record.getMessage()}"
        extra: dict[str, Any] = getattr(record, "structured_kv", {})
        if extra:
            base += format_kv_pairs(extra)
        if record.exc_info:
            base += "\n" + self.formatException(record.exc_info)
        return base


def setup_logging(config: LogConfig) -> None:
    """Install a ``StructuredFormatter`` handler on the root logger.

    Replaces handlers installed by a previous call so repeated invocations
    (tests, embedded use) do not duplicate output.
    """
    handler = logging.StreamHandler()
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger()
    for existing in list(root.handlers):
        if isinstance(existing.formatter, StructuredFormatter):
            root.removeHandler(existing)
    root.addHandler(handler)
    root.setLevel(getattr(logging, config.level))

    # nostr-sdk logs its own relay chatter; our services report what matters
    logging.getLogger("nostr_sdk").setLevel(logging.CRITICAL)


class Logger:
    """Structured logger that appends keyword arguments as extra fields.

    Wraps a standard ``logging.Logger``. All public methods mirror the
    standard logging API with an added ``**kwargs`` parameter.

    Examples:
        ```python
        logger = Logger("delivery")
        logger.info("relay_accepted", relay="wss://relay.example.com")
        # Output: relay_accepted relay=wss://relay.example.com
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
            name: Logger name, typically the service name.
            json_output: If True, emit JSON objects instead of key=value pairs.
            max_value_length: Maximum character length for individual values
                before truncation. Defaults to 1000.
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
        """Format message and kwargs as a JSON string."""
        record = {
            "timestamp": datetime.datetime.now(datetime.UTC).isoformat(),
            "level": level,
            "service": self._logger.name,
            "message": msg,
            **kwargs,
        }
        return json.dumps(record, default=str)

    def _make_extra(self, kwargs: dict[str, Any]) -> dict[str, Any]:
        """Build the ``extra`` dict for structured log records, truncating long values."""
        if not kwargs:
            return {}
        truncated: dict[str, Any] = {}
        for k, v in kwargs.items():
            s = str(v)
            if self._max_value_length and len(s) > self._max_value_length:
                truncated[k] = (
                    s[: self._max_value_length]
                    + f"...<truncated {len(s) - self._max_value_length} chars>"
                )
            else:
                truncated[k] = v
        return {"structured_kv": truncated}

    def _log(self, level: int, msg: str, kwargs: dict[str, Any], *, exc_info: bool = False) -> None:
        if not self._logger.isEnabledFor(level):
            return
        if self._json_output:
            name = logging.getLevelName(level).lower()
            self._logger.log(level, self._format_json(msg, name, kwargs), exc_info=exc_info)
        else:
            self._logger.log(level, msg, extra=self._make_extra(kwargs), exc_info=exc_info)

    def debug(self, msg: str, **kwargs: Any) -> None:
        """Log a DEBUG level message with optional key=value pairs."""
        self._log(logging.DEBUG, msg, kwargs)

    def info(self, msg: str, **kwargs: Any) -> None:
        """Log an INFO level message with optional key=value pairs."""
        self._log(logging.INFO, msg, kwargs)

    def warning(self, msg: str, **kwargs: Any) -> None:
        """Log a WARNING level message with optional key=value pairs."""
        self._log(logging.WARNING, msg, kwargs)

    def error(self, msg: str, **kwargs: Any) -> None:
        """Log an ERROR level message with optional key=value pairs."""
        self._log(logging.ERROR, msg, kwargs)

    def exception(self, msg: str, **kwargs: Any) -> None:
        """Log an ERROR level message with the current exception traceback."""
        self._log(logging.ERROR, msg, kwargs, exc_info=True)
