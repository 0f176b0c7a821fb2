"""Log record model and message rendering."""

import datetime
import traceback
from dataclasses import dataclass, field

MESSAGES_TYPES = ("list", "string")


def utc_timestamp() -> str:
    return datetime.datetime.now(datetime.timezone.utc).isoformat()


def normalize_text(text: str) -> str:
    """Force *text* through UTF-8 so lone surrogates cannot break serialization."""
    return text.encode("utf-8", errors="replace").decode("utf-8")


def _render_text(message: str) -> str:
    return normalize_text(message)


def _render_bytes(message: bytes) -> str:
    return message.decode("utf-8", errors="replace")


def _render_exception(error: BaseException) -> str:
    text = f"{error} ({type(error).__name__})"
    if error.__traceback__ is not None:
        stack = "".join(traceback.format_tb(error.__traceback__))
        text = f"{text}\n{stack.rstrip()}"
    return normalize_text(text)


def _render_other(message) -> str:
    return normalize_text(str(message))


def render_message(message) -> str:
    """Render a buffered payload (text, bytes, exception or any value) to text."""
    if isinstance(message, str):
        return _render_text(message)
    if isinstance(message, (bytes, bytearray)):
        return _render_bytes(bytes(message))
    if isinstance(message, BaseException):
        return _render_exception(message)
    return _render_other(message)


@dataclass
class LogRecord:
    """One record posted to the sink under *tag*.

    Merge order of to_dict(), lowest to highest precedence: global_data,
    extras, context, then the core fields (messages, severity, time).
    """

    tag: str
    level: str
    messages: list[str] | str | None = None
    time: str = field(default_factory=utc_timestamp)
    context: dict = field(default_factory=dict)
    global_data: dict = field(default_factory=dict)
    extras: dict = field(default_factory=dict)

    def to_dict(self, severity_key: str = "level") -> dict:
        data = {}
        data.update(self.global_data)
        data.update(self.extras)
        data.update(self.context)
        if self.messages is not None:
            data["messages"] = self.messages
        data[severity_key] = self.level
        data["time"] = self.time
        return data
