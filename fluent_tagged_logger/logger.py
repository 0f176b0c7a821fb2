"""Buffered tagged logger: one record per unit of work, flushed to a sink."""

import contextlib
import contextvars
import itertools
import logging
from collections.abc import Callable, Mapping

from fluent_tagged_logger.context import ExtractionRule, extract_context
from fluent_tagged_logger.models import MESSAGES_TYPES, LogRecord, render_message
from fluent_tagged_logger.severity import (
    DEBUG, ERROR, FATAL, INFO, WARN, label_of, rank_of,
)
from fluent_tagged_logger.state import LogState

logger = logging.getLogger(__name__)

_instance_ids = itertools.count(1)


def _is_blank(message) -> bool:
    if message is None:
        return True
    if isinstance(message, (str, bytes, bytearray)):
        return not message.strip()
    return False


class FluentLogger:
    """Buffers log calls and posts them to *sink* as one structured record.

    Pending state (buffer, tags, global data, bound context) lives in a
    LogState held in a ContextVar, so every thread or asyncio task that
    enters an outermost scope works on its own state.
    """

    def __init__(
        self,
        sink,
        tag: str = "",
        level: int | str = DEBUG,
        messages_type: str = "list",
        severity_key: str = "level",
        flush_immediately: bool = False,
        log_tags: Mapping[str, ExtractionRule] | None = None,
    ):
        if messages_type not in MESSAGES_TYPES:
            raise ValueError(f"messages_type must be one of {MESSAGES_TYPES}, got {messages_type!r}")
        self._sink = sink
        self._tag = tag or ""
        self._level = rank_of(level) if isinstance(level, str) else int(level)
        self._messages_type = messages_type
        self._severity_key = severity_key
        self._flush_immediately = flush_immediately
        self._log_tags = dict(log_tags or {})
        self._state_var: contextvars.ContextVar[LogState] = contextvars.ContextVar(
            f"fluent_tagged_logger_state_{next(_instance_ids)}"
        )

    @property
    def level(self) -> int:
        return self._level

    @property
    def tag(self) -> str:
        return self._tag

    @property
    def sink(self):
        return self._sink

    @property
    def state(self) -> LogState:
        """The pending state of the current unit of work, created on first use."""
        state = self._state_var.get(None)
        if state is None:
            state = LogState(self._tag)
            self._state_var.set(state)
        return state

    # ------------------------------------------------------------------
    # Logging entry points
    # ------------------------------------------------------------------

    def add(self, severity: int, message=None):
        """Buffer *message*, or post it directly when it is a mapping."""
        if severity < self._level or _is_blank(message):
            return
        if isinstance(message, Mapping):
            self.post(severity, message)
        else:
            self._buffer(severity, message)

    def debug(self, message):
        self.add(DEBUG, message)

    def info(self, message):
        self.add(INFO, message)

    def warn(self, message):
        self.add(WARN, message)

    def error(self, message):
        self.add(ERROR, message)

    def fatal(self, message):
        self.add(FATAL, message)

    def _buffer(self, severity: int, message):
        state = self.state
        state.raise_severity(severity)
        state.messages.append(render_message(message))
        if self._flush_immediately:
            self.flush()

    def post(self, severity: int, data: Mapping):
        """Emit *data* as its own record right away, leaving the buffer alone."""
        if severity < self._level:
            return
        if not isinstance(data, Mapping) or not data:
            return
        state = self.state
        state.raise_severity(severity)
        record = LogRecord(
            tag=state.tags.current_key(),
            level=label_of(state.severity),
            global_data=state.global_data.snapshot(),
            extras=dict(data),
        )
        self._emit(record)
        state.severity = 0

    def flush(self) -> bool:
        """Post buffered messages as one record. Returns False if nothing was buffered."""
        state = self.state
        if state.idle:
            return False
        messages = list(state.messages)
        if self._messages_type == "string":
            messages = "\n".join(messages)
        try:
            record = LogRecord(
                tag=state.tags.current_key(),
                level=label_of(state.severity),
                messages=messages,
                context=extract_context(state.context, self._log_tags),
                global_data=state.global_data.snapshot(),
                extras=dict(state.extras),
            )
            self._emit(record)
        finally:
            state.reset()
        return True

    def _emit(self, record: LogRecord):
        logger.debug("Posting record tag=%s level=%s", record.tag, record.level)
        self._sink.post(record.tag, record.to_dict(self._severity_key))

    # ------------------------------------------------------------------
    # Extras, tags and global data
    # ------------------------------------------------------------------

    def __getitem__(self, key):
        return self.state.extras.get(key)

    def __setitem__(self, key, value):
        self.state.extras[key] = value

    def push_tags(self, *tags) -> list[str]:
        return self.state.tags.push(*tags)

    def pop_tags(self, count: int = 1) -> list[str]:
        return self.state.tags.pop(count)

    def clear_tags(self):
        self.state.tags.clear()

    @property
    def routing_key(self) -> str:
        return self.state.tags.current_key()

    def set_global_data(self, data: Mapping):
        self.state.global_data.set(data)

    def merge_global_data(self, data: Mapping):
        self.state.global_data.merge(data)

    @property
    def global_data(self) -> dict:
        return self.state.global_data.snapshot()

    # ------------------------------------------------------------------
    # Unit-of-work scope
    # ------------------------------------------------------------------

    @contextlib.contextmanager
    def scope(self, *tags, context=None):
        """Open a unit of work, yielding this logger.

        On every exit path the tags pushed here are popped, then buffered
        messages are flushed, then the previously bound context is restored.
        Nested scopes share the outermost scope's state. Messages logged
        outside any scope are flushed before the outermost scope starts.
        """
        state = self._state_var.get(None)
        token = None
        if state is None or state.depth == 0:
            if state is not None:
                self.flush()
            state = LogState(self._tag)
            token = self._state_var.set(state)
        state.depth += 1
        previous_context = state.context
        if context is not None:
            state.context = context
        pushed = state.tags.push(*tags)
        try:
            yield self
        finally:
            state.tags.pop(len(pushed))
            try:
                self.flush()
            finally:
                state.context = previous_context
                state.depth -= 1
                if token is not None:
                    self._state_var.reset(token)

    def with_scope(self, body: Callable, *tags, context=None):
        """Run ``body(logger)`` inside scope() and return its result."""
        with self.scope(*tags, context=context) as handle:
            return body(handle)

    def close(self):
        """Flush anything pending and close the sink."""
        self.flush()
        self._sink.close()
