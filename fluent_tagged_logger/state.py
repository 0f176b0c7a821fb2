"""Per-unit-of-work pending state."""

from collections.abc import Mapping

from fluent_tagged_logger.tags import TagStack


class GlobalData:
    """Mapping merged into every record of the current unit of work."""

    def __init__(self):
        self._data: dict = {}

    def set(self, data: Mapping):
        self._data = dict(data) if isinstance(data, Mapping) else {}

    def merge(self, data: Mapping):
        if not isinstance(data, Mapping):
            return
        self._data.update(data)

    def clear(self):
        self._data = {}

    def snapshot(self) -> dict:
        return dict(self._data)

    def __len__(self) -> int:
        return len(self._data)


class LogState:
    """Everything one unit of work accumulates between flushes."""

    def __init__(self, base_tag: str = ""):
        self.severity = 0
        self.messages: list[str] = []
        self.extras: dict = {}
        self.tags = TagStack(base_tag)
        self.global_data = GlobalData()
        self.context = None
        self.depth = 0

    @property
    def idle(self) -> bool:
        return not self.messages

    def raise_severity(self, severity: int):
        if self.severity < severity:
            self.severity = severity

    def reset(self):
        self.severity = 0
        self.messages = []
        self.extras = {}
        self.global_data.clear()
