"""Tag stack: nested scope names that compose the routing key."""

SEPARATOR = "."


def _flatten(tags) -> list:
    flat = []
    for tag in tags:
        if isinstance(tag, (list, tuple)):
            flat.extend(_flatten(tag))
        else:
            flat.append(tag)
    return flat


class TagStack:
    """Ordered push/pop stack of tags joined onto a fixed base tag."""

    def __init__(self, base: str = ""):
        self._base = base or ""
        self._tags: list[str] = []

    @property
    def base(self) -> str:
        return self._base

    @property
    def tags(self) -> list[str]:
        return list(self._tags)

    def __len__(self) -> int:
        return len(self._tags)

    def push(self, *tags) -> list[str]:
        """Append the non-blank tags in order. Returns the tags actually pushed."""
        pushed = []
        for tag in _flatten(tags):
            if tag is None:
                continue
            text = str(tag)
            if text.strip():
                pushed.append(text)
        self._tags.extend(pushed)
        return pushed

    def pop(self, count: int = 1) -> list[str]:
        """Remove up to *count* tags from the end. Never fails."""
        if count <= 0 or not self._tags:
            return []
        count = min(count, len(self._tags))
        removed = self._tags[-count:]
        del self._tags[-count:]
        return removed

    def clear(self):
        self._tags.clear()

    def current_key(self) -> str:
        return SEPARATOR.join([p for p in (self._base, *self._tags) if p])
