"""Context extraction: named fields derived from the current request object."""

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)

EXTRACTION_ERROR = "error"


@dataclass(frozen=True)
class Constant:
    value: Any

    def evaluate(self, context) -> Any:
        return self.value


@dataclass(frozen=True)
class Accessor:
    """Reads *name* from the context: item access on mappings, attributes otherwise."""

    name: str

    def evaluate(self, context) -> Any:
        if context is None:
            raise LookupError(f"no context to read {self.name!r} from")
        if isinstance(context, Mapping):
            return context[self.name]
        return getattr(context, self.name)


@dataclass(frozen=True)
class Computed:
    func: Callable[[Any], Any]

    def evaluate(self, context) -> Any:
        return self.func(context)


ExtractionRule = Constant | Accessor | Computed


def extract_context(context, rules: Mapping[str, ExtractionRule]) -> dict:
    """Evaluate every rule against *context*.

    A rule that fails yields EXTRACTION_ERROR for its own key; the remaining
    rules are still evaluated.
    """
    fields = {}
    for key, rule in rules.items():
        try:
            fields[key] = rule.evaluate(context)
        except Exception as e:
            logger.debug("Context field %r failed: %s", key, e)
            fields[key] = EXTRACTION_ERROR
    return fields
