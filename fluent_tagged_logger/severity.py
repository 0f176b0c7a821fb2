"""Severity levels: ordered ranks with short labels (max 5 chars)."""

import logging

SEV_LABEL = ("DEBUG", "INFO", "WARN", "ERROR", "FATAL", "ANY")
CATCH_ALL = "ANY"

DEBUG, INFO, WARN, ERROR, FATAL, UNKNOWN = range(len(SEV_LABEL))

_ALIASES = {"WARNING": WARN, "CRITICAL": FATAL}


class UnknownSeverity(ValueError):
    """Raised when a severity label is not in SEV_LABEL."""


def rank_of(label: str) -> int:
    """Return the rank of *label* (case-insensitive)."""
    name = str(label).strip().upper()
    if name in _ALIASES:
        return _ALIASES[name]
    try:
        return SEV_LABEL.index(name)
    except ValueError:
        raise UnknownSeverity(f"unknown severity: {label!r}") from None


def label_of(rank: int) -> str:
    if 0 <= rank < len(SEV_LABEL):
        return SEV_LABEL[rank]
    return CATCH_ALL


def rank_of_logging_level(levelno: int) -> int:
    """Map a stdlib logging level number onto a severity rank."""
    if levelno >= logging.CRITICAL:
        return FATAL
    if levelno >= logging.ERROR:
        return ERROR
    if levelno >= logging.WARNING:
        return WARN
    if levelno >= logging.INFO:
        return INFO
    return DEBUG
