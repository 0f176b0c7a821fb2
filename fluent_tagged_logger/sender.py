"""Forward sender: best-effort TCP sink for flushed records."""

import logging
import random
import socket
import threading
import time

from fluent_tagged_logger.formatter import format_forward_entry

logger = logging.getLogger(__name__)


class ForwardSender:
    """Writes records to a forward collector over one shared TCP connection.

    post() never raises: on failure the entry is dropped, the failure is
    logged, and reconnects are spaced out with exponential backoff.
    """

    def __init__(
        self,
        host: str,
        port: int,
        timeout: float = 3.0,
        base_delay: float = 0.5,
        max_delay: float = 60.0,
    ):
        self._host = host
        self._port = port
        self._timeout = timeout
        self._base_delay = base_delay
        self._max_delay = max_delay
        self._sock: socket.socket | None = None
        self._lock = threading.Lock()
        self._connecting = threading.Lock()
        self._attempts = 0
        self._next_attempt = 0.0
        self._sent = 0
        self._failed = 0

    @property
    def connected(self) -> bool:
        return self._sock is not None

    @property
    def sent(self) -> int:
        with self._lock:
            return self._sent

    @property
    def failed(self) -> int:
        with self._lock:
            return self._failed

    def post(self, tag: str, record: dict) -> bool:
        """Send one entry. Returns True if it was written to the socket."""
        try:
            payload = format_forward_entry(tag, record)
        except (TypeError, ValueError) as e:
            logger.warning("Dropping unserializable record for %s: %s", tag, e)
            with self._lock:
                self._failed += 1
            return False

        # One resend on a fresh connection if the current one went stale
        for _ in range(2):
            if not self._ensure_connected():
                break
            with self._lock:
                if self._sock is not None and self._send(payload):
                    self._sent += 1
                    logger.debug("Posted %d bytes to %s", len(payload), tag)
                    return True
        with self._lock:
            self._failed += 1
        logger.warning("Dropped record for %s, collector %s:%d unavailable",
                       tag, self._host, self._port)
        return False

    def close(self):
        """Close the connection."""
        with self._lock:
            self._disconnect()

    def _ensure_connected(self) -> bool:
        """Connect unless connected or backing off, without holding the send lock.

        Only one thread dials at a time; the others drop their entry instead
        of waiting on a slow connect.
        """
        with self._lock:
            if self._sock:
                return True
            if time.monotonic() < self._next_attempt:
                return False
        if not self._connecting.acquire(blocking=False):
            return False
        try:
            try:
                sock = socket.create_connection((self._host, self._port), timeout=self._timeout)
            except OSError as e:
                with self._lock:
                    self._attempts += 1
                    delay = min(self._base_delay * (2 ** (self._attempts - 1)), self._max_delay)
                    delay += random.uniform(0, delay * 0.3)
                    self._next_attempt = time.monotonic() + delay
                logger.warning("Failed to connect to %s:%d: %s (next attempt in %.1fs)",
                               self._host, self._port, e, delay)
                return False
            with self._lock:
                if self._sock is None:
                    self._sock = sock
                else:
                    sock.close()
                self._attempts = 0
                self._next_attempt = 0.0
            logger.info("Connected to %s:%d", self._host, self._port)
            return True
        finally:
            self._connecting.release()

    def _send(self, payload: bytes) -> bool:
        try:
            self._sock.sendall(payload)
            return True
        except OSError as e:
            logger.warning("Send failed: %s", e)
            self._disconnect()
            return False

    def _disconnect(self):
        if self._sock:
            try:
                self._sock.close()
            except OSError:
                pass
            self._sock = None
