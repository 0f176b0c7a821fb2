"""Minimal forward collector for local debugging and integration tests."""

import logging
import socket
import threading

from fluent_tagged_logger.formatter import parse_forward_entry

logger = logging.getLogger(__name__)


class ForwardCollector:
    """TCP server that accepts newline-delimited JSON forward entries.

    Stores received ``(tag, time, record)`` tuples in self.received.
    """

    def __init__(self, host: str, port: int, shutdown_event: threading.Event):
        self._host = host
        self._port = port
        self._shutdown = shutdown_event
        self._sock: socket.socket | None = None
        self._server_address: tuple | None = None
        self.received: list[tuple[str, int, dict]] = []
        self._lock = threading.Lock()
        self._clients: set[socket.socket] = set()

    @property
    def server_address(self) -> tuple:
        return self._server_address

    def entries(self, tag: str | None = None) -> list[tuple[str, int, dict]]:
        with self._lock:
            return [e for e in self.received if tag is None or e[0] == tag]

    def start(self):
        """Serve until stop() is called. Blocks the calling thread."""
        self._sock = socket.create_server((self._host, self._port), backlog=16)
        self._sock.settimeout(0.5)
        self._server_address = self._sock.getsockname()
        logger.info("Collector listening on %s:%d", *self._server_address[:2])
        try:
            self._accept_loop()
        finally:
            self._sock.close()

    def _accept_loop(self):
        while not self._shutdown.is_set():
            try:
                conn, addr = self._sock.accept()
            except socket.timeout:
                continue
            except OSError:
                return
            with self._lock:
                self._clients.add(conn)
            threading.Thread(
                target=self._read_entries, args=(conn, addr),
                name=f"collector-{addr[1]}", daemon=True,
            ).start()

    def stop(self):
        """Signal shutdown and unblock every reader."""
        self._shutdown.set()
        with self._lock:
            clients = list(self._clients)
        for conn in clients:
            try:
                conn.shutdown(socket.SHUT_RDWR)
            except OSError:
                pass

    def _read_entries(self, conn: socket.socket, addr: tuple):
        peer = "%s:%d" % addr[:2]
        logger.info("Client connected from %s", peer)
        try:
            with conn, conn.makefile("rb") as stream:
                for line in stream:
                    if line.strip():
                        self._process_line(line.rstrip(b"\r\n"))
        except OSError as e:
            logger.debug("Connection from %s ended: %s", peer, e)
        finally:
            with self._lock:
                self._clients.discard(conn)
            logger.info("Client disconnected: %s", peer)

    def _process_line(self, line: bytes):
        entry = parse_forward_entry(line)
        if entry is None:
            logger.warning("Discarding malformed entry: %r", line[:200])
            return
        with self._lock:
            self.received.append(entry)
        tag, _, record = entry
        logger.info("[%s] %s", tag, record)
