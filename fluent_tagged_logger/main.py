"""Command-line entry point: emit a sample unit of work or run a local collector."""

import argparse
import logging
import signal
import sys
import threading

from fluent_tagged_logger.collector import ForwardCollector
from fluent_tagged_logger.config import build_logger, load_config
from fluent_tagged_logger.handler import FluentHandler
from fluent_tagged_logger.severity import INFO


def _emit(config_argv: list[str]):
    logger = logging.getLogger(__name__)
    config = load_config(argv=config_argv)
    fluent_logger = build_logger(config)
    logger.info("Emitting sample unit of work to %s:%d with tag=%s",
                config.fluent_host, config.fluent_port, config.tag)

    app_logger = logging.getLogger("sample")
    app_logger.addHandler(FluentHandler(fluent_logger))
    app_logger.propagate = False

    try:
        with fluent_logger.scope("sample", "request") as log:
            log.set_global_data({"source": "cli"})
            log.info("sample request started")
            app_logger.warning("stdlib records join the same record")
            log.post(INFO, {"event": "sample", "ok": True})
            log.info("sample request finished")
    finally:
        fluent_logger.close()

    sender = fluent_logger.sink
    logger.info("Done: sent=%d, failed=%d", sender.sent, sender.failed)


def _collect(host: str, port: int):
    logger = logging.getLogger(__name__)
    shutdown_event = threading.Event()
    collector = ForwardCollector(host, port, shutdown_event)

    def signal_handler(signum, frame):
        logger.info("Received signal %d, shutting down...", signum)
        collector.stop()

    signal.signal(signal.SIGINT, signal_handler)
    signal.signal(signal.SIGTERM, signal_handler)
    collector.start()
    logger.info("Collector stopped after %d entries", len(collector.received))


def main(argv: list[str] | None = None):
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        stream=sys.stderr,
    )

    parser = argparse.ArgumentParser(description="Buffered tagged logger for forward collectors")
    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("emit", help="send one sample unit of work (accepts config flags)")
    collect = sub.add_parser("collect", help="run a local forward collector")
    collect.add_argument("--host", type=str, default="127.0.0.1")
    collect.add_argument("--port", type=int, default=24224)

    args, rest = parser.parse_known_args(argv)
    if args.command == "emit":
        _emit(rest)
    else:
        if rest:
            parser.error(f"unrecognized arguments: {' '.join(rest)}")
        _collect(args.host, args.port)


if __name__ == "__main__":
    main()
