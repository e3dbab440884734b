"""CLI entry point for the telemetry ingest service."""

from __future__ import annotations

import argparse
import logging
import signal
import sys

from common.config import ConfigError, get_settings
from common.db import create_store_engine

from .core.domain import BrokerConnectionError, SchemaError
from .infrastructure.persistence import ensure_schema
from .mqtt import build_receiver

logger = logging.getLogger(__name__)


def _init_schema(settings) -> int:
    engine = create_store_engine(settings)
    try:
        ensure_schema(engine, create_extension=settings.timescale_create_extension)
    except SchemaError as e:
        logger.error("Schema initialization failed: %s", e)
        return 1
    finally:
        engine.dispose()
    return 0


def _run_ingest(settings) -> int:
    engine = create_store_engine(settings)
    try:
        try:
            ensure_schema(engine, create_extension=settings.timescale_create_extension)
        except SchemaError as e:
            logger.error("Schema initialization failed, not subscribing: %s", e)
            return 1

        receiver = build_receiver(settings, engine)

        def _graceful_stop(signum, frame):
            logger.info("Signal %d received, stopping receiver", signum)
            receiver.stop()

        signal.signal(signal.SIGINT, _graceful_stop)
        signal.signal(signal.SIGTERM, _graceful_stop)

        try:
            receiver.run()
        except BrokerConnectionError as e:
            logger.critical("Broker connection failed: %s", e)
            return 2
        logger.info("Receiver stopped. %s", receiver.stats)
        return 0
    finally:
        engine.dispose()


def _serve(host: str, port: int) -> int:
    import uvicorn

    uvicorn.run("telemetry_ingest.main:app", host=host, port=port)
    return 0


def main(argv=None) -> int:
    p = argparse.ArgumentParser(description="Telemetry ingest (MQTT device/+/+ → TimescaleDB)")
    sub = p.add_subparsers(dest="command", required=True)
    sub.add_parser("init-schema", help="create the telemetry table/hypertable and exit")
    sub.add_parser("run", help="run the MQTT subscriber in the foreground")
    serve = sub.add_parser("serve", help="run the HTTP API with the MQTT subscriber")
    serve.add_argument("--host", default="0.0.0.0")
    serve.add_argument("--port", type=int, default=8000)
    args = p.parse_args(argv)

    try:
        settings = get_settings()
    except ConfigError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        return 1

    logging.basicConfig(
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler()],
    )

    if args.command == "init-schema":
        return _init_schema(settings)
    if args.command == "run":
        return _run_ingest(settings)
    return _serve(args.host, args.port)


if __name__ == "__main__":
    sys.exit(main())
