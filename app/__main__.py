from __future__ import annotations

import argparse

import structlog
import uvicorn

from app.config import get_settings
from app.main import create_app
from app.observability.logging import configure_logging


def main() -> None:
    settings = get_settings()
    parser = argparse.ArgumentParser(description="Platform API with a simulated flaky dependency")
    parser.add_argument("--host", default=settings.host, help="Interface to bind")
    parser.add_argument("--port", type=int, default=settings.port, help="Port to listen on")
    args = parser.parse_args()

    configure_logging(settings.log_level, service=settings.service_name)
    try:
        app = create_app(settings)
    except Exception as exc:
        structlog.get_logger("lifecycle").exception("startup_failed")
        raise SystemExit(1) from exc

    # uvicorn owns SIGINT/SIGTERM: it closes the listener, drains in-flight
    # requests for up to the grace period, then runs the lifespan shutdown.
    server = uvicorn.Server(
        uvicorn.Config(
            app,
            host=args.host,
            port=args.port,
            log_config=None,
            timeout_graceful_shutdown=settings.shutdown_grace_seconds,
        )
    )
    server.run()


if __name__ == "__main__":
    main()
