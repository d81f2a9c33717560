"""
Command line entry point: `zonehub [--host HOST] [--port PORT] [--broker URL] ...`
"""

from __future__ import annotations

import argparse
import sys
import time
from typing import TYPE_CHECKING

import uvicorn
from pydantic import ValidationError as SettingsError

from zonehub.errors import HubError
from zonehub.obs import logger
from zonehub.version import __version__

if TYPE_CHECKING:
    from zonehub.hub import PresenceHub


def parse_args(argv: list[str] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="zonehub", description="Presence-driven music automation hub")
    parser.add_argument("--host", help="Listen address (env HOST)")
    parser.add_argument("--port", type=int, help="Listen port (env PORT, default 3000)")
    parser.add_argument("--broker", dest="mqtt_broker_url", help="Broker URL (env MQTT_BROKER_URL)")
    parser.add_argument("--zones", help="Comma separated zone ids (env ZONES)")
    parser.add_argument("--transport", choices=["mqtt", "memory"], help="Transport backend (env TRANSPORT)")
    parser.add_argument("--log-level", help="Log level (env LOG_LEVEL)")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser.parse_args(argv)


class HubServer(uvicorn.Server):
    """
    uvicorn server that stops the hub before it shuts down client connections.

    uvicorn closes open WebSockets and drains requests before the lifespan
    shutdown runs. Order here: hub stop (inbound, transport, clients), then
    uvicorn's own shutdown. The lifespan stop that follows is a no-op.
    """

    def __init__(self, config: uvicorn.Config, hub: PresenceHub):
        super().__init__(config)
        self.hub = hub

    async def shutdown(self, sockets=None):
        started = time.monotonic()
        await self.hub.stop()

        # What is left of the budget goes to in-flight HTTP requests
        remaining = self.hub.settings.shutdown_timeout - (time.monotonic() - started)
        self.config.timeout_graceful_shutdown = max(1, int(remaining))
        await super().shutdown(sockets=sockets)


def run(argv: list[str] = None):
    from zonehub import obs
    from zonehub.hub import PresenceHub
    from zonehub.settings import Settings
    from zonehub.web.app import create_app

    args = parse_args(argv)
    overrides = {key: value for key, value in vars(args).items() if value is not None}
    settings = Settings(**overrides)

    obs.configure(settings.log_level, settings.log_file)

    hub = PresenceHub(settings)
    app = create_app(hub)

    logger.info(f"Launching zonehub {__version__} on port {settings.port}")
    # Credentials in the URL stay out of the log
    broker = getattr(hub.transport, "broker", None)
    logger.info(f"MQTT broker: {broker or 'in-memory'} (transport={hub.transport.name})")

    config = uvicorn.Config(
        app,
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
        access_log=False,
        timeout_graceful_shutdown=int(settings.shutdown_timeout),
    )
    HubServer(config, hub).run()


def main():
    try:
        return run()
    except SettingsError as e:
        print(f"FATAL: Invalid configuration:\n{e}", file=sys.stderr)
        sys.exit(2)
    except HubError as e:
        print(f"FATAL: {e}", file=sys.stderr)
        sys.exit(2)


if __name__ == '__main__':
    main()
