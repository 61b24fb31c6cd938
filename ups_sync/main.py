"""Entry point: wires the service together and runs the watch loop."""

import argparse
import logging
import signal
import threading
from typing import Optional

import uvicorn

from . import __version__, config
from .app import create_app
from .bootstrap import PushApplicationProvider
from .dispatcher import EventDispatcher
from .intake import BindingRequestStore
from .kube import init_core_api
from .mirror import MirrorStore
from .orchestrator import VariantOrchestrator
from .status import OutcomeLog
from .ups import UpsClient, build_session
from .watcher import SecretWatcher

logger = logging.getLogger(__name__)


class Service:
    """All long-lived collaborators, built once."""

    def __init__(self, v1=None):
        self.v1 = v1 if v1 is not None else init_core_api()
        namespace = config.NAMESPACE

        self.application = PushApplicationProvider(self.v1, namespace, config.UPS_SECRET_NAME)
        self.ups = UpsClient(
            config.UPS_URL,
            self.application,
            timeout=config.UPS_TIMEOUT,
            session=build_session(config.UPS_RETRIES, config.UPS_BACKOFF),
        )
        self.mirror = MirrorStore(self.v1, namespace)
        self.outcomes = OutcomeLog(config.STATUS_HISTORY)
        self.dispatcher = EventDispatcher(
            VariantOrchestrator(self.ups, self.mirror),
            BindingRequestStore(self.v1, namespace),
            self.outcomes,
        )
        self.watcher = SecretWatcher(
            self.v1, namespace, self.dispatcher, max_backoff=config.WATCH_MAX_BACKOFF
        )


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments."""
    p = argparse.ArgumentParser(
        prog="ups-sync", description="Sync mobile binding secrets with UPS variants"
    )
    p.add_argument("--version", "-v", action="version", version=f"ups-sync {__version__}")

    sub = p.add_subparsers(dest="command", metavar="<command>")
    add = sub.add_parser("run", help="Watch binding secrets until interrupted")
    add.add_argument("--status-port", type=int, metavar="PORT", help="Serve /health and /status")
    add.add_argument("--status-host", default="0.0.0.0", metavar="ADDR", help="Bind address")

    args = p.parse_args(argv)
    args.parser = p
    return args


def _serve_status(service: Service, host: str, port: int) -> threading.Thread:
    app = create_app(service.outcomes, service.mirror)
    server = uvicorn.Server(uvicorn.Config(app, host=host, port=port, log_level="warning"))
    thread = threading.Thread(target=server.run, name="status-server", daemon=True)
    thread.start()
    logger.info(f"Status endpoints listening on {host}:{port}")
    return thread


def run(args: argparse.Namespace) -> int:
    service = Service()

    if args.status_port:
        _serve_status(service, args.status_host, args.status_port)

    def _shutdown(signum, frame):
        logger.info(f"Received signal {signum}, stopping")
        service.watcher.stop()

    signal.signal(signal.SIGTERM, _shutdown)
    signal.signal(signal.SIGINT, _shutdown)

    service.watcher.run_forever()
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, config.LOG_LEVEL, logging.INFO),
        format="%(asctime)s %(levelname)s %(message)s",
    )

    if args.command == "run":
        return run(args)

    args.parser.print_help()
    return 1


if __name__ == "__main__":
    raise SystemExit(main())
