"""
Kekspose command line entry point.

Usage:
    kekspose -n myproject -c my-cluster
    python -m kekspose --listener-name plain --starting-port 50000 -v
"""

import argparse
import asyncio
import logging
import sys
from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from . import __version__
from .config import Settings, get_settings
from .errors import KeksposeError
from .services.orchestrator import Orchestrator

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="kekspose",
        description="Expose your Kafka cluster outside your Minikube, Kind, or Docker Desktop clusters"
    )
    parser.add_argument("--kubeconfig", help="Path to the kubeconfig file to use for Kubernetes API requests.")
    parser.add_argument("-n", "--namespace", help="Namespace of the Kafka cluster.")
    parser.add_argument("-c", "--cluster-name", help="Name of the Kafka cluster (default: my-cluster).")
    parser.add_argument("-l", "--listener-name", help="Name of the listener that should be exposed.")
    parser.add_argument(
        "-p", "--starting-port", type=int,
        help="The starting port number. It is used for the bootstrap connection and as the basis "
             "to calculate the per-broker ports (default: 50000)."
    )
    parser.add_argument(
        "-t", "--timeout", dest="readiness_timeout_seconds", type=float,
        help="Seconds to wait for the proxy to become ready (default: 120)."
    )
    parser.add_argument("--proxy-name", help="Name of the proxy Pod and ConfigMap (default: kekspose).")
    parser.add_argument("--proxy-image", help="Container image of the Kroxylicious proxy.")
    parser.add_argument(
        "-v", "--verbose", action="count", default=0,
        help="Enables verbose logging (can be repeated: -v, -vv)."
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def configure_logging(log_level: str = "INFO", verbose: int = 0) -> None:
    """-v enables DEBUG for Kekspose, -vv for everything including the Kubernetes client."""
    level = getattr(logging, log_level.upper(), logging.INFO)
    if verbose >= 2:
        level = logging.DEBUG

    logging.basicConfig(level=level, format=LOG_FORMAT)

    if verbose == 1:
        logging.getLogger("kekspose").setLevel(logging.DEBUG)


def _settings_overrides(args: argparse.Namespace) -> Dict[str, Any]:
    fields = set(Settings.model_fields)
    return {key: value for key, value in vars(args).items() if key in fields and value is not None}


def main(argv: Optional[List[str]] = None) -> int:
    """
    Run Kekspose.

    Returns:
        Process exit code: 0 after a clean shutdown, 1 on any failure
    """
    args = build_parser().parse_args(argv)
    overrides = _settings_overrides(args)

    try:
        settings = Settings(**overrides) if overrides else get_settings()
    except ValidationError as e:
        configure_logging(verbose=args.verbose)
        logger.error(f"[KEKSPOSE] Invalid configuration: {e}")
        return 1

    configure_logging(settings.log_level, args.verbose)

    try:
        orchestrator = Orchestrator.from_settings(settings)
        asyncio.run(orchestrator.run())
    except KeksposeError as e:
        # Logged where it was detected
        logger.debug(f"[KEKSPOSE] Exiting after {e.kind} error")
        return 1
    except Exception:
        logger.exception("[KEKSPOSE] Something went wrong")
        return 1

    return 0


def run() -> None:
    sys.exit(main())


if __name__ == "__main__":
    run()
