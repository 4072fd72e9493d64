import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from jsonsvr.jsonsvr_config import DEFAULT_CONFIG_PATH, load_settings
from jsonsvr.jsonsvr_errors import ServiceLoadError
from jsonsvr.jsonsvr_executor import load_libraries
from jsonsvr.jsonsvr_logging import configure_logging
from jsonsvr.jsonsvr_server import serve

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="jsonsvr", description="Serve responses described by a JSON service definition.")
    parser.add_argument("--config", default=DEFAULT_CONFIG_PATH, help="config file (JSON or YAML)")
    parser.add_argument("--service", dest="service_descriptor", help="service definition file or URI")
    parser.add_argument("--port", type=int, help="listen port")
    parser.add_argument("--host", help="listen address")
    parser.add_argument("--log-level", dest="log_level", help="DEBUG, INFO, WARNING, ERROR")
    return parser


def main(argv: Optional[List[str]] = None) -> None:
    args = build_parser().parse_args(argv)
    overrides = {
        "service_descriptor": args.service_descriptor,
        "port": args.port,
        "host": args.host,
        "log_level": args.log_level,
    }
    settings = load_settings(args.config, overrides)
    configure_logging(settings.log_level, settings.access_log_file)
    load_libraries(settings.imports)

    try:
        asyncio.run(serve(settings))
    except ServiceLoadError as e:
        logger.error("Could not start server: %s", e)
        raise SystemExit(1)
    except KeyboardInterrupt:
        print("\nExiting.", file=sys.stderr)


if __name__ == "__main__":
    main()
