#!/usr/bin/env python3
"""
Webserver Entrypoint

Loads startup options, builds the app and runs the listener.

Usage:
  entrypoint.py [serve] [--config PATH] [--debug]
"""

import argparse
import sys


def main():
    parser = argparse.ArgumentParser(description="Static file server with event bus bridge")
    parser.add_argument("mode", nargs="?", default="serve", choices=["serve"])
    parser.add_argument("--config", help="Options file (default: $WEBSERVER_CONFIG or ./webserver.yaml)")
    parser.add_argument("--debug", action="store_true", default=None, help="Enable debug logging")
    args = parser.parse_args()

    from webserver.configs import get_logger, load_options, setup_logging
    from webserver.controllers.http import create_app_from_options, run_server
    from webserver.exceptions import ConfigurationError, StartupError

    # Initialize logging (must be called before get_logger)
    setup_logging(debug=args.debug)
    logger = get_logger("entrypoint")

    try:
        app = create_app_from_options(load_options(args.config))
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        sys.exit(2)

    try:
        run_server(app)
    except StartupError as e:
        logger.error(f"Startup failed: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
