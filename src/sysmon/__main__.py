"""Entry point for the sysmon server."""

import argparse
import logging
import sys
from dataclasses import replace

from sysmon.app import create_app
from sysmon.config import load_config
from sysmon.errors import ConfigError, MonitoringNotStarted
from sysmon.log_config import setup_logging
from sysmon.stdio import serve_stdio

logger = logging.getLogger("sysmon")


def main(argv: list[str] | None = None) -> int:
    """Run the HTTP server, or the stdio transport with --stdio."""
    parser = argparse.ArgumentParser(prog="sysmon-mcp", description="Host monitoring over MCP and REST")
    parser.add_argument("--config", help="YAML configuration file")
    parser.add_argument("--host", help="Address to bind")
    parser.add_argument("--port", type=int, help="Port to listen on")
    parser.add_argument("--stdio", action="store_true", help="Serve JSON-RPC on stdin/stdout")
    args = parser.parse_args(argv)

    try:
        config = load_config(args.config)
    except ConfigError as exc:
        parser.error(str(exc))
    if args.host:
        config = replace(config, host=args.host)
    if args.port:
        config = replace(config, port=args.port)

    setup_logging("WARNING" if args.stdio else config.log_level, config.log_file)

    app = create_app(config)
    services = app.extensions["sysmon"]
    try:
        if args.stdio:
            serve_stdio(services.dispatcher, sys.stdin, sys.stdout)
        else:
            logger.info("Starting HTTP server on %s:%d", config.host, config.port)
            app.run(host=config.host, port=config.port, threaded=True)
    except KeyboardInterrupt:
        pass
    finally:
        try:
            services.controller.stop()
        except MonitoringNotStarted:
            pass
    return 0


if __name__ == "__main__":
    sys.exit(main())
