## Relay Server Execution Script
from controllers import create_relay_app
from tools.logger import *
from aiohttp import web
import argparse
import os

DEFAULT_HOST = os.getenv("RELAY_HOST", "0.0.0.0")
DEFAULT_PORT = int(os.getenv("RELAY_PORT", "5001"))
DEFAULT_CORS_ORIGIN = os.getenv("CORS_ORIGIN", "http://localhost:3000")

if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Call signaling relay")
    parser.add_argument("--host", default=DEFAULT_HOST, help="Address to listen on")
    parser.add_argument("--port", type=int, default=DEFAULT_PORT, help="Port to listen on")
    parser.add_argument(
        "--cors-origin",
        default=DEFAULT_CORS_ORIGIN,
        help="Browser origin allowed to connect",
    )
    parser.add_argument(
        "-l",
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default="INFO",
        help="Set the logging level (use -l or --log-level)",
    )
    parser.add_argument(
        "--log-dir",
        default=os.getenv("RELAY_LOG_DIR"),
        help="Also write daily log files under this directory",
    )
    args = parser.parse_args()

    if args.log_dir:
        configure_file_logging(args.log_dir)
    set_log_level(args.log_level)

    app = create_relay_app(args.cors_origin, debug=args.log_level == "DEBUG")

    ## run_app handles SIGINT/SIGTERM: the site stops listening, then
    ## on_shutdown disconnects every live participant.
    log_info(f"Server running on port {args.port}")
    web.run_app(app, host=args.host, port=args.port, print=None)
