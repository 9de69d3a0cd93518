## Headless Call Client Execution Script
from controllers import main_call_task
from tools.logger import *
import argparse
import asyncio
import os

DEFAULT_RELAY_URL = os.getenv("RELAY_URL", "http://localhost:5001")

if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Headless call client")
    parser.add_argument("--server", default=DEFAULT_RELAY_URL, help="Relay URL")
    parser.add_argument("--call", metavar="ID", help="Identity to call once connected")
    parser.add_argument(
        "--auto-answer", action="store_true", help="Accept incoming calls automatically"
    )
    parser.add_argument(
        "--duration", type=float, help="Hang up after this many seconds"
    )
    parser.add_argument("--ca-file", help="CA bundle for https relays")
    parser.add_argument(
        "-l",
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default="INFO",
        help="Set the logging level (use -l or --log-level)",
    )
    args = parser.parse_args()

    set_log_level(args.log_level)

    try:
        asyncio.run(
            main_call_task(
                args.server,
                call_target=args.call,
                auto_answer=args.auto_answer,
                duration=args.duration,
                ca_file=args.ca_file,
            )
        )
    except KeyboardInterrupt:
        log_warning("Keyboard interrupt received. Closing connection and exiting.")
