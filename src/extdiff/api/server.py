"""Startup entry point for the extdiff API server."""

import argparse

import uvicorn


def create_parser() -> argparse.ArgumentParser:
    """Create the server argument parser."""
    parser = argparse.ArgumentParser(
        prog="extdiff-api",
        description="Start the extdiff API server",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  extdiff-api                    # Development server
  extdiff-api --host 0.0.0.0     # Listen on all interfaces
  extdiff-api --workers 4        # Production with 4 workers
  extdiff-api --reload           # Auto-reload on changes
        """,
    )
    parser.add_argument(
        "--host",
        default="127.0.0.1",
        help="Host to bind to (default: 127.0.0.1)",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=8000,
        help="Port to bind to (default: 8000)",
    )
    parser.add_argument(
        "--workers",
        type=int,
        default=1,
        help="Number of worker processes (default: 1)",
    )
    parser.add_argument(
        "--reload",
        action="store_true",
        help="Enable auto-reload for development",
    )
    parser.add_argument(
        "--log-level",
        default="info",
        choices=["critical", "error", "warning", "info", "debug", "trace"],
        help="Log level (default: info)",
    )
    return parser


def main() -> None:
    """Main entry point for API server."""
    args = create_parser().parse_args()

    config = {
        "app": "extdiff.api.app:app",
        "host": args.host,
        "port": args.port,
        "log_level": args.log_level,
    }

    if args.reload:
        config["reload"] = True
        config["reload_dirs"] = ["src"]
    else:
        config["workers"] = args.workers

    uvicorn.run(**config)


if __name__ == "__main__":
    main()
