#!/usr/bin/env python3
"""
License Tracker -- admin console for software licenses and the devices using them.

Usage:
  python main.py serve
  python main.py serve --host 0.0.0.0 --port 8000
  python main.py serve --reload
  python main.py check

Environment variables:
  BACKEND_URL   Base URL of the license REST service (default http://localhost:8080).
  SECRET_KEY    Signing key for session cookies. Required unless DEBUG=true.
  DEBUG         Enables /docs and an auto-generated dev secret key.
"""

import argparse
import sys

from core.config import get_settings
from inventory.client import BackendClient


def _serve(args: argparse.Namespace) -> int:
    import uvicorn

    uvicorn.run(
        "asgi:app",
        host=args.host,
        port=args.port,
        reload=args.reload,
        log_level=get_settings().log_level.lower(),
    )
    return 0


def _check(args: argparse.Namespace) -> int:
    """Report whether the configured backend answers. Exit code 1 if it does not."""
    settings = get_settings()
    client = BackendClient(settings.backend_url, timeout=settings.backend_timeout)
    try:
        ok = client.ping()
    finally:
        client.close()
    print(f"  Backend {settings.backend_url}: {'reachable' if ok else 'UNREACHABLE'}")
    return 0 if ok else 1


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="license-tracker",
        description="Admin console for software licenses, devices and vendors.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python main.py serve
  python main.py serve --port 9000 --reload
  BACKEND_URL=http://licenses.internal:8080 python main.py check
        """,
    )
    sub = parser.add_subparsers(dest="command", metavar="COMMAND")

    serve = sub.add_parser("serve", help="Run the web console with uvicorn")
    serve.add_argument("--host", default="127.0.0.1", help="Interface to bind (default: 127.0.0.1)")
    serve.add_argument("--port", type=int, default=8000, help="Port to listen on (default: 8000)")
    serve.add_argument("--reload", action="store_true", help="Restart on code changes (development only)")
    serve.set_defaults(func=_serve)

    check = sub.add_parser("check", help="Check that the license backend is reachable")
    check.set_defaults(func=_check)

    args = parser.parse_args(argv)
    if not getattr(args, "func", None):
        parser.print_help()
        return 2
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
