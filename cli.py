from __future__ import annotations

import argparse
import json
import logging
import os
import sys

import requests
from dotenv import find_dotenv, load_dotenv

from cfaccess.app import build_reconciler, run
from cfaccess.logs import configure_logging
from cfaccess.resolver import AddressResolver, ResolutionFailure
from cfaccess.settings import ConfigurationMissing, Settings

logger = logging.getLogger("cfaccess")


def _print(obj) -> None:
    print(json.dumps(obj, indent=2, ensure_ascii=False))


def _load_settings() -> Settings | None:
    try:
        return Settings.from_env()
    except ConfigurationMissing as e:
        logger.error("%s", e)
        return None


def main(argv: list[str] | None = None) -> int:
    p = argparse.ArgumentParser(description="Cloudflare Access Group IP Updater")
    sub = p.add_subparsers(dest="cmd")

    sub.add_parser("run", help="Run the updater on its CRON schedule (default)")
    sub.add_parser("check", help="Run a single IP check/update and exit")
    sub.add_parser("resolve", help="Print the current public IP and exit")

    s_status = sub.add_parser("status", help="Query /ready of a running instance")
    s_status.add_argument(
        "--api",
        default=None,
        help="Health server base URL (default: http://localhost:$HEALTH_PORT)",
    )
    s_status.add_argument("--timeout", type=float, default=5.0)

    args = p.parse_args(argv)
    cmd = args.cmd or "run"

    if load_dotenv(find_dotenv(usecwd=True)):
        dotenv_msg = "Successfully loaded .env file"
    else:
        dotenv_msg = "No .env file found. Using environment variables directly."

    if cmd == "status":
        base = (args.api or f"http://localhost:{os.getenv('HEALTH_PORT', '8080')}").rstrip("/")
        try:
            r = requests.get(f"{base}/ready", timeout=args.timeout)
        except requests.RequestException as e:
            print(f"Health server unreachable: {e}", file=sys.stderr)
            return 1
        _print(r.json() if r.ok else {"status_code": r.status_code, "body": r.text})
        return 0 if r.ok else 1

    if cmd == "resolve":
        configure_logging("WARNING")
        try:
            resolved = AddressResolver().resolve()
        except ResolutionFailure as e:
            print(f"Error getting current IP: {e}", file=sys.stderr)
            return 1
        print(resolved.address)
        return 0

    configure_logging()
    logger.info("Cloudflare Access Group IP Updater")
    logger.info(dotenv_msg)
    settings = _load_settings()
    if settings is None:
        return 1
    configure_logging(settings.log_level, settings.secrets())

    if cmd == "check":
        outcome = build_reconciler(settings).run()
        return 0 if outcome is None or outcome.ok else 1

    if cmd == "run":
        return run(settings)

    return 2


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
