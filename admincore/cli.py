"""
Operator command line.

    python -m admincore.cli force-reconcile --token <jwt>

The token may also come from ADMIN_CORE_TOKEN. Exit codes: 0 success,
1 fatal manifest error, 2 invalid token or permission denied.
"""

import argparse
import asyncio
import json
import os
import sys
from typing import Optional, Sequence

from admincore.config import Settings, get_settings
from admincore.database import create_engine_and_sessions, init_db
from admincore.errors import ManifestError, PermissionDenied
from admincore.kernel.identity.jwt import verify_access_token
from admincore.logging_config import configure_logging, get_logger
from admincore.orchestration.console import AdminConsole

logger = get_logger(__name__)

TOKEN_ENV = "ADMIN_CORE_TOKEN"

EXIT_OK = 0
EXIT_MANIFEST = 1
EXIT_DENIED = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="admincore", description="Admin console core operator tools")
    commands = parser.add_subparsers(dest="command", required=True)

    reconcile = commands.add_parser(
        "force-reconcile",
        help="Run one reconciliation pass and print the report as JSON",
    )
    reconcile.add_argument("--token", default=None, help=f"Bearer token (default: ${TOKEN_ENV})")
    reconcile.add_argument("--manifest", default=None, help="Module manifest JSON (default: settings)")
    reconcile.add_argument("--database-url", default=None, help="Report/audit store (default: settings)")
    return parser


async def force_reconcile(token: str, settings: Settings) -> int:
    payload = verify_access_token(token)
    if payload is None:
        print("error: invalid or expired token", file=sys.stderr)
        return EXIT_DENIED
    actor = payload.to_actor()

    engine, session_maker = create_engine_and_sessions(settings.database_url)
    try:
        await init_db(engine)
        console = AdminConsole.from_settings(settings, session_maker)
        try:
            report = await console.force_reconcile(actor)
        except PermissionDenied as e:
            print(f"error: {e}", file=sys.stderr)
            return EXIT_DENIED
        finally:
            # Flush the audit entry written for the attempt
            await console.audit.stop()
    finally:
        await engine.dispose()

    print(json.dumps(report.to_dict(), indent=2))
    return EXIT_OK


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    settings = get_settings()
    configure_logging(
        log_level=settings.log_level,
        environment=settings.environment,
        debug=settings.debug,
    )

    overrides = {}
    if args.manifest:
        overrides["module_manifest_path"] = args.manifest
    if args.database_url:
        overrides["database_url"] = args.database_url
    if overrides:
        settings = settings.model_copy(update=overrides)

    token = args.token or os.environ.get(TOKEN_ENV)
    if not token:
        print(f"error: pass --token or set {TOKEN_ENV}", file=sys.stderr)
        return EXIT_DENIED

    try:
        return asyncio.run(force_reconcile(token, settings))
    except ManifestError as e:
        logger.error("Module manifest rejected: %s", e)
        print(f"error: {e}", file=sys.stderr)
        return EXIT_MANIFEST


if __name__ == "__main__":
    sys.exit(main())
