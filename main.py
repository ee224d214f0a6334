"""
SafeQR Admin Operator CLI.

Bootstraps the dependency graph via constructor injection and runs one
operator command against the Supabase project.  Every subsystem is wired
here; there are no module-level globals.

Usage::

    python main.py stats
    python main.py users
    python main.py suspend <user_id> <days>
    python main.py lift <user_id> [--reason TEXT]
    python main.py status <user_id>
    python main.py active
    python main.py expired
    python main.py sweep
"""

from __future__ import annotations

import argparse
import json
import sys
from typing import Any, Optional, Sequence

from safeqr.auth import SessionManager
from safeqr.config import get_config
from safeqr.database import DatabaseManager
from safeqr.errors import InvalidSuspensionError, NotFoundError, PartialTransactionError, WriteError
from safeqr.logger import StructuredLogger, get_logger
from safeqr.services import ServiceContainer, create_services

OPERATOR_ID: str = "cli-operator"

EXIT_OK: int = 0
EXIT_FAILURE: int = 1
EXIT_USAGE: int = 2


def _parse_args(argv: Optional[Sequence[str]]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="safeqr-admin",
        description="SafeQR admin operator utilities",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("stats", help="Show dashboard counts")
    subparsers.add_parser("users", help="List accounts, newest first")

    suspend_parser = subparsers.add_parser("suspend", help="Suspend an account for N days")
    suspend_parser.add_argument("user_id", help="Account UUID")
    suspend_parser.add_argument("days", type=int, help="Whole days, at least 1")

    lift_parser = subparsers.add_parser("lift", help="Lift every suspension of an account")
    lift_parser.add_argument("user_id", help="Account UUID")
    lift_parser.add_argument("--reason", default=None, help="Recorded in the audit log only")

    status_parser = subparsers.add_parser("status", help="Show an account's suspension state")
    status_parser.add_argument("user_id", help="Account UUID")

    subparsers.add_parser("active", help="List active suspensions, soonest expiring first")
    subparsers.add_parser("expired", help="List expired suspensions, one per account")
    subparsers.add_parser("sweep", help="Lift every suspended account whose suspension has ended")

    return parser.parse_args(list(argv) if argv is not None else None)


def _build_services() -> ServiceContainer:
    """Wire configuration, database and services for one CLI run."""
    config = get_config()
    db = DatabaseManager(
        supabase_url=config.SUPABASE_URL,
        anon_key=config.SUPABASE_ANON_KEY.get_secret_value(),
        service_role_key=config.admin_key,
        logger=get_logger("safeqr.database", config),
    )
    return create_services(db=db, config=config, session=SessionManager())


def _emit(payload: Any) -> None:
    print(json.dumps(payload, indent=2, default=str))


def _run(args: argparse.Namespace, services: ServiceContainer, logger: StructuredLogger) -> int:
    queries = services["suspension_query_service"]
    lifecycle = services["suspension_lifecycle_service"]

    if args.command == "stats":
        stats = services["dashboard_service"].get_dashboard_stats()
        online = services["dashboard_service"].is_backend_online()
        _emit({"backend_online": online, **stats.model_dump()})
        return EXIT_OK

    if args.command == "users":
        result = services["user_service"].list_users()
        _emit([user.model_dump(mode="json") for user in result.data or []])
        return EXIT_OK

    if args.command == "suspend":
        try:
            suspension = lifecycle.suspend(args.user_id, args.days, performed_by=OPERATOR_ID)
        except InvalidSuspensionError as exc:
            logger.error("Rejected: %s", exc)
            return EXIT_USAGE
        except PartialTransactionError as exc:
            logger.critical(
                "Suspension of %s half-applied (rolled_back=%s): %s",
                exc.user_id, exc.rolled_back, exc.message,
            )
            return EXIT_FAILURE
        except WriteError as exc:
            logger.error("Suspension failed: %s", exc.message)
            return EXIT_FAILURE
        _emit(suspension.model_dump(mode="json"))
        return EXIT_OK

    if args.command == "lift":
        try:
            removed = lifecycle.lift(args.user_id, args.reason, performed_by=OPERATOR_ID)
        except InvalidSuspensionError as exc:
            logger.error("Rejected: %s", exc)
            return EXIT_USAGE
        except PartialTransactionError as exc:
            logger.critical(
                "Lift of %s half-applied (rolled_back=%s): %s",
                exc.user_id, exc.rolled_back, exc.message,
            )
            return EXIT_FAILURE
        except (WriteError, NotFoundError) as exc:
            logger.error("Lift failed: %s", exc.message)
            return EXIT_FAILURE
        _emit({"user_id": args.user_id, "rows_removed": removed})
        return EXIT_OK

    if args.command == "status":
        try:
            suspended = lifecycle.reconcile(args.user_id)
        except (WriteError, NotFoundError) as exc:
            logger.error("Reconciliation failed: %s", exc.message)
            return EXIT_FAILURE
        suspension = queries.fetch_suspension_by_user(args.user_id) if suspended else None
        _emit({
            "user_id": args.user_id,
            "is_suspended": suspended,
            "suspension": suspension.model_dump(mode="json") if suspension else None,
        })
        return EXIT_OK

    if args.command == "active":
        _emit([s.model_dump(mode="json") for s in queries.get_active_suspensions()])
        return EXIT_OK

    if args.command == "expired":
        _emit([s.model_dump(mode="json") for s in queries.get_expired_suspensions()])
        return EXIT_OK

    if args.command == "sweep":
        _emit({"lifted": lifecycle.auto_lift_expired()})
        return EXIT_OK

    logger.error("Unknown command: %s", args.command)
    return EXIT_USAGE


def main(
    argv: Optional[Sequence[str]] = None,
    services: Optional[ServiceContainer] = None,
) -> int:
    """Entry point for CLI usage; returns the process exit code."""
    args = _parse_args(argv)
    logger = get_logger("safeqr.cli", get_config())
    if services is None:
        services = _build_services()
    return _run(args, services, logger)


if __name__ == "__main__":
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        sys.exit(130)
