"""CLI main: argument parsing and command dispatch over LedgerOrchestrator."""

import argparse
import getpass
import logging
import sys
from datetime import date
from pathlib import Path

from sqlalchemy.exc import SQLAlchemyError

from cashflow_config.loader import load_settings
from cashflow_kernel.domain.records import Collection, InflowKind
from cashflow_kernel.exceptions import AuthenticationError, CashflowKernelError
from cashflow_kernel.services.connectivity_monitor import ConnectivityStatus
from cashflow_kernel.logging_config import configure_logging
from cashflow_services.ledger_orchestrator import LedgerOrchestrator
from scripts.cli import config as cli_config
from scripts.cli.util import print_table, quiet_logging


def _print_outcome(outcome) -> int:
    if not outcome.accepted:
        print(f"  REJECTED: {outcome.message}", file=sys.stderr)
        return 1
    marker = "WARNING" if outcome.is_local_only else "OK"
    print(f"  {marker}: {outcome.message} ({outcome.record_id})")
    return 0


def cmd_login(ledger: LedgerOrchestrator, args) -> int:
    password = args.password if args.password is not None else getpass.getpass("Password: ")
    try:
        user = ledger.users.login(args.user_id, password)
    except AuthenticationError as exc:
        print(f"  ERROR: {exc}", file=sys.stderr)
        return 1
    print(f"  Welcome, {user.name}!")
    return 0


def cmd_logout(ledger: LedgerOrchestrator, args) -> int:
    ledger.users.logout()
    print("  Logged out.")
    return 0


def cmd_whoami(ledger: LedgerOrchestrator, args) -> int:
    user = ledger.users.current_user()
    print(f"  {user.name} ({user.role})" if user else "  Not logged in.")
    return 0


def cmd_add_inflow(ledger: LedgerOrchestrator, args) -> int:
    return _print_outcome(
        ledger.record_inflow(args.kind, args.amount, args.description, args.date)
    )


def cmd_add_outflow(ledger: LedgerOrchestrator, args) -> int:
    return _print_outcome(
        ledger.record_outflow(args.category, args.amount, args.description, args.date)
    )


def cmd_list(ledger: LedgerOrchestrator, args) -> int:
    rows = ledger.ledger.rows(Collection(args.collection))
    if not rows:
        print(f"  No {args.collection} recorded.")
        return 0
    label = "Kind" if args.collection == Collection.INFLOWS.value else "Category"
    print_table(
        ["Date", label, "Description", "Amount", "Id"],
        [[r.date, r.label, r.description, r.amount, r.record_id] for r in rows],
    )
    return 0


def cmd_delete(ledger: LedgerOrchestrator, args) -> int:
    outcome = ledger.sync.delete(Collection(args.collection), args.record_id)
    if not outcome.removed:
        print(f"  No such record in {args.collection}: {args.record_id}", file=sys.stderr)
        return 1
    print(f"  Deleted ({outcome.message}).")
    return 0


def cmd_dashboard(ledger: LedgerOrchestrator, args) -> int:
    view = ledger.ledger.dashboard()
    print_table(
        ["Fund", "Total"],
        [
            ["Central", view.central_fund],
            ["Local", view.local_fund],
            ["Missions", view.missions_fund],
            ["Construction", view.construction_fund],
            ["Balance", view.balance],
        ],
    )
    print(f"\n  {view.inflow_count} inflows, {view.outflow_count} outflows")
    return 0


def cmd_sync(ledger: LedgerOrchestrator, args) -> int:
    if not ledger.sync.remote_enabled:
        print(f"  Remote backend not configured; {ledger.sync.pending_count()} writes stay queued.")
        return 0
    check = ledger.sync.check_connectivity()
    print(f"  Connectivity: {check.status.value}")
    if check.status is not ConnectivityStatus.ONLINE:
        pending = ledger.sync.pending_count()
        print(f"  Remote unreachable; {pending} writes stay queued.")
        return 1 if pending else 0
    result = check.reconciled or ledger.sync.reconcile()
    print(f"  Replayed: {result.replayed}  Failed: {result.failed}  Pending: {ledger.sync.pending_count()}")
    return 1 if result.failed else 0


def cmd_status(ledger: LedgerOrchestrator, args) -> int:
    status = ledger.monitor.probe() if ledger.sync.remote_enabled else ledger.monitor.current_status()
    print(f"  Remote: {ledger.remote.kind.value} {ledger.remote.endpoint_url}".rstrip())
    print(f"  Connectivity: {status.value}")
    print(f"  Pending writes: {ledger.sync.pending_count()}")
    return 0


def cmd_export(ledger: LedgerOrchestrator, args) -> int:
    path = ledger.backup.write_backup(args.dir)
    print(f"  Backup written to {path}")
    return 0


def cmd_clear(ledger: LedgerOrchestrator, args) -> int:
    if not args.yes:
        answer = input("  Delete ALL records? This cannot be undone. [y/N] ")
        if answer.strip().lower() not in ("y", "yes"):
            print("  Cancelled.")
            return 1
    counts = ledger.backup.clear_all()
    print(f"  Cleared: {counts}")
    return 0


def cmd_configure_remote(ledger: LedgerOrchestrator, args) -> int:
    changes = {
        key: value
        for key, value in (
            ("kind", args.kind),
            ("endpoint_url", args.url),
            ("sheets_id", args.sheets_id),
            ("health_url", args.health_url),
        )
        if value is not None
    }
    remote = ledger.configure_remote(**changes) if changes else ledger.remote
    if args.create_sheet:
        remote = ledger.create_spreadsheet()
        print(f"  Spreadsheet created: {remote.sheets_id}")
    print(f"  Remote set to {remote.kind.value} {remote.endpoint_url}".rstrip())
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="cashflow",
        description="Offline-first cash ledger: inflows, outflows and fund totals.",
    )
    parser.add_argument("--config", type=Path, default=cli_config.CONFIG_PATH,
                        help="settings YAML (defaults are used if missing)")
    parser.add_argument("-v", "--verbose", action="store_true",
                        help="show structured logs on stderr")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("login", help="log in as a configured user")
    p.add_argument("user_id")
    p.add_argument("--password", help=argparse.SUPPRESS)
    p.set_defaults(func=cmd_login)

    sub.add_parser("logout").set_defaults(func=cmd_logout)
    sub.add_parser("whoami").set_defaults(func=cmd_whoami)

    p = sub.add_parser("add-inflow", help="record money received")
    p.add_argument("kind", help=", ".join(k.value for k in InflowKind))
    p.add_argument("amount")
    p.add_argument("description")
    p.add_argument("--date", type=date.fromisoformat, default=None)
    p.set_defaults(func=cmd_add_inflow)

    p = sub.add_parser("add-outflow", help="record money spent")
    p.add_argument("category")
    p.add_argument("amount")
    p.add_argument("description")
    p.add_argument("--date", type=date.fromisoformat, default=None)
    p.set_defaults(func=cmd_add_outflow)

    p = sub.add_parser("list", help="list a collection, newest first")
    p.add_argument("collection", choices=[c.value for c in Collection])
    p.set_defaults(func=cmd_list)

    p = sub.add_parser("delete", help="delete a record")
    p.add_argument("collection", choices=[c.value for c in Collection])
    p.add_argument("record_id")
    p.set_defaults(func=cmd_delete)

    sub.add_parser("dashboard", help="fund totals").set_defaults(func=cmd_dashboard)
    sub.add_parser("sync", help="probe the remote and replay pending writes").set_defaults(func=cmd_sync)
    sub.add_parser("status", help="connectivity and queue depth").set_defaults(func=cmd_status)

    p = sub.add_parser("export", help="write a JSON backup")
    p.add_argument("--dir", type=Path, default=cli_config.BACKUP_DIR)
    p.set_defaults(func=cmd_export)

    p = sub.add_parser("clear", help="delete all local records")
    p.add_argument("--yes", action="store_true")
    p.set_defaults(func=cmd_clear)

    p = sub.add_parser("configure-remote", help="change the remote endpoint")
    p.add_argument("--kind", choices=["none", "sheets", "rest"])
    p.add_argument("--url")
    p.add_argument("--sheets-id")
    p.add_argument("--health-url")
    p.add_argument("--create-sheet", action="store_true",
                   help="have the Sheets script create a new spreadsheet and use it")
    p.set_defaults(func=cmd_configure_remote)

    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    try:
        settings = load_settings(args.config if args.config.exists() else None)
    except CashflowKernelError as exc:
        print(f"  ERROR: {exc}", file=sys.stderr)
        return 2

    configure_logging(level=logging.DEBUG if args.verbose else settings.log_level)
    with quiet_logging(enabled=not args.verbose):
        try:
            ledger = LedgerOrchestrator.from_settings(settings)
        except (CashflowKernelError, SQLAlchemyError) as exc:
            print(f"  ERROR: {exc}", file=sys.stderr)
            return 1

        try:
            return args.func(ledger, args)
        except CashflowKernelError as exc:
            print(f"  ERROR [{exc.code}]: {exc}", file=sys.stderr)
            return 1
        finally:
            ledger.close()


if __name__ == "__main__":
    sys.exit(main())
