"""
TaskMgmt CLI — Database bootstrap and read-only reports.

Commands:
- taskmgmt init      — Create the schema on the configured database
- taskmgmt report    — Completed-task performance report per owner
- taskmgmt history   — History trail of one task, oldest first
- taskmgmt serve     — Run the HTTP API under uvicorn
"""

from __future__ import annotations

import argparse
import logging
import uuid
from typing import Optional

from taskmgmt.engine.config import load_config
from taskmgmt.engine.errors import TaskMgmtError

logger = logging.getLogger("taskmgmt.cli")


def main(argv: Optional[list] = None) -> int:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="taskmgmt",
        description="TaskMgmt — project and task management",
    )
    parser.add_argument(
        "--config", default=None, help="Path to taskmgmt.yaml (default: auto-discover)"
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # taskmgmt init
    subparsers.add_parser("init", help="Create database tables")

    # taskmgmt report
    report_parser = subparsers.add_parser("report", help="Completed tasks per owner")
    report_parser.add_argument(
        "--days", type=int, help="Report window in days (default: rules.report_window_days)"
    )

    # taskmgmt history
    history_parser = subparsers.add_parser("history", help="Show the history of a task")
    history_parser.add_argument("task_id", help="Task id (UUID)")

    # taskmgmt serve
    serve_parser = subparsers.add_parser("serve", help="Run the HTTP API")
    serve_parser.add_argument("--host", default="127.0.0.1", help="Bind address")
    serve_parser.add_argument("--port", type=int, default=8000, help="Bind port")

    args = parser.parse_args(argv)

    if args.command == "init":
        return cmd_init(args)
    elif args.command == "report":
        return cmd_report(args)
    elif args.command == "history":
        return cmd_history(args)
    elif args.command == "serve":
        return cmd_serve(args)
    else:
        parser.print_help()
        return 0


def _connect(args: argparse.Namespace, create_tables: bool = False):
    config = load_config(args.config)
    from taskmgmt.db.session import init_db

    factory = init_db(config.database.url, create_tables=create_tables, echo=config.database.echo)
    return config, factory


def cmd_init(args: argparse.Namespace) -> int:
    """
    Bootstrap the database:
    1. Load config from taskmgmt.yaml (TASKMGMT_DATABASE_URL wins over the file)
    2. Create all tables (SQLAlchemy metadata.create_all)
    """
    from taskmgmt.db.base import engine_registry
    from taskmgmt.db.session import ENGINE_NAME, close_db

    try:
        config, _ = _connect(args, create_tables=True)
    except Exception as e:
        print(f"[ERROR] Failed to create tables: {e}")
        return 1

    try:
        if not engine_registry.health_check(ENGINE_NAME):
            print("[ERROR] Database connection failed")
            return 1
        print(f"[OK] Loaded config for environment '{config.environment}'")
        print("[OK] Database tables created")
        return 0
    finally:
        close_db()


def cmd_report(args: argparse.Namespace) -> int:
    """Print the completed-tasks-per-owner report."""
    from taskmgmt.db.session import close_db
    from taskmgmt.repositories.unit_of_work import UnitOfWork
    from taskmgmt.services.task_service import TaskService

    try:
        config, factory = _connect(args)
    except Exception as e:
        print(f"[ERROR] Database connection failed: {e}")
        return 1

    rules = config.rules
    if args.days:
        rules = rules.model_copy(update={"report_window_days": args.days})

    try:
        with UnitOfWork.from_factory(factory) as uow:
            rows = TaskService(uow, rules).performance_report()
    except TaskMgmtError as e:
        print(f"[ERROR] {e.message}")
        return 1
    finally:
        close_db()

    print(f"Completed tasks — last {rules.report_window_days} days")
    if not rows:
        print("  (no completed tasks)")
        return 0
    print(f"  {'Owner':<45} {'Completed':>9} {'Per day':>8}")
    for row in rows:
        print(f"  {row.owner_name:<45} {row.completed:>9} {row.daily_average:>8.2f}")
    return 0


def cmd_history(args: argparse.Namespace) -> int:
    """Print every history entry of one task."""
    from taskmgmt.db.session import close_db
    from taskmgmt.repositories.unit_of_work import UnitOfWork
    from taskmgmt.services.task_service import TaskService

    try:
        task_id = uuid.UUID(args.task_id)
    except ValueError:
        print(f"[ERROR] Not a valid task id: {args.task_id}")
        return 1

    try:
        config, factory = _connect(args)
    except Exception as e:
        print(f"[ERROR] Database connection failed: {e}")
        return 1

    try:
        with UnitOfWork.from_factory(factory) as uow:
            entries = TaskService(uow, config.rules).get_history(task_id)
    except TaskMgmtError as e:
        print(f"[ERROR] {e.message}")
        return 1
    finally:
        close_db()

    for entry in entries:
        print(
            f"  {entry.recorded_at.isoformat()}  {entry.status.value:<10} "
            f"{entry.priority.value:<6}  {entry.description}"
        )
    print(f"[OK] {len(entries)} entries")
    return 0


def cmd_serve(args: argparse.Namespace) -> int:
    """Start the API server. The app opens and closes the database itself."""
    import uvicorn

    from taskmgmt.api.app import create_app

    try:
        config = load_config(args.config)
    except Exception as e:
        print(f"[ERROR] Invalid configuration: {e}")
        return 1

    print(f"Starting TaskMgmt API on {args.host}:{args.port} ({config.environment})...")
    try:
        uvicorn.run(create_app(rules=config.rules), host=args.host, port=args.port)
    except KeyboardInterrupt:
        print("\nServer stopped.")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
