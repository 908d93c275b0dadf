"""
Command line entry point.

    python -m app.cli process AP152     # sync one building
    python -m app.cli sync-all          # cron target, syncs initialized buildings
    python -m app.cli serve --sync      # sync every allowed building, then serve
"""

from __future__ import annotations

import argparse
import logging
import os

import uvicorn

from app.core.config import settings
from app.db.session import Base, SessionLocal, engine
from app.db.models import building, raw_data, room, schedule  # noqa: F401
from app.services.sync import sync_building, sync_initialized_buildings

logger = logging.getLogger(__name__)


def _cmd_process(args: argparse.Namespace) -> int:
    code = (args.building or "").strip().upper()
    if not settings.is_allowed_building(code):
        print(f"Building not supported: {code}")
        return 1

    with SessionLocal() as db:
        report = sync_building(db, code)

    if report.events == 0:
        print(f"No new events processed for {code}. Data assumed unchanged.")
    else:
        print(f"Fetched and processed {report.events} events for {code}.")
        print(f"Generated {report.slots} timeslots.")
    return 0


def _cmd_sync_all(args: argparse.Namespace) -> int:
    with SessionLocal() as db:
        reports = sync_initialized_buildings(db)
    for r in reports:
        print(f"{r.building}: {r.events} events, {r.slots} slots")
    return 0


def _cmd_serve(args: argparse.Namespace) -> int:
    if args.sync:
        codes = sorted(settings.allowed_buildings)
        print(f"Starting global sync for {len(codes)} buildings...")
        with SessionLocal() as db:
            for code in codes:
                report = sync_building(db, code)
                if report.events == 0:
                    print(f"Warning: API returned 0 events for {code}. Database remains unchanged.")
        print("Global sync completed.")

    uvicorn.run("app.main:app", host=args.host, port=args.port)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="roomchecker", description="Room Checker backend")
    sub = parser.add_subparsers(dest="command", required=True)

    p_process = sub.add_parser("process", help="Fetch a building and regenerate its timeline")
    p_process.add_argument("building", type=str, help="Building code (e.g. AP152)")

    sub.add_parser("sync-all", help="Sync every initialized building")

    p_serve = sub.add_parser("serve", help="Run the API server")
    p_serve.add_argument("--host", default="127.0.0.1")
    p_serve.add_argument("--port", type=int, default=int(os.getenv("PORT", 8000)))
    p_serve.add_argument("--sync", action="store_true", help="Sync all allowed buildings first")

    return parser


def main(argv: list[str] | None = None) -> None:
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )
    parser = build_parser()
    args = parser.parse_args(argv)

    Base.metadata.create_all(bind=engine)

    if args.command == "process":
        raise SystemExit(_cmd_process(args))
    if args.command == "sync-all":
        raise SystemExit(_cmd_sync_all(args))
    if args.command == "serve":
        raise SystemExit(_cmd_serve(args))

    raise SystemExit(2)


if __name__ == "__main__":
    main()
