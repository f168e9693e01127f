#!/usr/bin/env python3
"""
Friction Log command-line client.

Drives a friction session against a running backend: log annoyances,
record encounters, and watch today's score against the daily limit.
Any threshold alerts raised by a command are printed after it.

Usage:
    python scripts/friction_cli.py health
    python scripts/friction_cli.py add "Slow WiFi" --level 4 --category digital --limit 5
    python scripts/friction_cli.py encounter 3
    python scripts/friction_cli.py list --status not_fixed
    python scripts/friction_cli.py limit 40
    python scripts/friction_cli.py limit none
"""

import sys
import asyncio
import logging
import argparse
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

SRC = Path(__file__).resolve().parent.parent / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from friction_session.config import get_settings
from friction_session.controller import FrictionSessionController
from friction_session.gateway import FrictionGateway
from friction_session.models import Category, FrictionItem, Status


def parse_limit(value: str) -> Optional[int]:
    """Parse a daily limit; ``none`` clears it."""
    if value.lower() in ("none", "off", "clear"):
        return None
    limit = int(value)
    if limit <= 0:
        raise argparse.ArgumentTypeError("limit must be a positive integer or 'none'")
    return limit


def format_item(item: FrictionItem) -> str:
    limit = f"/{item.encounter_limit}" if item.encounter_limit else ""
    flag = " OVER LIMIT" if item.is_limit_exceeded else ""
    return (
        f"#{item.id:<4} [{item.status.display_name:<11}] "
        f"{item.title} ({item.category.display_name}, level {item.annoyance_level}) "
        f"encounters {item.encounter_count}{limit}{flag}"
    )


STATUS_VALUES = "{" + ",".join(s.value for s in Status) + "}"
CATEGORY_VALUES = "{" + ",".join(c.value for c in Category) + "}"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Friction Log command-line client",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__.split("Usage:")[1] if __doc__ else None,
    )
    parser.add_argument("--url", help="Backend URL (default: FRICTION_GATEWAY_URL)")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("health", help="Check the backend is up")

    list_cmd = sub.add_parser("list", help="List friction items")
    list_cmd.add_argument("--status", type=Status, metavar=STATUS_VALUES)
    list_cmd.add_argument("--category", type=Category, metavar=CATEGORY_VALUES)

    add = sub.add_parser("add", help="Log a new friction item")
    add.add_argument("title")
    add.add_argument("--level", type=int, required=True, choices=range(1, 6))
    add.add_argument("--category", type=Category, metavar=CATEGORY_VALUES, default=Category.OTHER)
    add.add_argument("--description")
    add.add_argument("--limit", type=int, help="Daily encounter limit for this item")

    # Unset options stay off the namespace so only passed fields are sent
    update = sub.add_parser("update", help="Change fields of an item", argument_default=argparse.SUPPRESS)
    update.add_argument("id", type=int)
    update.add_argument("--title")
    update.add_argument("--description")
    update.add_argument("--level", type=int, choices=range(1, 6))
    update.add_argument("--category", type=Category, metavar=CATEGORY_VALUES)
    update.add_argument("--status", type=Status, metavar=STATUS_VALUES)
    update.add_argument("--limit", type=parse_limit, help="New daily limit, or 'none'")

    fix = sub.add_parser("fix", help="Mark an item as fixed")
    fix.add_argument("id", type=int)

    encounter = sub.add_parser("encounter", help="Record one encounter")
    encounter.add_argument("id", type=int)

    delete = sub.add_parser("delete", help="Delete an item")
    delete.add_argument("id", type=int)

    sub.add_parser("score", help="Show today's score")

    limit = sub.add_parser("limit", help="Set or clear the global daily limit")
    limit.add_argument("value", type=parse_limit)

    trend = sub.add_parser("trend", help="Show the score trend")
    trend.add_argument("--days", type=int)

    top = sub.add_parser("top", help="Show the most annoying items")
    top.add_argument("--limit", type=int)

    sub.add_parser("categories", help="Show score per category")

    return parser


def update_fields(args: argparse.Namespace) -> dict:
    """Collect only the options the user actually passed."""
    mapping = {
        "title": "title",
        "description": "description",
        "level": "annoyance_level",
        "category": "category",
        "status": "status",
        "limit": "encounter_limit",
    }
    passed = vars(args)
    return {field: passed[option] for option, field in mapping.items() if option in passed}


async def run_command(args: argparse.Namespace, session: FrictionSessionController) -> bool:
    """Run one parsed command against a session and print the outcome."""
    command = args.command

    if command == "health":
        ok = await session.check_backend_health()
        if ok:
            print(f"[INFO] Backend at {session.gateway.base_url} is healthy")

    elif command == "list":
        ok = await session.load_items(status=args.status, category=args.category)
        if ok:
            if not session.items:
                print("No friction items.")
            for item in session.items:
                print(format_item(item))

    elif command == "add":
        ok = await session.create_item(
            args.title,
            args.level,
            args.category,
            description=args.description,
            encounter_limit=args.limit,
        )
        if ok:
            print(format_item(session.items[0]))

    elif command == "update":
        fields = update_fields(args)
        if not fields:
            print("[ERROR] Nothing to update")
            return False
        ok = await session.update_item(args.id, **fields)

    elif command == "fix":
        ok = await session.update_item(args.id, status=Status.FIXED)

    elif command == "encounter":
        ok = await session.increment_encounter(args.id)
        if ok:
            item = session.cache.get(args.id)
            if item:
                print(format_item(item))

    elif command == "delete":
        ok = await session.delete_item(args.id)

    elif command == "score":
        ok = await session.load_score()

    elif command == "limit":
        ok = await session.set_global_limit(args.value)

    elif command == "trend":
        ok = await session.load_trend(args.days)
        for point in session.trend:
            print(f"{point.date.isoformat()}  {point.score:>5}  {'#' * min(point.score, 60)}")

    elif command == "top":
        ok = await session.load_most_annoying(args.limit)
        for rank, entry in enumerate(session.most_annoying, start=1):
            print(
                f"{rank}. {entry.title} ({entry.category.display_name}) "
                f"impact {entry.impact} = {entry.annoyance_level} x {entry.encounter_count}"
            )

    elif command == "categories":
        ok = await session.load_category_breakdown()
        if ok:
            for category in Category:
                print(f"{category.display_name:<8} {session.category_breakdown.score_for(category):>5}")

    else:
        raise ValueError(f"Unknown command: {command}")

    if ok and command in ("score", "limit", "encounter", "add", "delete", "fix", "update"):
        print_score(session)

    if session.success_message:
        print(f"[INFO] {session.success_message}")
    if session.error_message:
        print(f"[ERROR] {session.error_message}")

    for alert in session.alert_queue.drain():
        print(f"[ALERT] {alert.title}: {alert.message}")

    return ok


def print_score(session: FrictionSessionController) -> None:
    score = session.current_score
    if score is None:
        return
    line = (
        f"Score {score.current_score} | active {score.active_count} | "
        f"encounters today {score.total_encounters_today}"
    )
    if score.has_limit:
        line += f" | {score.weighted_encounters_today}/{score.global_limit} ({score.limit_percentage}%)"
    print(line)


async def main_async(args: argparse.Namespace) -> bool:
    settings = get_settings()
    async with FrictionGateway(
        base_url=args.url or settings.gateway_url,
        timeout=settings.request_timeout,
    ) as gateway:
        session = FrictionSessionController(gateway, settings=settings)
        # Populate the cache so mutations land on known, current items
        if args.command in ("encounter", "limit", "add", "delete", "fix", "update"):
            await session.load_items()
            session.clear_messages()
        return await run_command(args, session)


def main(argv: Optional[list] = None) -> None:
    load_dotenv()

    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=get_settings().log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        ok = asyncio.run(main_async(args))
    except KeyboardInterrupt:
        print("\n[INFO] Interrupted by user")
        ok = False

    sys.exit(0 if ok else 1)


if __name__ == "__main__":
    main()
