"""High-level orchestration: collect tickets, verify them, pick a round-trip.

Usage patterns:

1. Collect the whole window, rebuild the round-trip index, verify coverage:
   railkiosk collect

2. Same, every day at a fixed time:
   railkiosk collect --schedule-at 04:30

3. Pick the cheapest trip (weekend trips at most 5000 roubles):
   railkiosk analyze --weekend --total-cost 5000
"""
import argparse
import asyncio
import logging
import time
from typing import Sequence

import schedule

from .analyzer import SelectionOptions, SelectionResult, analyze
from .collector import Collector, check_integrity
from .config import Settings, settings
from .emailer import send_alert, send_email
from .errors import IntegrityMismatch, StoreError
from .logging_config import setup_logging
from .models import ROUTES, TicketBatch
from .processing.report import format_selection_text, render_selection_html
from .processing.roundtrips import generate_index
from .scraping.kiosk import RzdKiosk, TicketSource
from .storage import Store, create_store


async def run_integrity_check(store: Store, settings: Settings) -> bool:
    """Integrity problems are reported, not raised."""
    try:
        await check_integrity(store, settings)
    except IntegrityMismatch as exc:
        logging.error(f"Integrity check failed: {exc}")
        return False
    except StoreError:
        logging.exception("Integrity check could not read stored tickets")
        return False
    return True


async def run_collection(settings: Settings, store: Store | None = None,
                         source: TicketSource | None = None) -> TicketBatch:
    """Collect tickets, regenerate the round-trip index and check coverage. Collection errors propagate."""
    store = store if store is not None else create_store(settings)
    if source is None:
        async with RzdKiosk(settings) as kiosk:
            batch = await Collector(kiosk, store, settings).collect()
    else:
        batch = await Collector(source, store, settings).collect()
    await generate_index(store, settings)
    logging.info("Successfully generated index.")
    await run_integrity_check(store, settings)
    logging.info("Collector finished.")
    return batch


async def run_analysis(settings: Settings, options: SelectionOptions, store: Store | None = None,
                       email: bool = False) -> SelectionResult:
    store = store if store is not None else create_store(settings)
    result = await analyze(store, options, default_route=settings.default_route)
    print(format_selection_text(result))
    if not result.ok:
        return result
    route = options.route or settings.default_route
    html = render_selection_html(result, route)
    settings.output_html.write_text(html, encoding="utf-8")
    logging.info(f"Output written to {settings.output_html}")
    if email:
        send_email(settings, subject=f"Билеты {route}", html_body=html)
    return result


def build_arg_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="RZD ticket collector and round-trip picker")
    p.add_argument("--log-level", default="INFO")
    sub = p.add_subparsers(dest="command", required=True)

    collect = sub.add_parser("collect", help="Collect tickets for the whole window and rebuild the index")
    collect.add_argument(
        "--schedule-at",
        metavar="HH:MM",
        default=None,
        help="Run the collection every day at the given time (e.g. 04:30). "
             "Without this flag the collection runs once and exits.",
    )

    sub.add_parser("check", help="Check that stored tickets cover every day of the window")

    an = sub.add_parser("analyze", help="Select the cheapest round-trip")
    an.add_argument("--route", choices=sorted(ROUTES), default=None, help="Originating direction (default from config)")
    an.add_argument("--early-morning", action=argparse.BooleanOptionalAction, default=None)
    an.add_argument("--weekend", action=argparse.BooleanOptionalAction, default=None)
    an.add_argument("--total-cost", type=int, default=None, help="Price ceiling for the whole round-trip")
    an.add_argument("--email", action="store_true", help="Send the report if email credentials are configured")
    return p


def _options_from_args(args: argparse.Namespace) -> SelectionOptions:
    return SelectionOptions(
        route=ROUTES[args.route] if args.route else None,
        early_morning=args.early_morning,
        weekend=args.weekend,
        total_cost=args.total_cost,
    )


def _collect_once(settings: Settings) -> bool:
    try:
        asyncio.run(run_collection(settings))
    except Exception as exc:  # noqa: BLE001
        logging.exception("Collection failed")
        try:
            send_alert(settings, "Ticket collection", exc)
        except Exception:  # noqa: BLE001
            logging.exception("Sending the failure alert failed")
        return False
    return True


def main_cli(argv: Sequence[str] | None = None, settings: Settings = settings) -> int:
    parser = build_arg_parser()
    args = parser.parse_args(argv)

    setup_logging(args.log_level, log_file=settings.log_file)

    if args.command == "check":
        return 0 if asyncio.run(run_integrity_check(create_store(settings), settings)) else 1

    if args.command == "analyze":
        result = asyncio.run(run_analysis(settings, _options_from_args(args), email=args.email))
        return 0 if result.ok else 1

    if args.schedule_at:
        logging.info(f"Scheduler started – collection will run every day at {args.schedule_at}")
        _collect_once(settings)
        schedule.every().day.at(args.schedule_at).do(_collect_once, settings)
        while True:
            try:
                schedule.run_pending()
            except Exception:  # noqa: BLE001
                logging.exception("Scheduler error:")
                time.sleep(60 * 60)
            time.sleep(1)
    return 0 if _collect_once(settings) else 1


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main_cli())
