#!/usr/bin/env python3

"""
Command-line access to a user's fitness data.

    fitness-tracker import-csv calories.csv [--start-year 2023]
    fitness-tracker export-csv out.csv
    fitness-tracker summary
    fitness-tracker calendar --month 2024-03
    fitness-tracker trend --days 30
    fitness-tracker clear
"""

from __future__ import annotations

import argparse
import dataclasses
import logging
import sys
from datetime import date
from typing import Callable, List, Optional, Sequence, Tuple

from calendar_grid import aggregate_month, weeks
from config import Settings, build_backend, configure_logging, load_settings
from csv_import import CsvImportError, export_calorie_csv, import_calorie_csv
from entry_store import EntryStore, PersistenceError
from metrics import balance_label, recent_workout_count, trailing_average_net, weight_delta, weight_stats
from projections import monthly_balance_series, monthly_balance_total, points_to_frame, trailing_net_series
from storage import DATABASE_ERRORS

logger = logging.getLogger(__name__)


def parse_month(value: str) -> Tuple[int, int]:
    try:
        year_s, month_s = value.split("-")
        year, month = int(year_s), int(month_s)
    except ValueError:
        raise argparse.ArgumentTypeError("month must look like YYYY-MM") from None
    if not 1 <= month <= 12:
        raise argparse.ArgumentTypeError("month must be between 01 and 12")
    return year, month


def parse_day(value: str) -> date:
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise argparse.ArgumentTypeError("date must look like YYYY-MM-DD") from None


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="fitness-tracker", description="Calorie, workout and weight tracking.")
    parser.add_argument("--user", default="local", help="User id whose data to use. Default: local")
    parser.add_argument("--storage", choices=["database", "json"], help="Override FITNESS_STORAGE")
    parser.add_argument("--data-dir", help="Override FITNESS_DATA_DIR")
    parser.add_argument("--today", type=parse_day, help="Pretend today is YYYY-MM-DD")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log at INFO level")
    sub = parser.add_subparsers(dest="command", required=True)

    p = sub.add_parser("import-csv", help="Import calorie entries from a CSV file")
    p.add_argument("path")
    p.add_argument("--start-year", type=int, help="First year for files whose dates have no year")

    p = sub.add_parser("export-csv", help="Write calorie entries as CSV")
    p.add_argument("path")

    sub.add_parser("summary", help="Print dashboard stats")

    p = sub.add_parser("calendar", help="Print a month's consistency grid")
    p.add_argument("--month", type=parse_month, help="YYYY-MM. Default: current month")

    p = sub.add_parser("trend", help="Print net calories for recent days")
    p.add_argument("--days", type=int, help="Window length. Default: FITNESS_TREND_DAYS")

    sub.add_parser("clear", help="Delete ALL calorie, workout and weight data")
    return parser.parse_args(argv)


# ---------------------------
# Commands
# ---------------------------

def cmd_import(store: EntryStore, args: argparse.Namespace, settings: Settings, today: date) -> int:
    with open(args.path, "rb") as f:
        data = f.read()
    result = import_calorie_csv(store, data, start_year=args.start_year)
    print(f"Imported {len(result.imported_ids)} entries ({result.layout} layout), skipped {result.skipped} lines")
    return 0


def cmd_export(store: EntryStore, args: argparse.Namespace, settings: Settings, today: date) -> int:
    with open(args.path, "w", newline="") as f:
        f.write(export_calorie_csv(store.calories))
    print(f"Wrote {len(store.calories)} entries to {args.path}")
    return 0


def cmd_summary(store: EntryStore, args: argparse.Namespace, settings: Settings, today: date) -> int:
    stats = weight_stats(store.weights)
    print("=== Summary ===")
    print(f"Avg net calories (last {settings.average_window} entries): "
          f"{trailing_average_net(store.calories, settings.average_window):.0f}")
    print(f"Weight change since previous reading: {weight_delta(store.weights):+.1f} lbs")
    print(f"Workouts in the last 7 days: {recent_workout_count(store.workouts, today)}")
    if stats.count:
        print(f"Current weight: {stats.latest:.1f} lbs | total change {stats.total_change:+.1f} | "
              f"average {stats.average:.1f} over {stats.count} entries")
    balance_total = monthly_balance_total(monthly_balance_series(store.calories, today.year, today.month))
    print(f"{today:%B %Y}: {balance_label(balance_total)} of {abs(balance_total):g} kcal")
    return 0


def cmd_calendar(store: EntryStore, args: argparse.Namespace, settings: Settings, today: date) -> int:
    year, month = args.month or (today.year, today.month)
    summary = aggregate_month(year, month, store.calories, store.workouts)
    print(f"{date(year, month, 1):%B %Y}   consistency {summary.consistency_score}% "
          f"({summary.active_days}/{len(summary.days)} active days)")
    print(" ".join(f"{d:>4}" for d in ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]))
    for row in weeks(summary):
        cells = []
        for day in row:
            if day is None:
                cells.append("    ")
            else:
                cells.append(f"{day.label:>3}{'*' if day.is_active else ' '}")
        print(" ".join(cells))
    return 0


def cmd_trend(store: EntryStore, args: argparse.Namespace, settings: Settings, today: date) -> int:
    days = args.days or settings.trend_window_days
    points = trailing_net_series(store.calories, today, days)
    frame = points_to_frame(points, ["date", "net", "target", "balance"])
    print(frame.to_string(index=False))
    return 0


def cmd_clear(store: EntryStore, args: argparse.Namespace, settings: Settings, today: date,
              ask: Callable[[str], str] = input) -> int:
    if ask("This deletes all calorie, workout and weight data. Continue? [y/N] ").strip().lower() != "y":
        print("Cancelled.")
        return 1
    if ask("Are you absolutely sure? Type DELETE to confirm: ").strip() != "DELETE":
        print("Cancelled.")
        return 1
    store.clear_all()
    print("All data cleared.")
    return 0


COMMANDS = {
    "import-csv": cmd_import,
    "export-csv": cmd_export,
    "summary": cmd_summary,
    "calendar": cmd_calendar,
    "trend": cmd_trend,
    "clear": cmd_clear,
}


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    settings = load_settings()
    overrides = {}
    if args.storage:
        overrides["storage_backend"] = args.storage
    if args.data_dir:
        overrides["data_dir"] = args.data_dir
    if overrides:
        settings = dataclasses.replace(settings, **overrides)
    configure_logging("INFO" if args.verbose else settings.log_level)

    today = args.today or date.today()
    try:
        store = EntryStore(build_backend(settings), user_id=args.user)
        store.load()
        return COMMANDS[args.command](store, args, settings, today)
    except FileNotFoundError as e:
        print(f"File Error: {e}", file=sys.stderr)
    except CsvImportError as e:
        print(f"Error parsing CSV file. Please check the format. ({e})", file=sys.stderr)
    except PersistenceError as e:
        print(f"Storage Error: {e}", file=sys.stderr)
    except DATABASE_ERRORS as e:
        logger.exception("Could not load data")
        print(f"Storage Error: {e}", file=sys.stderr)
    return 1


if __name__ == "__main__":
    sys.exit(main())
