"""CLI entry point: python main.py --file stocks.json --zone discount --sort rsi"""

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Optional

from src.logging_config import LogFormat, LoggingConfig, LogLevel, configure_logging
from src.screener.classification import format_market_cap, format_percent, format_price, format_volume
from src.screener.client import HttpDataSource, StaticDataSource, parse_instruments
from src.screener.config import (
    EquilibriumZone,
    FilterField,
    Signal,
    SortField,
    Trend,
    VolumeProfile,
)
from src.screener.exceptions import ScreenerError, ValidationError
from src.screener.export import export_filename
from src.screener.models import QueryResult
from src.screener.session import ScreenerSession, create_session
from src.settings import get_settings


def _values(enum_cls) -> list[str]:
    return [e.value for e in enum_cls]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Equilibrio - equilibrium zone and RSI stock screener"
    )
    source = parser.add_mutually_exclusive_group()
    source.add_argument("--file", help="Read instruments from a JSON file")
    source.add_argument("--url", help="Screening API base URL (default: from settings)")

    filters = parser.add_argument_group("filters")
    filters.add_argument("--search", help="Substring of symbol or name")
    filters.add_argument("--sector", action="append", help="Sector to include (repeatable)")
    filters.add_argument("--rsi-min", type=float)
    filters.add_argument("--rsi-max", type=float)
    filters.add_argument("--price-min", type=float)
    filters.add_argument("--price-max", type=float)
    filters.add_argument("--signal", action="append", choices=_values(Signal))
    filters.add_argument("--trend", action="append", choices=_values(Trend))
    filters.add_argument("--volume", action="append", choices=_values(VolumeProfile))
    filters.add_argument("--zone", action="append", choices=_values(EquilibriumZone))

    view = parser.add_argument_group("view")
    view.add_argument("--sort", choices=_values(SortField), help="Sort field (default: symbol)")
    view.add_argument("--desc", action="store_true", help="Sort descending")
    view.add_argument("--page", type=int, default=1)
    view.add_argument("--page-size", type=int, default=None)

    presets = parser.add_argument_group("presets and export")
    presets.add_argument("--export", metavar="PATH", help="Write the filtered set as CSV")
    presets.add_argument("--save-preset", metavar="NAME", help="Save the resulting filters as a preset")
    presets.add_argument("--preset", metavar="ID", help="Start from a saved preset")
    presets.add_argument("--list-presets", action="store_true", help="List saved presets and exit")
    presets.add_argument("--reset", action="store_true", help="Clear filters remembered from the last run")

    parser.add_argument("--verbose", action="store_true", help="Debug logging")
    return parser


def load_file_source(path: str) -> StaticDataSource:
    with open(path, encoding="utf-8") as f:
        payload = json.load(f)
    return StaticDataSource(parse_instruments(payload))


def apply_arguments(session: ScreenerSession, args: argparse.Namespace) -> None:
    """Apply preset, filter flags, sort and page to the session, in that order."""
    if args.reset:
        session.reset_filters()
    if args.preset and session.load_preset(args.preset) is None:
        raise ValidationError(f"Preset {args.preset} not found", field="preset")

    if args.search is not None:
        session.set_search_term(args.search)

    edits = {}
    for field_id, value in (
        (FilterField.PRICE_MIN, args.price_min),
        (FilterField.PRICE_MAX, args.price_max),
        (FilterField.RSI_MIN, args.rsi_min),
        (FilterField.RSI_MAX, args.rsi_max),
    ):
        if value is not None:
            edits[field_id] = value
    for field_id, values in (
        (FilterField.SECTORS, args.sector),
        (FilterField.SIGNALS, args.signal),
        (FilterField.TREND, args.trend),
        (FilterField.VOLUME_PROFILE, args.volume),
        (FilterField.EQUILIBRIUM_ZONE, args.zone),
    ):
        if values:
            edits[field_id] = values
    if edits:
        session.update_filters(edits)

    if args.sort and SortField(args.sort) != session.query.sort_field:
        session.sort_by(args.sort)
    if args.desc:
        session.sort_by(session.query.sort_field)

    if args.page_size is not None:
        session.set_page_size(args.page_size)
    session.go_to_page(args.page)


def format_table(result: QueryResult) -> str:
    header = (
        f"{'Symbol':<8} {'Name':<24} {'Price':>10} {'Chg%':>8} {'RSI':>6} "
        f"{'Volume':>9} {'Mkt Cap':>10} {'Eq%':>8} {'Zone':<10} {'Trend':<8} {'Signal':<10} {'Sector':<20}"
    )
    lines = [header, "-" * len(header)]
    for row in result.rows:
        i = row.instrument
        lines.append(
            f"{i.symbol:<8} {i.name[:24]:<24} {format_price(i.price):>10} "
            f"{format_percent(i.change_percent):>8} {i.rsi:>6.1f} "
            f"{format_volume(i.volume):>9} {format_market_cap(i.market_cap):>10} "
            f"{format_percent(i.price_to_equilibrium):>8} {row.equilibrium_zone.value:<10} "
            f"{row.trend_label:<8} {row.signal_label:<10} {i.sector[:20]:<20}"
        )
    lines.append("")
    lines.append(
        f"Page {result.page_number} of {result.total_pages} "
        f"({result.total_count} matches of {result.universe_size} instruments)"
    )
    return "\n".join(lines)


async def run(args: argparse.Namespace) -> int:
    settings = get_settings()
    if args.file:
        source = load_file_source(args.file)
    elif args.url:
        source = HttpDataSource.from_settings(settings.model_copy(update={"data_source_url": args.url}))
    else:
        source = HttpDataSource.from_settings(settings)

    session = create_session(settings, source=source)

    try:
        if args.list_presets:
            presets = session.list_presets()
            if not presets:
                print("No saved presets.")
            for preset in presets:
                print(f"{preset.preset_id}  {preset.name:<30} {preset.filters.active_filter_count()} filter(s)")
            return 0

        apply_arguments(session, args)
        await session.reload()

        if args.save_preset:
            preset = session.save_preset(args.save_preset)
            print(f"Saved preset {preset.preset_id} ({preset.name})")

        if args.export:
            target = Path(args.export)
            if target.is_dir():
                target = target / export_filename()
            target.write_bytes(await session.export())
            print(f"Exported to {target}")

        print(format_table(session.view()))
        return 0
    finally:
        if isinstance(source, HttpDataSource):
            await source.close()


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    settings = get_settings()
    level = LogLevel.__members__.get(settings.log_level.upper(), LogLevel.INFO)
    configure_logging(LoggingConfig(
        level=LogLevel.DEBUG if args.verbose else level,
        format=LogFormat.JSON if settings.log_format.lower() == "json" else LogFormat.CONSOLE,
    ))
    try:
        return asyncio.run(run(args))
    except (ScreenerError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
