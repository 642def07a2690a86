"""Command line entry point for casting solar and lunar returns."""

from __future__ import annotations

import argparse
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Sequence

from . import astro_engine, output
from .errors import ReturnToolsError, ValidationError
from .models import BirthRecord, Location
from .orchestrator import DEFAULT_BODIES, ReturnChartOrchestrator

DEFAULT_OUTPUT_DIR = Path("outputs")
LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"

logger = logging.getLogger(__name__)


def parse_dt(value: str) -> datetime:
    """Return a UTC datetime from an ISO-like string, lenient on 1-digit month/day."""

    raw = value.strip()
    if raw.endswith("Z"):
        raw = raw[:-1] + "+00:00"

    def try_parse(fmt: str) -> datetime | None:
        try:
            return datetime.strptime(raw, fmt)
        except ValueError:
            return None

    try:
        dt = datetime.fromisoformat(raw)
    except ValueError:
        dt = (
            try_parse("%Y-%m-%dT%H:%M:%S%z")
            or try_parse("%Y-%m-%d %H:%M:%S%z")
            or try_parse("%Y-%m-%dT%H:%M%z")
            or try_parse("%Y-%m-%dT%H:%M:%S")
            or try_parse("%Y-%m-%dT%H:%M")
            or try_parse("%Y-%m-%d")
        )
        if dt is None:
            raise ValidationError(f"Unrecognized datetime {value!r}; use ISO 8601, e.g. 1990-06-15T14:30Z") from None

    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def resolve_output_path(path_str: str | None) -> Path | None:
    """Bare file names land in ``outputs/``; other paths are used as given."""

    if not path_str:
        return None
    p = Path(path_str)
    if not p.is_absolute() and p.parent == Path("."):
        p = DEFAULT_OUTPUT_DIR / p
    p.parent.mkdir(parents=True, exist_ok=True)
    return p


def add_birth_arguments(parser: argparse.ArgumentParser) -> None:
    """Birth data and ephemeris options shared with scan_returns.py."""

    parser.add_argument("--birth", required=True, help="Birth datetime (ISO, UTC unless an offset is given).")
    parser.add_argument("--lat", required=True, type=float, help="Birth latitude in decimal degrees (north positive).")
    parser.add_argument("--lon", required=True, type=float, help="Birth longitude in decimal degrees (east positive).")
    parser.add_argument("--cast-lat", type=float, help="Latitude to cast the return for (default: birth place).")
    parser.add_argument("--cast-lon", type=float, help="Longitude to cast the return for (default: birth place).")
    parser.add_argument("--ephe", help="Swiss Ephemeris directory. Defaults to SWISSEPH_EPHE.")
    parser.add_argument(
        "--backend",
        choices=astro_engine.BACKENDS,
        help="Ephemeris backend (default: EPHEMERIS_BACKEND or swieph).",
    )
    parser.add_argument("--houses", choices=("placidus", "equal"), default="placidus", help="House system.")
    parser.add_argument("--minor", action="store_true", help="Include minor aspects.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log search iterations.")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="return-chart", description="Cast solar and lunar return charts.")
    sub = parser.add_subparsers(dest="command", required=True)

    solar = sub.add_parser("solar", help="Solar return for a given year.")
    solar.add_argument("--year", type=int, help="Return year (default: current UTC year).")

    lunar = sub.add_parser("lunar", help="First lunar return after a date.")
    lunar.add_argument("--after", help="Search from this datetime (default: now).")

    both = sub.add_parser("both", help="Solar and lunar returns with a combined analysis.")
    both.add_argument("--date", help="Target datetime (default: now).")

    for command in (solar, lunar, both):
        add_birth_arguments(command)
        command.add_argument("--md", "--markdown", dest="md", help="Write a markdown report to this path.")
        command.add_argument("--html", help="Write a dark-theme HTML report to this path.")
    return parser


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(level=logging.DEBUG if verbose else logging.WARNING, format=LOG_FORMAT, stream=sys.stderr)


def casting_location(args: argparse.Namespace) -> Location | None:
    if args.cast_lat is None and args.cast_lon is None:
        return None
    if args.cast_lat is None or args.cast_lon is None:
        raise ValidationError("--cast-lat and --cast-lon must be given together")
    return Location(args.cast_lat, args.cast_lon)


def prepare(args: argparse.Namespace) -> tuple[ReturnChartOrchestrator, BirthRecord, Location | None]:
    """Build the oracle, orchestrator and birth record from parsed arguments."""

    if args.ephe:
        astro_engine.set_ephe_path(str(Path(args.ephe).expanduser()))
    oracle = astro_engine.SwissEphemerisOracle(backend=args.backend)
    birth_jd = astro_engine.julian_day_from_datetime(parse_dt(args.birth))
    birth = BirthRecord.from_oracle(oracle, birth_jd, Location(args.lat, args.lon), DEFAULT_BODIES)
    orchestrator = ReturnChartOrchestrator(
        oracle, house_system=args.houses, include_minor_aspects=args.minor
    )
    return orchestrator, birth, casting_location(args)


def run(args: argparse.Namespace) -> None:
    orchestrator, birth, location = prepare(args)
    now = datetime.now(timezone.utc)
    analysis = None

    if args.command == "solar":
        charts = [orchestrator.generate_solar_return(birth, args.year or now.year, location)]
    elif args.command == "lunar":
        after = parse_dt(args.after) if args.after else now
        charts = [
            orchestrator.generate_lunar_return(birth, astro_engine.julian_day_from_datetime(after), location)
        ]
    else:
        target = parse_dt(args.date) if args.date else now
        combined = orchestrator.generate_solar_and_lunar(
            birth, astro_engine.julian_day_from_datetime(target), location
        )
        charts = [combined.solar, combined.lunar]
        analysis = combined.analysis

    output.print_rich_report(charts, analysis)

    md_path = resolve_output_path(args.md)
    if md_path:
        md_path.write_text(output.build_markdown_report(charts, analysis), encoding="utf-8")
        logger.info("Markdown report written to %s", md_path)
    html_path = resolve_output_path(args.html)
    if html_path:
        output.export_rich_html(html_path, charts, analysis)
        logger.info("HTML report written to %s", html_path)


def main(argv: Sequence[str] | None = None) -> int:
    """
    CLI entry point.

    Usage:
        return-chart solar --birth 1990-06-15T14:30Z --lat 40.7128 --lon -74.006 --year 2025
    """

    args = build_parser().parse_args(argv)
    configure_logging(args.verbose)
    try:
        run(args)
    except ReturnToolsError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
