#!/usr/bin/env python3
"""List every return of a body to its natal longitude within a date range.

Imports return_tools as a library; each return is cast for the chosen location
and summarised as one markdown table row (moment, angles, angular bodies).
"""

from __future__ import annotations

import argparse
import sys

from return_tools.astro_engine import julian_day_from_datetime
from return_tools.cli import (
    DEFAULT_OUTPUT_DIR,
    add_birth_arguments,
    configure_logging,
    parse_dt,
    prepare,
    resolve_output_path,
)
from return_tools.errors import ReturnToolsError
from return_tools.orchestrator import DEFAULT_BODIES
from return_tools.output import series_markdown


def main() -> None:
    parser = argparse.ArgumentParser(description="List successive returns of a body in a date range (UTC).")
    parser.add_argument("--body", default="Moon", choices=DEFAULT_BODIES, help="Returning body (default: Moon).")
    parser.add_argument("--start", required=True, help="Start datetime (ISO, accepts timezone).")
    parser.add_argument("--end", required=True, help="End datetime (ISO, accepts timezone).")
    parser.add_argument("--out", help=f"Output markdown path (default: {DEFAULT_OUTPUT_DIR}/returns_<body>_<start>.md).")
    add_birth_arguments(parser)
    args = parser.parse_args()
    configure_logging(args.verbose)

    try:
        start_dt = parse_dt(args.start)
        end_dt = parse_dt(args.end)
        if end_dt <= start_dt:
            raise SystemExit("End datetime must be after start datetime.")

        orchestrator, birth, location = prepare(args)
        charts = orchestrator.return_series(
            args.body,
            birth,
            julian_day_from_datetime(start_dt),
            julian_day_from_datetime(end_dt),
            location,
        )
    except ReturnToolsError as exc:
        sys.exit(f"Error: {exc}")

    output_path = resolve_output_path(args.out or f"returns_{args.body.lower()}_{start_dt.date().isoformat()}.md")
    header = (
        f"# {args.body} returns {start_dt.isoformat()} to {end_dt.isoformat()}\n\n"
        f"Birth {args.birth} at {args.lat}, {args.lon}\n\n"
    )
    output_path.write_text(header + series_markdown(charts), encoding="utf-8")
    print(f"{len(charts)} {args.body} returns written to {output_path}")


if __name__ == "__main__":
    main()
