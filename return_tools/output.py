"""Output helpers for presenting return charts."""

from __future__ import annotations

from pathlib import Path
from typing import Iterable, Optional, Sequence

from .astro_engine import datetime_from_julian_day
from .models import CombinedAnalysis, ReturnChart
from .validator import ChartAssessment, assess_return_chart

SIGNS = [
    "Aries",
    "Taurus",
    "Gemini",
    "Cancer",
    "Leo",
    "Virgo",
    "Libra",
    "Scorpio",
    "Sagittarius",
    "Capricorn",
    "Aquarius",
    "Pisces",
]

BODY_SYMBOLS = {
    "Sun": "☉",
    "Moon": "☽",
    "Mercury": "☿",
    "Venus": "♀",
    "Mars": "♂",
    "Jupiter": "♃",
    "Saturn": "♄",
    "Uranus": "♅",
    "Neptune": "♆",
    "Pluto": "♇",
}

DARK_CSS = """
<style>
html, body { background:#0b0b0b !important; color:#eaeaea !important; }
pre, code {
  background:#0b0b0b !important;
  color:#eaeaea !important;
  white-space: pre;
  font-family:'Noto Sans Mono','DejaVu Sans Mono','JetBrains Mono','Fira Code','Menlo','Consolas','Courier New',monospace;
  font-variant-ligatures: none;
}
pre code span { white-space: pre; font-family: inherit; }
</style>
""".strip()


def _format_coord(value: float, positive_label: str, negative_label: str, precision: int = 4) -> str:
    """Return a signed coordinate with cardinal direction."""

    hemi = positive_label if value >= 0 else negative_label
    return f"{abs(value):.{precision}f}° {hemi}"


def format_longitude(longitude: float) -> str:
    """Zodiacal notation, e.g. ``23°30' Gemini``."""

    total_minutes = int(round(longitude * 60)) % (360 * 60)
    sign = SIGNS[total_minutes // (30 * 60)]
    degrees, minutes = divmod(total_minutes % (30 * 60), 60)
    return f"{degrees:2d}°{minutes:02d}' {sign}"


def format_moment(julian_day: float) -> str:
    return datetime_from_julian_day(julian_day).strftime("%Y-%m-%d %H:%M:%S UTC")


def _house_style(house_num: int) -> str:
    """Return a style for houses: angular, succedent, cadent."""
    if house_num in {1, 4, 7, 10}:
        return "bold white"
    if house_num in {2, 5, 8, 11}:
        return "cyan"
    return "dim"


def _body_label(name: str, use_symbol: bool) -> str:
    if use_symbol and name in BODY_SYMBOLS:
        return f"{BODY_SYMBOLS[name]} {name}"
    return name


def _return_title(chart: ReturnChart) -> str:
    if chart.body == "Sun":
        return "Solar Return"
    if chart.body == "Moon":
        return "Lunar Return"
    return f"{chart.body} Return"


def _chart_header_lines(chart: ReturnChart, assessment: ChartAssessment | None) -> list[str]:
    loc = chart.location
    lines = [
        f"{_return_title(chart)}: {format_moment(chart.julian_day)}",
        f"{chart.body} back at {format_longitude(chart.target_longitude)} "
        f"(residual {chart.solution.residual * 3600:.2f}\", {chart.solution.iterations} iterations)",
        f"Location: {_format_coord(loc.latitude, 'N', 'S')}, {_format_coord(loc.longitude, 'E', 'W')}",
        f"Valid until: {format_moment(chart.validity.end)} ({chart.validity.duration_days:.2f} days)",
        f"House system: {chart.houses.system.capitalize()} | LST {chart.geometry.local_sidereal_time:.4f}°",
    ]
    if chart.flags:
        lines.append(f"Low confidence: {', '.join(chart.flags)}")
    if assessment is not None:
        lines.append(f"Quality: {assessment.rating} ({assessment.score:.2f})")
    return lines


def _render_return_chart(
    console,
    chart: ReturnChart,
    assessment: ChartAssessment | None = None,
    use_symbols: bool = True,
) -> None:
    """Shared rich rendering so we can also export to markdown and HTML."""
    from rich import box
    from rich.table import Table

    header_lines = _chart_header_lines(chart, assessment)
    console.print(f"[bold cyan]{header_lines[0]}[/]")
    for line in header_lines[1:]:
        style = "bold red" if line.startswith("Low confidence") else None
        console.print(line, style=style)
    console.print()

    houses_by_body = chart.angularity.houses
    positions_table = Table(title="Positions", box=box.ROUNDED, expand=False, padding=(0, 1))
    positions_table.add_column("Body", style="cyan", no_wrap=True)
    positions_table.add_column("Position", style="magenta", no_wrap=True, justify="right")
    positions_table.add_column("House", justify="center", no_wrap=True)
    positions_table.add_column("Motion", justify="right", no_wrap=True)
    for name, p in chart.positions.items():
        house = houses_by_body[name]
        motion = f"[bold red]R {abs(p.speed):.3f}°/d[/]" if p.retrograde else f"[dim]{p.speed:.3f}°/d[/]"
        positions_table.add_row(
            _body_label(name, use_symbols),
            format_longitude(p.longitude),
            f"[{_house_style(house)}]{house}[/]",
            motion,
        )
    console.print(positions_table)

    cusp_table = Table(title="House Cusps", box=box.SIMPLE, expand=False, padding=(0, 1))
    cusp_table.add_column("House", justify="center")
    cusp_table.add_column("Cusp", justify="right")
    cusp_table.add_column("House", justify="center")
    cusp_table.add_column("Cusp", justify="right")
    cusps = chart.houses.cusps
    for i in range(6):
        cusp_table.add_row(
            f"[{_house_style(i + 1)}]{i + 1}[/]",
            format_longitude(cusps[i]),
            f"[{_house_style(i + 7)}]{i + 7}[/]",
            format_longitude(cusps[i + 6]),
        )
    console.print(cusp_table)

    if chart.aspects:
        aspect_table = Table(title="Aspects", box=box.SIMPLE, expand=False, padding=(0, 1))
        aspect_table.add_column("Bodies", style="cyan", no_wrap=True)
        aspect_table.add_column("Aspect", no_wrap=True)
        aspect_table.add_column("Orb", justify="right")
        aspect_table.add_column("Phase")
        for a in chart.aspects:
            kind = f"[bold]{a.aspect}[/]" if a.exact else a.aspect
            if a.applying is None:
                phase = "[dim]-[/]"
            else:
                phase = "[bold green]applying[/]" if a.applying else "[dim]separating[/]"
            aspect_table.add_row(f"{a.body_a} - {a.body_b}", kind, f"{a.orb:.2f}°", phase)
        console.print(aspect_table)

    ang = chart.angularity
    console.print(
        f"Angular ({ang.angular_count}, strength {ang.strength:.2f}): "
        f"[bold white]{', '.join(ang.angular) or '-'}[/]"
    )
    console.print(f"Succedent: [cyan]{', '.join(ang.succedent) or '-'}[/]")
    console.print(f"Cadent: [dim]{', '.join(ang.cadent) or '-'}[/]")


def _render_combined(console, analysis: CombinedAnalysis) -> None:
    from rich import box
    from rich.table import Table

    console.print(f"[bold cyan]Combined analysis[/] harmony {analysis.harmony:.2f}")
    console.print(
        f"Timing: {analysis.timing.relationship} ({analysis.timing.days_apart:.2f} days) - "
        f"{analysis.timing.description}"
    )
    findings = Table(box=box.SIMPLE, expand=False, padding=(0, 1))
    findings.add_column("Type", no_wrap=True)
    findings.add_column("Kind", no_wrap=True)
    findings.add_column("Severity", no_wrap=True)
    findings.add_column("Description", overflow="fold", max_width=70)
    for label, color, items in (
        ("conflict", "red", analysis.conflicts),
        ("opportunity", "green", analysis.opportunities),
        ("challenge", "yellow", analysis.challenges),
    ):
        for item in items:
            findings.add_row(f"[{color}]{label}[/]", item.kind, item.severity or "-", item.description)
    if findings.row_count:
        console.print(findings)
    else:
        console.print("[dim]No conflicts, opportunities or challenges flagged.[/]")


def _render_all(
    console,
    charts: Sequence[ReturnChart],
    analysis: Optional[CombinedAnalysis],
    use_symbols: bool,
) -> None:
    for idx, chart in enumerate(charts):
        if idx:
            console.print()
        _render_return_chart(console, chart, assess_return_chart(chart), use_symbols=use_symbols)
    if analysis is not None:
        console.print()
        _render_combined(console, analysis)


def print_rich_report(charts: Sequence[ReturnChart], analysis: CombinedAnalysis | None = None) -> None:
    from rich.console import Console

    _render_all(Console(), charts, analysis, use_symbols=True)


def build_markdown_report(charts: Sequence[ReturnChart], analysis: CombinedAnalysis | None = None) -> str:
    """Return a markdown string mirroring the Rich console output."""

    from rich.console import Console
    from rich.theme import Theme

    console = Console(record=True, theme=Theme({}), width=110)
    # Avoid planet glyphs so all columns share a fixed width.
    _render_all(console, charts, analysis, use_symbols=False)
    text = console.export_text()
    return "```\n" + text.rstrip() + "\n```"


def export_rich_html(
    path: str | Path, charts: Sequence[ReturnChart], analysis: CombinedAnalysis | None = None
) -> None:
    """Export the rich report to an HTML file with a dark theme."""

    from rich.console import Console
    from rich.theme import Theme

    console = Console(record=True, theme=Theme({}), width=110)
    _render_all(console, charts, analysis, use_symbols=False)
    html = console.export_html(inline_styles=True)
    if "</head>" in html:
        html = html.replace("</head>", f"{DARK_CSS}\n</head>", 1)
    else:
        html = f"{DARK_CSS}\n{html}"
    Path(path).write_text(html, encoding="utf-8")


def series_markdown(charts: Iterable[ReturnChart]) -> str:
    """One markdown table row per return: moment, angular bodies and flags."""

    rows = [
        "| # | Return (UTC) | Asc | MC | Angular | Flags |",
        "|---|---|---|---|---|---|",
    ]
    for idx, chart in enumerate(charts, start=1):
        rows.append(
            f"| {idx} | {format_moment(chart.julian_day)} | {format_longitude(chart.houses.ascendant)} "
            f"| {format_longitude(chart.houses.midheaven)} | {', '.join(chart.angularity.angular) or '-'} "
            f"| {', '.join(chart.flags) or '-'} |"
        )
    return "\n".join(rows) + "\n"
