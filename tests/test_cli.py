from datetime import datetime, timezone

import pytest

from return_tools.cli import main, parse_dt, resolve_output_path
from return_tools.errors import ValidationError

BIRTH_ARGS = ["--birth", "1990-06-15T14:30Z", "--lat", "40.7128", "--lon", "-74.006", "--backend", "moseph"]


@pytest.mark.parametrize(
    "value, expected",
    [
        ("1990-06-15T14:30Z", datetime(1990, 6, 15, 14, 30, tzinfo=timezone.utc)),
        ("1990-06-15T10:30-04:00", datetime(1990, 6, 15, 14, 30, tzinfo=timezone.utc)),
        ("1990-06-15", datetime(1990, 6, 15, tzinfo=timezone.utc)),
        ("1990-06-15 14:30:00", datetime(1990, 6, 15, 14, 30, tzinfo=timezone.utc)),
    ],
)
def test_parse_dt(value, expected) -> None:
    assert parse_dt(value) == expected


def test_parse_dt_rejects_garbage() -> None:
    with pytest.raises(ValidationError):
        parse_dt("next tuesday")


def test_bare_output_names_go_to_outputs(tmp_path, monkeypatch) -> None:
    monkeypatch.chdir(tmp_path)
    path = resolve_output_path("report.md")

    assert path.parts == ("outputs", "report.md")
    assert (tmp_path / "outputs").is_dir()
    assert resolve_output_path(None) is None


def test_solar_command_writes_markdown(tmp_path) -> None:
    report = tmp_path / "solar.md"
    code = main(["solar", *BIRTH_ARGS, "--year", "2024", "--md", str(report)])

    assert code == 0
    text = report.read_text(encoding="utf-8")
    assert text.startswith("```")
    assert "Solar Return" in text


def test_invalid_latitude_reports_error(capsys) -> None:
    args = ["solar", "--birth", "1990-06-15T14:30Z", "--lat", "95", "--lon", "0", "--backend", "moseph"]

    assert main(args) == 1
    assert capsys.readouterr().err.startswith("Error:")


def test_cast_location_needs_both_coordinates(capsys) -> None:
    assert main(["lunar", *BIRTH_ARGS, "--cast-lat", "51.5"]) == 1
    assert "--cast-lon" in capsys.readouterr().err
