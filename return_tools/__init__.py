"""Return-time solving and return-chart geometry on top of Swiss Ephemeris."""

from .astro_engine import (
    PositionOracle,
    SwissEphemerisOracle,
    datetime_from_julian_day,
    julian_day_from_datetime,
)
from .errors import (
    ChartDerivationError,
    ConfigurationError,
    ConvergenceError,
    OracleError,
    ReturnToolsError,
    SearchCancelled,
    ValidationError,
)
from .models import BirthRecord, BodyPosition, HouseCusps, Location, ReturnChart, ReturnSolution
from .orchestrator import ReturnChartOrchestrator
from .solver import solve, solve_async

__all__ = [
    "BirthRecord",
    "BodyPosition",
    "HouseCusps",
    "Location",
    "ReturnChart",
    "ReturnSolution",
    "PositionOracle",
    "SwissEphemerisOracle",
    "ReturnChartOrchestrator",
    "solve",
    "solve_async",
    "datetime_from_julian_day",
    "julian_day_from_datetime",
    "ReturnToolsError",
    "ValidationError",
    "ConfigurationError",
    "ConvergenceError",
    "OracleError",
    "SearchCancelled",
    "ChartDerivationError",
]
