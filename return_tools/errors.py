"""Exception hierarchy shared by the solver, deriver and orchestrator."""

from __future__ import annotations


class ReturnToolsError(Exception):
    """Base class for every error raised by return_tools."""


class ValidationError(ReturnToolsError, ValueError):
    """Malformed input detected before any search or derivation starts."""


class ConfigurationError(ReturnToolsError, RuntimeError):
    """The ephemeris backend is not usable as configured."""


class OracleError(ReturnToolsError):
    """The position oracle failed; the original exception is kept as ``cause``."""

    def __init__(self, message: str, cause: BaseException | None = None) -> None:
        super().__init__(message)
        self.cause = cause


class ConvergenceError(ReturnToolsError):
    """
    The return-time search gave up without reaching tolerance.

    ``last_julian_day`` and ``residual`` describe the best candidate seen when
    the search stopped; ``reason`` is one of ``"max_iterations"``,
    ``"stagnation"`` or ``"no_root_in_window"``.
    """

    def __init__(
        self,
        message: str,
        *,
        body: str,
        last_julian_day: float,
        residual: float,
        iterations: int,
        reason: str,
    ) -> None:
        super().__init__(message)
        self.body = body
        self.last_julian_day = last_julian_day
        self.residual = residual
        self.iterations = iterations
        self.reason = reason


class SearchCancelled(ReturnToolsError):
    """The caller signalled cancellation while a search was in progress."""

    def __init__(self, message: str, *, last_julian_day: float | None = None, iterations: int = 0) -> None:
        super().__init__(message)
        self.last_julian_day = last_julian_day
        self.iterations = iterations


class ChartDerivationError(ReturnToolsError):
    """Geometry derivation failed after a return moment had been found."""

    def __init__(self, message: str, cause: BaseException | None = None) -> None:
        super().__init__(message)
        self.cause = cause
