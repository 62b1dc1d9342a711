"""Convergence configuration loaded from environment variables.

All configuration values have defaults matching the control plane's
documented timings; environment variables override them per deployment.

Fail-fast validation:
    ``from_env()`` raises ``ConfigValidationError`` if any value is out
    of its valid range or a duration cannot be parsed.  Bad configuration
    surfaces at startup rather than in the middle of a multi-minute wait.
"""

from __future__ import annotations

import math
import os
import re
from collections.abc import Hashable, Iterable
from dataclasses import dataclass

from infra_convergence.core.constants import (
    DEFAULT_DRAIN_TIMEOUT_FACTOR,
    DEFAULT_INITIAL_DELAY_SECONDS,
    DEFAULT_MIN_INTERVAL_SECONDS,
    DEFAULT_RETRY_AS_PENDING_CODES,
    DEFAULT_STOP_TIMEOUT_SECONDS,
    DEFAULT_TIMEOUT_SECONDS,
    DEFAULT_WAIT_FOR_CAPACITY_TIMEOUT,
    ENV_DEFAULT_TIMEOUT,
    ENV_DRAIN_TIMEOUT_FACTOR,
    ENV_INITIAL_DELAY,
    ENV_MIN_INTERVAL,
    ENV_RETRY_AS_PENDING_CODES,
    ENV_STOP_TIMEOUT,
    ENV_WAIT_FOR_CAPACITY_TIMEOUT,
)
from infra_convergence.core.exceptions import ValidationError
from infra_convergence.models.polling import PollSpec, PollTiming


class ConfigValidationError(ValidationError):
    """Raised when configuration values are out of valid range.

    Attributes:
        key: The configuration key that failed validation.
        value: The invalid value.
    """

    default_stage = "config"
    default_code = "CONFIG_VALIDATION_FAILED"

    def __init__(self, key: str, value: object, message: str) -> None:
        self.key = key
        self.value = value
        super().__init__(f"Invalid configuration {key}={value!r}: {message}")


# ---------------------------------------------------------------------------
# Durations
# ---------------------------------------------------------------------------

_UNIT_SECONDS = {
    "ns": 1e-9,
    "us": 1e-6,
    "\u00b5s": 1e-6,  # micro sign
    "\u03bcs": 1e-6,  # Greek small letter mu
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}

_DURATION_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|\u00b5s|\u03bcs|ms|s|m|h)")


def parse_duration(text: str) -> float:
    """Parse a Go-style duration string into seconds.

    Accepts a sequence of decimal numbers with unit suffixes, e.g.
    ``"90s"``, ``"10m"``, ``"1h30m"``, ``"1.5h"``, ``"500ms"``.  The bare
    string ``"0"`` means zero.

    Raises:
        ValueError: If *text* is empty, negative or malformed.
    """
    raw = text.strip()
    if raw == "0":
        return 0.0
    if not raw:
        msg = "duration must not be empty"
        raise ValueError(msg)

    total = 0.0
    pos = 0
    for match in _DURATION_PART.finditer(raw):
        if match.start() != pos:
            break
        total += float(match.group(1)) * _UNIT_SECONDS[match.group(2)]
        pos = match.end()

    if pos != len(raw):
        msg = f"invalid duration {text!r}"
        raise ValueError(msg)
    return total


# ---------------------------------------------------------------------------
# Configuration
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ConvergenceConfig:
    """Immutable convergence timing configuration.

    Loaded once at startup and passed to lifecycle handlers.

    Attributes:
        initial_delay_s: Sleep before the first refresh of every wait.
        min_interval_s: Sleep between refreshes while pending.
        default_timeout_s: Budget for long operations (deletion).
        stop_timeout_s: Budget for stopping one server instance.
        drain_timeout_factor: Multiplier applied to ``stop_timeout_s`` for drains.
        wait_for_capacity_timeout: Capacity wait budget as a duration string;
            ``"0"`` disables the capacity wait.
        retry_as_pending_codes: Control-plane return codes that a delete
            may fail with while dependents are still being released.
    """

    initial_delay_s: float = DEFAULT_INITIAL_DELAY_SECONDS
    min_interval_s: float = DEFAULT_MIN_INTERVAL_SECONDS
    default_timeout_s: float = DEFAULT_TIMEOUT_SECONDS
    stop_timeout_s: float = DEFAULT_STOP_TIMEOUT_SECONDS
    drain_timeout_factor: int = DEFAULT_DRAIN_TIMEOUT_FACTOR
    wait_for_capacity_timeout: str = DEFAULT_WAIT_FOR_CAPACITY_TIMEOUT
    retry_as_pending_codes: tuple[str, ...] = DEFAULT_RETRY_AS_PENDING_CODES

    @classmethod
    def from_env(cls) -> ConvergenceConfig:
        """Load and validate configuration from environment variables.

        Raises:
            ConfigValidationError: If a value is out of range or a
                duration string cannot be parsed.
            ValueError: If a numeric environment variable cannot be
                parsed (e.g. ``CONVERGENCE_MIN_INTERVAL_S=abc``).
        """
        codes_raw = os.getenv(ENV_RETRY_AS_PENDING_CODES)
        codes = (
            tuple(code.strip() for code in codes_raw.split(",") if code.strip())
            if codes_raw is not None
            else DEFAULT_RETRY_AS_PENDING_CODES
        )
        config = cls(
            initial_delay_s=float(os.getenv(ENV_INITIAL_DELAY, str(DEFAULT_INITIAL_DELAY_SECONDS))),
            min_interval_s=float(os.getenv(ENV_MIN_INTERVAL, str(DEFAULT_MIN_INTERVAL_SECONDS))),
            default_timeout_s=float(os.getenv(ENV_DEFAULT_TIMEOUT, str(DEFAULT_TIMEOUT_SECONDS))),
            stop_timeout_s=float(os.getenv(ENV_STOP_TIMEOUT, str(DEFAULT_STOP_TIMEOUT_SECONDS))),
            drain_timeout_factor=int(
                os.getenv(ENV_DRAIN_TIMEOUT_FACTOR, str(DEFAULT_DRAIN_TIMEOUT_FACTOR))
            ),
            wait_for_capacity_timeout=os.getenv(
                ENV_WAIT_FOR_CAPACITY_TIMEOUT, DEFAULT_WAIT_FOR_CAPACITY_TIMEOUT
            ),
            retry_as_pending_codes=codes,
        )
        _validate(config)
        return config

    @property
    def drain_timeout_s(self) -> float:
        """Budget for waiting until a group has no attached members."""
        return self.stop_timeout_s * self.drain_timeout_factor

    @property
    def delete_timeout_s(self) -> float:
        """Budget for retrying a delete until the control plane accepts it."""
        return self.default_timeout_s

    def capacity_timeout_s(self, override: str | None = None) -> float:
        """Parse the capacity wait budget, preferring *override* when given.

        Raises:
            ConfigValidationError: If the duration cannot be parsed.
        """
        raw = override if override is not None else self.wait_for_capacity_timeout
        try:
            return parse_duration(raw)
        except ValueError as exc:
            raise ConfigValidationError(ENV_WAIT_FOR_CAPACITY_TIMEOUT, raw, str(exc)) from exc

    def timing(self, timeout_s: float) -> PollTiming:
        """Build a ``PollTiming`` using the configured delay and interval."""
        return PollTiming(
            initial_delay_s=self.initial_delay_s,
            min_interval_s=self.min_interval_s,
            timeout_s=timeout_s,
        )

    def poll_spec(
        self,
        pending: Iterable[Hashable],
        target: Iterable[Hashable],
        timeout_s: float,
    ) -> PollSpec:
        """Build a ``PollSpec`` using the configured delay and interval."""
        return self.timing(timeout_s).spec(pending, target)


def _validate(config: ConvergenceConfig) -> None:
    """Validate configuration ranges.  Raises ``ConfigValidationError``."""
    if not _is_finite_at_least(config.initial_delay_s, 0):
        raise ConfigValidationError(
            ENV_INITIAL_DELAY,
            config.initial_delay_s,
            "must be a finite number >= 0 (seconds)",
        )

    if not _is_finite_positive(config.min_interval_s):
        raise ConfigValidationError(
            ENV_MIN_INTERVAL,
            config.min_interval_s,
            "must be a finite number > 0 (seconds)",
        )

    if not _is_finite_positive(config.default_timeout_s):
        raise ConfigValidationError(
            ENV_DEFAULT_TIMEOUT,
            config.default_timeout_s,
            "must be a finite number > 0 (seconds)",
        )

    if not _is_finite_positive(config.stop_timeout_s):
        raise ConfigValidationError(
            ENV_STOP_TIMEOUT,
            config.stop_timeout_s,
            "must be a finite number > 0 (seconds)",
        )

    if config.drain_timeout_factor < 1:
        raise ConfigValidationError(
            ENV_DRAIN_TIMEOUT_FACTOR,
            config.drain_timeout_factor,
            "must be >= 1",
        )

    config.capacity_timeout_s()


def _is_finite_positive(value: float) -> bool:
    return math.isfinite(value) and value > 0


def _is_finite_at_least(value: float, lo: float) -> bool:
    return math.isfinite(value) and value >= lo
