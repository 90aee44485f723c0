"""
Constants for the health alert engine.

This module defines constants used throughout the evaluation engine, including:
- Fallback values when a user's age is unknown
- The age-banded resting heart rate table
- Rule thresholds for alert evaluation
"""


class BaselineDefaults:
    """Reference values used when no birth date is on file."""

    MAX_HEART_RATE = 180  # bpm
    RESTING_HEART_RATE = 70  # bpm

    MAX_HR_FORMULA_BASE = 220  # max HR = 220 - age
    HIGH_HR_FRACTION_OF_MAX = 0.85  # alert above 85% of max HR


class RestingHeartRateTable:
    """
    Resting heart rate baseline by age band.

    Each entry is (exclusive upper age bound, resting bpm); the final band has no
    upper bound. Females get a fixed offset on top of the band value.
    """

    AGE_BANDS = (
        (20, 60),
        (30, 65),
        (40, 70),
        (50, 72),
        (60, 75),
        (None, 78),
    )

    FEMALE_OFFSET = 3  # females typically have a slightly higher resting HR


class AlertThresholds:
    """Thresholds applied by the rule evaluator."""

    SUSTAINED_HR_READINGS = 2  # consecutive readings above threshold required

    LOW_SPO2_PCT = 94.0  # alert strictly below
    HIGH_TEMPERATURE_C = 37.5  # alert strictly above

    LOW_ACTIVITY_STEPS = 1000  # alert when 24h total is strictly below
    LOW_ACTIVITY_WINDOW_HOURS = 24


class StatsPeriods:
    """Lookback windows accepted by vital statistics queries."""

    HOURS_BACK = {
        "24h": 24,
        "7d": 24 * 7,
    }
    DEFAULT = "24h"
