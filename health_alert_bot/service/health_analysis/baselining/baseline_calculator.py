"""
Baseline calculator for vital readings.

This module derives personal reference values from a user's demographic profile,
so that alert thresholds follow the person wearing the device rather than a
one-size-fits-all number.
"""

import datetime as dt
import math
from typing import Optional

from health_alert_bot.service.health_analysis.common.constants import BaselineDefaults, RestingHeartRateTable
from health_alert_bot.service.health_analysis.common.data_models import Baseline, Gender


def round_half_up(value: float) -> int:
    """Round halves up (66.5 -> 67), unlike the builtin round."""
    return int(math.floor(value + 0.5))


class BaselineCalculator:
    """
    Calculate personal baselines from age and gender.

    All methods are pure: the same inputs (and the same reference date) always
    yield the same output. Nothing is cached, so profile edits take effect on the
    next evaluation.
    """

    def calculate_age(self, birth_date: Optional[dt.date], today: Optional[dt.date] = None) -> Optional[int]:
        """
        Whole years between birth_date and today.

        Uses calendar month/day comparison, so the age increments exactly on the
        birthday.

        Args:
            birth_date: Date of birth, or None if unknown
            today: Reference date, defaults to the current date

        Returns:
            Age in years, or None if birth_date is None
        """
        if birth_date is None:
            return None
        today = today or dt.date.today()
        had_birthday = (today.month, today.day) >= (birth_date.month, birth_date.day)
        return today.year - birth_date.year - (0 if had_birthday else 1)

    def calculate_max_heart_rate(self, age: Optional[int]) -> int:
        if age is None:
            return BaselineDefaults.MAX_HEART_RATE
        return round_half_up(BaselineDefaults.MAX_HR_FORMULA_BASE - age)

    def calculate_resting_heart_rate(self, age: Optional[int], gender: Optional[Gender]) -> int:
        """
        Resting heart rate from the age band table, with the female offset applied.

        Args:
            age: Age in years, or None if unknown
            gender: Gender, or None if not provided

        Returns:
            Resting heart rate baseline in bpm
        """
        if age is None:
            return BaselineDefaults.RESTING_HEART_RATE

        resting_hr = BaselineDefaults.RESTING_HEART_RATE
        for upper_bound, band_hr in RestingHeartRateTable.AGE_BANDS:
            if upper_bound is None or age < upper_bound:
                resting_hr = band_hr
                break

        if gender == Gender.FEMALE:
            resting_hr += RestingHeartRateTable.FEMALE_OFFSET

        return resting_hr

    def calculate_high_heart_rate_threshold(self, max_heart_rate: int) -> int:
        return round_half_up(max_heart_rate * BaselineDefaults.HIGH_HR_FRACTION_OF_MAX)

    def compute_baseline(
        self,
        birth_date: Optional[dt.date],
        gender: Optional[Gender],
        today: Optional[dt.date] = None,
    ) -> Baseline:
        """
        Compute the full baseline for a profile.

        Args:
            birth_date: Date of birth, or None if unknown
            gender: Gender, or None if not provided
            today: Reference date, defaults to the current date

        Returns:
            Baseline with age, max/resting heart rate and the high heart rate threshold
        """
        age = self.calculate_age(birth_date, today)
        max_heart_rate = self.calculate_max_heart_rate(age)

        return Baseline(
            age=age,
            max_heart_rate=max_heart_rate,
            resting_heart_rate=self.calculate_resting_heart_rate(age, gender),
            high_heart_rate_threshold=self.calculate_high_heart_rate_threshold(max_heart_rate),
        )


def compute_baseline(
    birth_date: Optional[dt.date], gender: Optional[Gender], today: Optional[dt.date] = None
) -> Baseline:
    return BaselineCalculator().compute_baseline(birth_date, gender, today)
