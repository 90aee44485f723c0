"""
Unit tests for the baseline calculator.

These tests verify that personal baselines are derived deterministically from
age and gender, including the age band table and the unknown-age fallbacks.
"""

import datetime as dt

import pytest

from health_alert_bot.service.health_analysis.baselining.baseline_calculator import (
    BaselineCalculator,
    compute_baseline,
)
from health_alert_bot.service.health_analysis.common.data_models import Baseline, Gender

TODAY = dt.date(2026, 10, 19)


class TestBaselineCalculator:
    @pytest.fixture
    def calculator(self):
        return BaselineCalculator()

    def test_age_on_anniversary(self, calculator):
        assert calculator.calculate_age(dt.date(1996, 10, 19), TODAY) == 30

    def test_age_day_before_anniversary(self, calculator):
        assert calculator.calculate_age(dt.date(1996, 10, 20), TODAY) == 29

    def test_age_earlier_month(self, calculator):
        assert calculator.calculate_age(dt.date(1996, 11, 1), TODAY) == 29
        assert calculator.calculate_age(dt.date(1996, 9, 30), TODAY) == 30

    def test_age_leap_day_birthday(self, calculator):
        assert calculator.calculate_age(dt.date(2000, 2, 29), dt.date(2026, 2, 28)) == 25
        assert calculator.calculate_age(dt.date(2000, 2, 29), dt.date(2026, 3, 1)) == 26

    def test_age_unknown(self, calculator):
        assert calculator.calculate_age(None, TODAY) is None

    def test_max_heart_rate(self, calculator):
        assert calculator.calculate_max_heart_rate(30) == 190
        assert calculator.calculate_max_heart_rate(65) == 155
        assert calculator.calculate_max_heart_rate(None) == 180

    def test_max_heart_rate_newborn_uses_formula(self, calculator):
        assert calculator.calculate_max_heart_rate(0) == 220

    @pytest.mark.parametrize(
        "age,expected",
        [
            (15, 60),
            (19, 60),
            (20, 65),
            (29, 65),
            (30, 70),
            (39, 70),
            (40, 72),
            (49, 72),
            (50, 75),
            (59, 75),
            (60, 78),
            (90, 78),
        ],
    )
    def test_resting_heart_rate_bands(self, calculator, age, expected):
        assert calculator.calculate_resting_heart_rate(age, Gender.MALE) == expected
        assert calculator.calculate_resting_heart_rate(age, None) == expected
        assert calculator.calculate_resting_heart_rate(age, Gender.FEMALE) == expected + 3

    def test_resting_heart_rate_unknown_age_ignores_gender(self, calculator):
        assert calculator.calculate_resting_heart_rate(None, Gender.FEMALE) == 70
        assert calculator.calculate_resting_heart_rate(None, Gender.MALE) == 70

    def test_high_heart_rate_threshold_rounds_half_up(self, calculator):
        assert calculator.calculate_high_heart_rate_threshold(190) == 162  # 161.5
        assert calculator.calculate_high_heart_rate_threshold(170) == 145  # 144.5
        assert calculator.calculate_high_heart_rate_threshold(180) == 153

    def test_baseline_thirty_year_old_female(self, calculator):
        baseline = calculator.compute_baseline(dt.date(1996, 10, 19), Gender.FEMALE, TODAY)

        assert baseline == Baseline(
            age=30,
            max_heart_rate=190,
            resting_heart_rate=73,
            high_heart_rate_threshold=162,
        )

    @pytest.mark.parametrize("gender", [None, Gender.MALE, Gender.FEMALE, Gender.OTHER, Gender.PREFER_NOT_TO_SAY])
    def test_baseline_without_birth_date(self, calculator, gender):
        baseline = calculator.compute_baseline(None, gender, TODAY)

        assert baseline.age is None
        assert baseline.max_heart_rate == 180
        assert baseline.resting_heart_rate == 70
        assert baseline.high_heart_rate_threshold == 153

    def test_baseline_is_deterministic(self):
        first = compute_baseline(dt.date(1980, 5, 17), Gender.OTHER, TODAY)
        second = compute_baseline(dt.date(1980, 5, 17), Gender.OTHER, TODAY)

        assert first == second
        assert first.age == 46
        assert first.resting_heart_rate == 72

    def test_baseline_defaults_to_current_date(self):
        baseline = compute_baseline(dt.date(1990, 1, 1), Gender.MALE)

        assert baseline.age == BaselineCalculator().calculate_age(dt.date(1990, 1, 1), dt.date.today())
