"""Tests for water-quality classification."""

import pytest

from izsuwatch.metrics.quality import (
    QualityLimit,
    QualityStatus,
    classify_parameter,
    classify_report,
    classify_value,
    find_limit,
    worst_status,
)
from izsuwatch.models import AnalysisReport, QualityMeasurement

CHLORINE = QualityLimit(min=0.2, max=0.5)


class TestClassifyValue:
    """Tests for classify_value."""

    @pytest.mark.parametrize(
        "value,expected",
        [
            (0.3, QualityStatus.GOOD),
            (0.55, QualityStatus.DANGER),
            (0.19, QualityStatus.DANGER),
            (0.21, QualityStatus.WARNING),
            (0.46, QualityStatus.WARNING),
            (0.5, QualityStatus.WARNING),
            (0.2, QualityStatus.WARNING),
        ],
    )
    def test_range_rule(self, value, expected):
        """Both bounds: outside is danger, within 10% of a bound is warning."""
        assert classify_value(value, CHLORINE) is expected

    def test_warning_bounds_are_exclusive(self):
        """Values exactly at the warning bounds are good."""
        assert classify_value(0.2 * 1.1, CHLORINE) is QualityStatus.GOOD
        assert classify_value(0.5 * 0.9, CHLORINE) is QualityStatus.GOOD

    @pytest.mark.parametrize("value", ["0.22", "0.45", "0,22", 0.22, 0.45])
    def test_published_decimals_at_warning_bounds(self, value):
        """Decimal readings equal to a warning bound are good."""
        assert classify_value(value, CHLORINE) is QualityStatus.GOOD

    def test_min_only_bound_decimal(self):
        """A reading equal to 120% of the min is good."""
        assert classify_value("12", QualityLimit(min=10)) is QualityStatus.GOOD
        assert classify_value("11.99", QualityLimit(min=10)) is QualityStatus.WARNING

    def test_max_only_rule(self):
        """Max only: above max is danger, above 80% of max is warning."""
        nitrate = QualityLimit(max=50)
        assert classify_value(51, nitrate) is QualityStatus.DANGER
        assert classify_value(41, nitrate) is QualityStatus.WARNING
        assert classify_value(40, nitrate) is QualityStatus.GOOD

    def test_zero_limit(self):
        """Bacteria must be absent."""
        coli = QualityLimit(max=0)
        assert classify_value(0, coli) is QualityStatus.GOOD
        assert classify_value(1, coli) is QualityStatus.DANGER

    def test_min_only_rule(self):
        """Min only: below min is danger, below 120% of min is warning."""
        limit = QualityLimit(min=10)
        assert classify_value(9, limit) is QualityStatus.DANGER
        assert classify_value(11, limit) is QualityStatus.WARNING
        assert classify_value(13, limit) is QualityStatus.GOOD

    def test_numeric_strings(self):
        """Strings with a decimal point or comma are parsed."""
        assert classify_value("0.3", CHLORINE) is QualityStatus.GOOD
        assert classify_value("0,55", CHLORINE) is QualityStatus.DANGER

    def test_unknown(self):
        """No rule, an empty rule or a non-numeric value gives unknown."""
        assert classify_value(0.3, None) is QualityStatus.UNKNOWN
        assert classify_value(0.3, QualityLimit()) is QualityStatus.UNKNOWN
        assert classify_value("UYGUN", CHLORINE) is QualityStatus.UNKNOWN
        assert classify_value(None, CHLORINE) is QualityStatus.UNKNOWN


class TestFindLimit:
    """Tests for parameter lookup."""

    def test_exact_and_symbol(self):
        """Names and chemical symbols map to the same rule."""
        assert find_limit("Nitrat") == find_limit("NO3") == QualityLimit(max=50)

    def test_accent_and_case_insensitive(self):
        """Lookups ignore case and Turkish letters."""
        assert find_limit("BULANIKLIK") == QualityLimit(max=1)
        assert find_limit("serbest klor") == CHLORINE
        assert find_limit("ph") == QualityLimit(min=6.5, max=9.5)

    def test_unknown_parameter(self):
        """Parameters without a rule give None."""
        assert find_limit("Radon") is None
        assert classify_parameter("Radon", 5) is QualityStatus.UNKNOWN

    def test_custom_table(self):
        """A custom limit table replaces the defaults."""
        assert classify_parameter("pH", 12, {"pH": QualityLimit(max=14)}) is QualityStatus.WARNING


class TestReports:
    """Tests for report classification."""

    def test_classify_report(self):
        """Every measurement gets a status and the worst one wins."""
        report = AnalysisReport(
            location="Konak Meydan",
            district="Konak",
            date="2026-10-14",
            measurements=[
                QualityMeasurement("pH", "7,4"),
                QualityMeasurement("Serbest Klor", "0.21"),
                QualityMeasurement("Koku", "UYGUN"),
            ],
        )
        statuses = classify_report(report)
        assert statuses == {
            "pH": QualityStatus.GOOD,
            "Serbest Klor": QualityStatus.WARNING,
            "Koku": QualityStatus.UNKNOWN,
        }
        assert worst_status(statuses) is QualityStatus.WARNING

    def test_worst_status_empty(self):
        """An empty report is unknown."""
        assert worst_status({}) is QualityStatus.UNKNOWN
        assert worst_status({"E.Coli": QualityStatus.DANGER, "pH": QualityStatus.GOOD}) is (
            QualityStatus.DANGER
        )
