"""
Domain Model Tests
==================
Derived growth fields, manual measurement invariants and the integrity
report built from raw anomaly counts.
"""

from datetime import date, datetime, timezone

import pytest

from aquawatch.domain import (
    DataIntegrityReport,
    GrowthRecord,
    IntegrityCounts,
    ManualMeasurement,
    calculate_biomass,
    calculate_condition,
)
from aquawatch.domain.exceptions import ValidationError
from aquawatch.enums import ConditionCategory, IssueSeverity


class TestGrowthRecord:
    def test_derived_fields(self):
        record = GrowthRecord(id=1, device_id="pond-1", measurement_date=date(2024, 5, 1), length=20.0, weight=100.0)

        assert record.biomass == 2.0
        # K = 100 / 8000 * 100 = 1.25
        assert record.condition == ConditionCategory.GOOD

    def test_missing_side_leaves_derived_fields_empty(self):
        record = GrowthRecord(id=1, device_id="pond-1", measurement_date=date(2024, 5, 1), weight=100.0)

        assert record.biomass is None
        assert record.condition is None

    def test_with_measurements_recomputes(self):
        record = GrowthRecord(id=1, device_id="pond-1", measurement_date=date(2024, 5, 1), length=20.0, weight=100.0)

        updated = record.with_measurements(weight=300.0)

        assert updated.length == 20.0
        assert updated.biomass == 6.0
        assert updated.condition == ConditionCategory.EXCELLENT
        assert record.biomass == 2.0

    @pytest.mark.parametrize(
        "length,weight,expected",
        [
            (10.0, 5.0, ConditionCategory.POOR),
            (10.0, 15.0, ConditionCategory.GOOD),
            (10.0, 30.0, ConditionCategory.EXCELLENT),
            (0.0, 30.0, None),
        ],
    )
    def test_condition_categories(self, length, weight, expected):
        assert calculate_condition(length, weight) == expected

    def test_biomass_is_rounded(self):
        assert calculate_biomass(12.345, 67.891) == 0.838

    @pytest.mark.parametrize("length,weight", [(0.0, 10.0), (10.0, 0.0), (-1.0, 10.0)])
    def test_non_positive_side_leaves_derived_fields_empty(self, length, weight):
        record = GrowthRecord(id=1, device_id="pond-1", measurement_date=date(2024, 5, 1), length=length, weight=weight)

        assert record.biomass is None
        assert record.condition is None


class TestManualMeasurement:
    def test_requires_a_channel(self):
        with pytest.raises(ValidationError):
            ManualMeasurement(
                id="m-1",
                device_id="pond-1",
                recorded_by="operator",
                timestamp=datetime(2024, 6, 1, tzinfo=timezone.utc),
            )

    def test_notes_are_replaced_on_a_copy(self):
        measurement = ManualMeasurement(
            id="m-1",
            device_id="pond-1",
            recorded_by="operator",
            timestamp=datetime(2024, 6, 1, tzinfo=timezone.utc),
            ph=7.0,
        )

        updated = measurement.with_notes("recalibrated meter")

        assert updated.notes == "recalibrated meter"
        assert measurement.notes is None
        assert updated.ph == 7.0


class TestDataIntegrityReport:
    def test_clean_data(self):
        report = DataIntegrityReport.from_counts(IntegrityCounts(total_records=10))

        assert report.valid_records == 10
        assert report.invalid_records == 0
        assert report.issues == []
        assert report.recommendations == []
        assert report.invalid_ratio == 0.0

    def test_issues_and_recommendations(self):
        counts = IntegrityCounts(total_records=20, missing_weight=2, invalid_length=1, duplicates=4)

        report = DataIntegrityReport.from_counts(counts)

        assert [(i.type, i.count, i.severity) for i in report.issues] == [
            ("missing_weight", 2, IssueSeverity.MEDIUM),
            ("invalid_length", 1, IssueSeverity.HIGH),
            ("duplicates", 4, IssueSeverity.MEDIUM),
        ]
        assert report.issues[0].description == "2 records missing weight measurements"
        assert report.valid_records == 13
        assert report.invalid_records == 7
        assert report.invalid_ratio == pytest.approx(0.35)
        assert len(report.recommendations) == 4
        assert report.recommendations[-1] == "Remove duplicate records and implement unique constraints"

    def test_empty_store(self):
        assert DataIntegrityReport.from_counts(IntegrityCounts()).invalid_ratio == 0.0

    def test_overlapping_issue_counts_never_go_negative(self):
        # Two records missing both sides, and both members of one duplicate pair.
        counts = IntegrityCounts(total_records=2, missing_length=2, missing_weight=2, duplicates=2)

        report = DataIntegrityReport.from_counts(counts)

        assert report.valid_records == 0
        assert report.invalid_records == 2
        assert report.invalid_ratio == 1.0
