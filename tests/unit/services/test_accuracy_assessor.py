"""
Accuracy Assessor Tests
=======================
Channel comparison, accuracy levels, overall accuracy and report notes.
"""

import dataclasses
from datetime import datetime, timezone

import pytest

from aquawatch.enums import AccuracyLevel
from aquawatch.services.application.accuracy_assessor import NO_SENSOR_DATA_NOTE, AccuracyAssessor


@pytest.fixture
def assessor():
    return AccuracyAssessor()


class TestAssessAccuracy:
    @pytest.mark.parametrize(
        "channel,difference,expected",
        [
            ("temperature", 0.5, AccuracyLevel.EXCELLENT),
            ("temperature", -0.51, AccuracyLevel.GOOD),
            ("temperature", 1.0, AccuracyLevel.GOOD),
            ("temperature", 2.0, AccuracyLevel.FAIR),
            ("temperature", 2.01, AccuracyLevel.POOR),
            ("ph", 0.1, AccuracyLevel.EXCELLENT),
            ("ph", 0.5, AccuracyLevel.FAIR),
            ("tds", 25.0, AccuracyLevel.GOOD),
            ("tds", -60.0, AccuracyLevel.POOR),
            ("do_level", 0.2, AccuracyLevel.EXCELLENT),
            ("do_level", 1.5, AccuracyLevel.POOR),
        ],
    )
    def test_boundaries_are_inclusive(self, channel, difference, expected):
        assert AccuracyAssessor.assess_accuracy(channel, difference) == expected

    def test_missing_difference_is_unavailable(self):
        assert AccuracyAssessor.assess_accuracy("ph", None) == AccuracyLevel.UNAVAILABLE


class TestCompareChannel:
    def test_temperature_within_excellent_band(self, assessor):
        result = assessor.compare_channel("temperature", 26.5, 26.2)

        assert result.difference == pytest.approx(0.3)
        assert result.percentage_difference == pytest.approx(0.3 / 26.2 * 100)
        assert result.accuracy_level == AccuracyLevel.EXCELLENT
        assert result.variance_flag is False

    def test_difference_is_manual_minus_sensor(self, assessor):
        result = assessor.compare_channel("tds", 300.0, 420.0)

        assert result.difference == -120.0
        assert result.accuracy_level == AccuracyLevel.POOR
        assert result.variance_flag is True

    @pytest.mark.parametrize("manual,sensor", [(None, 7.0), (7.0, None), (None, None)])
    def test_absent_side_is_unavailable(self, assessor, manual, sensor):
        result = assessor.compare_channel("ph", manual, sensor)

        assert result.accuracy_level == AccuracyLevel.UNAVAILABLE
        assert result.difference is None
        assert result.percentage_difference is None
        assert result.variance_flag is False
        assert result.manual_value == manual
        assert result.sensor_value == sensor

    def test_zero_sensor_value_is_present(self, assessor):
        result = assessor.compare_channel("do_level", 0.1, 0.0)

        assert result.accuracy_level == AccuracyLevel.EXCELLENT
        assert result.difference == pytest.approx(0.1)
        assert result.percentage_difference is None

    def test_variance_threshold_is_strict(self, assessor):
        assert assessor.compare_channel("temperature", 23.0, 20.0).variance_flag is False
        assert assessor.compare_channel("temperature", 23.5, 20.0).variance_flag is True


class TestOverallAccuracy:
    def test_no_available_levels(self):
        levels = [AccuracyLevel.UNAVAILABLE, AccuracyLevel.UNAVAILABLE]
        assert AccuracyAssessor.overall_accuracy(levels) == AccuracyLevel.UNAVAILABLE

    def test_unavailable_channels_are_ignored(self):
        levels = [AccuracyLevel.EXCELLENT, AccuracyLevel.UNAVAILABLE]
        assert AccuracyAssessor.overall_accuracy(levels) == AccuracyLevel.EXCELLENT

    @pytest.mark.parametrize(
        "levels,expected",
        [
            ([AccuracyLevel.EXCELLENT, AccuracyLevel.GOOD], AccuracyLevel.EXCELLENT),  # 3.5
            ([AccuracyLevel.EXCELLENT, AccuracyLevel.POOR], AccuracyLevel.GOOD),  # 2.5
            ([AccuracyLevel.GOOD, AccuracyLevel.POOR, AccuracyLevel.POOR], AccuracyLevel.FAIR),  # 1.67
            ([AccuracyLevel.FAIR, AccuracyLevel.POOR, AccuracyLevel.POOR], AccuracyLevel.POOR),  # 1.33
        ],
    )
    def test_ordinal_average_cutoffs(self, levels, expected):
        assert AccuracyAssessor.overall_accuracy(levels) == expected


class TestBuildReport:
    def test_report_for_matched_reading(self, assessor, make_manual, make_reading):
        manual = make_manual(temperature=26.5, ph=7.0, tds=300.0)
        sensor = make_reading(60, temperature=26.2, ph=7.9, tds=310.0, do_level=6.0)
        now = datetime(2024, 6, 1, 13, 0, tzinfo=timezone.utc)

        report = assessor.build_report(manual, sensor, 5, now=now)

        assert list(report.channels) == ["temperature", "ph", "tds", "do_level"]
        assert report["temperature"].accuracy_level == AccuracyLevel.EXCELLENT
        assert report["ph"].accuracy_level == AccuracyLevel.POOR
        assert report["ph"].variance_flag is True
        assert report["tds"].accuracy_level == AccuracyLevel.EXCELLENT
        assert report["do_level"].accuracy_level == AccuracyLevel.UNAVAILABLE
        # (4 + 1 + 4) / 3 = 3.0
        assert report.overall_accuracy == AccuracyLevel.GOOD
        assert report.accuracy_score == pytest.approx(80.0)
        assert report.variance_count == 1
        assert report.sensor_data_timestamp == sensor.timestamp
        assert report.comparison_timestamp == now
        assert report.notes == "Significant variance detected in: ph. Poor accuracy in: ph"

    def test_report_without_sensor(self, assessor, make_manual):
        report = assessor.build_report(make_manual(temperature=25.0), None, 5)

        assert report.sensor_matched is False
        assert report.overall_accuracy == AccuracyLevel.UNAVAILABLE
        assert report.accuracy_score == 0.0
        assert report.variance_count == 0
        assert report.notes == NO_SENSOR_DATA_NOTE
        assert all(not result.available for result in report.channels.values())

    def test_clean_report_has_no_notes(self, assessor, make_manual, make_reading):
        report = assessor.build_report(make_manual(ph=7.0), make_reading(ph=7.05), 5)

        assert report.notes is None
        assert report.accuracy_score == 100.0

    def test_to_dict_lists_every_channel(self, assessor, make_manual, make_reading):
        data = assessor.build_report(make_manual(ph=7.0), make_reading(ph=7.05), 5).to_dict()

        assert data["ph"]["accuracy_level"] == "EXCELLENT"
        assert data["temperature"]["accuracy_level"] == "UNAVAILABLE"
        assert data["time_window_minutes"] == 5

    def test_report_is_read_only(self, assessor, make_manual, make_reading):
        report = assessor.build_report(make_manual(ph=7.0), make_reading(ph=7.05), 5)

        with pytest.raises(dataclasses.FrozenInstanceError):
            report.accuracy_score = 0.0
        with pytest.raises(TypeError):
            report.channels["ph"] = report["temperature"]
        assert report["ph"].accuracy_level == AccuracyLevel.EXCELLENT
