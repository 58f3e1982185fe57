"""
Bikepark Reports - Series Assembly Tests

Tests processor/series_assembler.py:
- period_key() agrees with the SQL bucket keys
- x-axis label maps per grouping
- Row to series conversion with zero fill
- Series naming
"""

from datetime import datetime
from decimal import Decimal

import pytest

from processor.series_assembler import (
    category_names,
    convert_to_timegroup_series,
    get_label_map_for_x_axis,
    get_x_axis_title,
    period_key,
)


class TestPeriodKey:

    @pytest.mark.parametrize("grouping,value,expected", [
        ("per_year", datetime(2024, 6, 1), "2024"),
        ("per_quarter", datetime(2024, 5, 1), "2024-2"),
        ("per_month", datetime(2024, 11, 3), "2024-11"),
        ("per_week", datetime(2024, 1, 1), "2024-01"),
        ("per_week", datetime(2021, 1, 1), "2020-53"),
        ("per_weekday", datetime(2024, 1, 1), "0"),
        ("per_weekday", datetime(2024, 1, 7), "6"),
        ("per_day", datetime(2024, 1, 1), "2024-2"),
        ("per_day", datetime(2024, 12, 31), "2024-367"),
        ("per_hour", datetime(2024, 1, 1, 7, 45), "7"),
        ("per_hour_time", datetime(2024, 1, 1, 13, 59), "2024-01-01 13:00"),
        ("per_quarter_hour", datetime(2024, 1, 1, 13, 47), "2024-01-01 13:45"),
        ("per_quarter_hour", datetime(2024, 1, 1, 9, 5), "2024-01-01 09:00"),
    ])
    def test_keys(self, grouping, value, expected):
        assert period_key(grouping, value) == expected


class TestLabelMap:
    """Test get_label_map_for_x_axis()."""

    def test_per_hour_is_fixed(self):
        labels = get_label_map_for_x_axis("per_hour", datetime(2024, 1, 1), datetime(2024, 1, 2))

        assert list(labels) == [str(h) for h in range(24)]
        assert labels["0"] == "0:00"
        assert labels["23"] == "23:00"

    def test_per_weekday_is_fixed(self):
        labels = get_label_map_for_x_axis("per_weekday", datetime(2024, 1, 1), datetime(2024, 1, 2))

        assert list(labels.values()) == ["ma", "di", "wo", "do", "vr", "za", "zo"]

    def test_per_bucket(self):
        labels = get_label_map_for_x_axis("per_bucket", datetime(2024, 1, 1), datetime(2024, 1, 2))

        assert list(labels) == [str(i) for i in range(1, 11)]
        assert labels["1"] == "<30m"
        assert labels["10"] == ">14d"

    def test_per_day_end_is_exclusive(self):
        labels = get_label_map_for_x_axis("per_day", datetime(2024, 1, 1), datetime(2024, 1, 3))

        assert list(labels) == ["2024-2", "2024-3"]
        assert labels["2024-2"] == "jan-1"

    def test_per_day_single_day_range(self):
        labels = get_label_map_for_x_axis("per_day", datetime(2024, 1, 1), datetime(2024, 1, 1))

        assert list(labels) == ["2024-2"]

    def test_per_month_same_year(self):
        labels = get_label_map_for_x_axis("per_month", datetime(2024, 1, 15), datetime(2024, 3, 10))

        assert list(labels.items()) == [("2024-1", "jan"), ("2024-2", "feb"), ("2024-3", "mrt")]

    def test_per_month_across_years(self):
        labels = get_label_map_for_x_axis("per_month", datetime(2023, 12, 1), datetime(2024, 1, 15))

        assert list(labels.values()) == ["dec-2023", "jan-2024"]

    def test_per_quarter(self):
        labels = get_label_map_for_x_axis("per_quarter", datetime(2023, 11, 1), datetime(2024, 5, 1))

        assert list(labels) == ["2023-4", "2024-1", "2024-2"]

    def test_per_week_starts_on_monday(self):
        labels = get_label_map_for_x_axis("per_week", datetime(2024, 1, 3), datetime(2024, 1, 15, 12))

        assert list(labels) == ["2024-01", "2024-02", "2024-03"]
        assert labels["2024-01"] == "2024-W01"

    def test_per_year(self):
        labels = get_label_map_for_x_axis("per_year", datetime(2022, 5, 1), datetime(2024, 1, 1))

        assert list(labels) == ["2022", "2023", "2024"]

    def test_per_quarter_hour(self):
        labels = get_label_map_for_x_axis("per_quarter_hour", datetime(2024, 1, 1), datetime(2024, 1, 1, 1))

        assert list(labels) == [
            "2024-01-01 00:00", "2024-01-01 00:15", "2024-01-01 00:30", "2024-01-01 00:45"
        ]
        assert labels["2024-01-01 00:45"] == "00:45"

    def test_per_hour_time(self):
        labels = get_label_map_for_x_axis("per_hour_time", datetime(2024, 1, 1, 22), datetime(2024, 1, 2, 1))

        assert list(labels) == ["2024-01-01 22:00", "2024-01-01 23:00", "2024-01-02 00:00"]
        assert labels["2024-01-02 00:00"] == "02-01 00:00"

    def test_unknown_grouping(self):
        assert get_label_map_for_x_axis("per_decade", datetime(2024, 1, 1), datetime(2024, 1, 2)) is None


class TestConvertToTimegroupSeries:

    def test_values_aligned_and_zero_filled(self):
        rows = [
            {"CATEGORY": "A_capacity", "TIMEGROUP": "1", "value": Decimal("50")},
            {"CATEGORY": "A_occupation", "TIMEGROUP": "2", "value": 12},
        ]
        names = {"A_capacity": "A - Capaciteit", "A_occupation": "A - Bezetting"}

        series = convert_to_timegroup_series(rows, ["0", "1", "2"], names, ["A_capacity", "A_occupation"])

        assert [s.name for s in series] == ["A - Capaciteit", "A - Bezetting"]
        assert series[0].data == [0, 50.0, 0]
        assert series[1].data == [0, 0, 12]

    def test_expected_category_without_rows_gets_zeros(self):
        series = convert_to_timegroup_series([], ["0", "1"], {"A": "Stalling A"}, ["A"])

        assert len(series) == 1
        assert series[0].data == [0, 0]

    def test_rows_outside_axis_are_dropped(self):
        rows = [{"CATEGORY": "A", "TIMEGROUP": "99", "value": 5}]

        series = convert_to_timegroup_series(rows, ["0"], {}, ["A"])

        assert series[0].data == [0]

    def test_unexpected_category_follows_expected(self):
        rows = [
            {"CATEGORY": "Z", "TIMEGROUP": "0", "value": 1},
            {"CATEGORY": "A", "TIMEGROUP": "0", "value": 2},
        ]

        series = convert_to_timegroup_series(rows, ["0"], {}, ["A"])

        assert [s.name for s in series] == ["A", "Z"]

    def test_numeric_timegroup_matches_string_key(self):
        rows = [{"CATEGORY": "A", "TIMEGROUP": 7, "value": None}]

        series = convert_to_timegroup_series(rows, ["7"], {}, ["A"])

        assert series[0].data == [0]


class TestNaming:

    def test_absolute_occupancy_names(self):
        names = category_names("absolute_bezetting", ["A", "B"], {"A": "Stalling A"})

        assert names == {
            "A_capacity": "Stalling A - Capaciteit",
            "A_occupation": "Stalling A - Bezetting",
            "B_capacity": "B - Capaciteit",
            "B_occupation": "B - Bezetting",
        }

    def test_single_series_names(self):
        assert category_names("inkomsten", ["A"], {"A": "Stalling A"}) == {"A": "Stalling A"}

    def test_total_legend(self):
        assert category_names("inkomsten", ["A", "B"], {}, "none") == {"0": "Totaal"}

    def test_weekday_legend_starts_on_monday(self):
        names = category_names("bezetting", ["A"], {}, "per_weekday")

        assert list(names) == ["0", "1", "2", "3", "4", "5", "6"]
        assert names["0"] == "Maandag"
        assert names["6"] == "Zondag"

    def test_client_type_legend(self):
        assert category_names("stallingsduur", ["A"], {}, "per_type_klant") == {"1": "Dagstaller", "2": "Abonnement"}

    def test_section_legend_uses_section_titles(self):
        names = category_names("bezetting", ["A"], {"A": "Stalling A"}, "per_section",
                               {"A-1": "Stalling A", "A-2": "Stalling A - Kelder"})

        assert list(names.items()) == [("A-1", "Stalling A"), ("A-2", "Stalling A - Kelder")]

    def test_axis_titles(self):
        assert get_x_axis_title("per_month") == "Maand"
        assert get_x_axis_title("nonsense") == "onbekend"
