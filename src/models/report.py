"""
Bikepark Reports - Report Request and Response Models
"""

import enum
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from models.cache import parse_bool
from utils.timezone import parse_iso_datetime, parse_day_begins_at


class ReportType(str, enum.Enum):
    """Supported report types"""
    TRANSACTIONS = "transacties_voltooid"
    REVENUE = "inkomsten"
    OCCUPANCY = "bezetting"
    ABSOLUTE_OCCUPANCY = "absolute_bezetting"
    PARKING_DURATION = "stallingsduur"


class ReportGrouping(str, enum.Enum):
    """Time bucket sizes for the report x-axis"""
    PER_QUARTER_HOUR = "per_quarter_hour"
    PER_HOUR = "per_hour"
    PER_HOUR_TIME = "per_hour_time"
    PER_DAY = "per_day"
    PER_WEEKDAY = "per_weekday"
    PER_WEEK = "per_week"
    PER_MONTH = "per_month"
    PER_QUARTER = "per_quarter"
    PER_YEAR = "per_year"
    PER_BUCKET = "per_bucket"


class ReportCategories(str, enum.Enum):
    """What one series stands for (the chart legend)"""
    NONE = "none"
    PER_STALLING = "per_stalling"
    PER_WEEKDAY = "per_weekday"
    PER_SECTION = "per_section"
    PER_TYPE_KLANT = "per_type_klant"


REPORT_TITLES = {
    ReportType.TRANSACTIONS: "Transacties per periode",
    ReportType.REVENUE: "Inkomsten per periode",
    ReportType.OCCUPANCY: "Gemiddelde procentuele bezetting",
    ReportType.ABSOLUTE_OCCUPANCY: "Absolute bezetting",
    ReportType.PARKING_DURATION: "Stallingsduur",
}


class ReportValidationError(ValueError):
    """Raised when a report request is rejected before any SQL is run."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.details = details or {}


@dataclass
class ReportParams:
    """
    Report request.

    report_type, report_grouping and report_categories are kept as plain
    strings so builders can see (and reject) unsupported values themselves.
    """
    report_type: str
    report_grouping: str
    bikepark_ids: List[str] = field(default_factory=list)
    start_dt: Optional[datetime] = None
    end_dt: Optional[datetime] = None
    fillups: bool = False
    source: Optional[str] = None
    day_begins_at_minutes: Optional[int] = None
    report_categories: str = ReportCategories.PER_STALLING.value

    @classmethod
    def from_dict(cls, data: Dict[str, Any], report_type: Optional[str] = None) -> 'ReportParams':
        """
        Build from the reports API payload (camelCase keys).

        Args:
            data: reportParams object
            report_type: Overrides data['reportType'] (taken from the URL)

        Raises:
            ReportValidationError: On malformed fields
        """
        if not isinstance(data, dict):
            raise ReportValidationError("reportParams must be an object")

        ids = data.get('bikeparkIDs') or []
        if not isinstance(ids, list) or not all(isinstance(i, str) for i in ids):
            raise ReportValidationError("bikeparkIDs must be a list of strings")

        try:
            start_dt = parse_iso_datetime(data.get('startDT'))
            end_dt = parse_iso_datetime(data.get('endDT'))
            day_begins_at = data.get('dayBeginsAt')
            offset = parse_day_begins_at(day_begins_at) if day_begins_at not in (None, '') else None
        except (TypeError, ValueError) as e:
            raise ReportValidationError(f"Invalid date parameter: {e}")

        source = data.get('source') or None
        if source is not None and not isinstance(source, str):
            raise ReportValidationError("source must be a string")

        categories = data.get('reportCategories') or ReportCategories.PER_STALLING.value
        if not isinstance(categories, str):
            raise ReportValidationError("reportCategories must be a string")

        return cls(
            report_type=report_type or data.get('reportType') or '',
            report_grouping=data.get('reportGrouping') or '',
            bikepark_ids=ids,
            start_dt=start_dt,
            end_dt=end_dt,
            fillups=parse_bool(data.get('fillups'), 'fillups', ReportValidationError),
            source=source,
            day_begins_at_minutes=offset,
            report_categories=categories,
        )

    def cache_key_params(self) -> Dict[str, Any]:
        return {
            "report_type": self.report_type,
            "report_grouping": self.report_grouping,
            "bikepark_ids": ",".join(sorted(self.bikepark_ids)),
            "start_dt": self.start_dt.isoformat() if self.start_dt else None,
            "end_dt": self.end_dt.isoformat() if self.end_dt else None,
            "fillups": self.fillups,
            "source": self.source,
            "day_begins_at": self.day_begins_at_minutes,
            "report_categories": self.report_categories,
        }


@dataclass
class SeriesData:
    """One named series, values aligned to ReportData.keys."""
    name: str
    data: List[float]

    def to_dict(self) -> dict:
        return {"name": self.name, "data": self.data}


@dataclass
class ReportData:
    """Chart-ready report: category x-axis plus aligned series."""
    title: str
    keys: List[str]
    categories: List[str]
    x_axis_title: str
    series: List[SeriesData] = field(default_factory=list)

    def to_dict(self) -> dict:
        """Convert to the chart options shape used by the reports front end."""
        return {
            "title": self.title,
            "options": {
                "xaxis": {
                    "type": "category",
                    "categories": self.categories,
                    "title": {"text": self.x_axis_title, "align": "left"},
                },
                "yaxis": {"title": {"text": ""}},
            },
            "series": [s.to_dict() for s in self.series],
            "keys": self.keys,
        }
