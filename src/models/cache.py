"""
Bikepark Reports - Cache Lifecycle Envelopes
Request and result types exchanged with the cache lifecycle managers.
"""

import enum
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Type

from utils.timezone import parse_iso_datetime


class CacheAction(str, enum.Enum):
    """Lifecycle actions accepted by a cache manager"""
    STATUS = "status"
    CREATE_TABLE = "createtable"
    DROP_TABLE = "droptable"
    CLEAR = "clear"
    UPDATE = "update"
    REBUILD = "rebuild"
    CREATE_PARENT_INDICES = "createparentindices"
    DROP_PARENT_INDICES = "dropparentindices"

    @property
    def is_mutating(self) -> bool:
        return self is not CacheAction.STATUS

    @property
    def needs_window(self) -> bool:
        return self in (CacheAction.CLEAR, CacheAction.UPDATE, CacheAction.REBUILD)


class CacheErrorCode(str, enum.Enum):
    """Machine-readable failure reasons on CacheResult"""
    INVALID_PARAMS = "invalid_params"
    DATABASE_ERROR = "database_error"
    LOCKED = "locked"
    INVALID_ACTION = "invalid_action"


class TableState(str, enum.Enum):
    MISSING = "missing"
    AVAILABLE = "available"
    ERROR = "error"


class CacheParamsError(ValueError):
    """Raised when a lifecycle request payload cannot be used."""
    pass


def parse_bool(value: Any, field_name: str, error: Type[ValueError] = CacheParamsError) -> bool:
    """
    Strict JSON/query-string boolean.

    Accepts booleans, None (False) and 'true'/'false', '1'/'0', 'yes'/'no'
    or '' in any case; anything else raises error.
    """
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    if isinstance(value, str) and value.lower() in ('true', '1', 'yes', 'false', '0', 'no', ''):
        return value.lower() in ('true', '1', 'yes')
    raise error(f"{field_name} must be a boolean")


def _parse_date(value: Any, field_name: str) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return value
    if not isinstance(value, str):
        raise CacheParamsError(f"{field_name} must be an ISO 8601 date string")
    try:
        return parse_iso_datetime(value)
    except ValueError:
        raise CacheParamsError(f"{field_name} is not a valid date: {value!r}")


@dataclass
class CacheParams:
    """
    Lifecycle request.

    The window is the half-open interval [start_date, end_date) in reporting
    time. all_dates ignores the window, all_bikeparks ignores the selection.
    """
    action: CacheAction
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    selected_bikepark_ids: List[str] = field(default_factory=list)
    all_dates: bool = False
    all_bikeparks: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'CacheParams':
        """
        Build from the admin API payload (camelCase keys).

        Raises:
            CacheParamsError: On unknown action or malformed fields
        """
        if not isinstance(data, dict):
            raise CacheParamsError("databaseParams must be an object")

        raw_action = data.get('action')
        try:
            action = CacheAction(raw_action)
        except ValueError:
            raise CacheParamsError(f"Unknown cache action: {raw_action!r}")

        ids = data.get('selectedBikeparkIDs') or []
        if not isinstance(ids, list) or not all(isinstance(i, str) for i in ids):
            raise CacheParamsError("selectedBikeparkIDs must be a list of strings")

        return cls(
            action=action,
            start_date=_parse_date(data.get('startDate'), 'startDate'),
            end_date=_parse_date(data.get('endDate'), 'endDate'),
            selected_bikepark_ids=ids,
            all_dates=parse_bool(data.get('allDates'), 'allDates'),
            all_bikeparks=parse_bool(data.get('allBikeparks'), 'allBikeparks'),
        )

    def validate(self) -> None:
        """
        Check that a windowed action has a usable window and selection.

        Raises:
            CacheParamsError: If the request cannot be executed
        """
        if not CacheAction(self.action).needs_window:
            return
        if not self.all_dates:
            if self.start_date is None:
                raise CacheParamsError("startDate is required unless allDates is set")
            if self.end_date is not None and self.end_date <= self.start_date:
                raise CacheParamsError("endDate must be after startDate")
        if not self.all_bikeparks and not self.selected_bikepark_ids:
            raise CacheParamsError("selectedBikeparkIDs is empty and allBikeparks is not set")

    def with_action(self, action: CacheAction) -> 'CacheParams':
        return CacheParams(
            action=action,
            start_date=self.start_date,
            end_date=self.end_date,
            selected_bikepark_ids=list(self.selected_bikepark_ids),
            all_dates=self.all_dates,
            all_bikeparks=self.all_bikeparks,
        )

    def describe_window(self) -> str:
        if self.all_dates:
            dates = "all dates"
        else:
            end = self.end_date.isoformat() if self.end_date else "open"
            start = self.start_date.isoformat() if self.start_date else "open"
            dates = f"[{start}, {end})"
        facilities = "all bikeparks" if self.all_bikeparks else f"{len(self.selected_bikepark_ids)} bikeparks"
        return f"{dates} x {facilities}"


@dataclass
class CacheStatus:
    """Cache table state and coverage, compared with its raw source table."""
    status: TableState
    indexstatus: TableState = TableState.MISSING
    size: Optional[int] = None
    first_update: Optional[datetime] = None
    last_update: Optional[datetime] = None
    original_size: Optional[int] = None
    original_first_update: Optional[datetime] = None
    original_last_update: Optional[datetime] = None
    summary: str = ''

    @property
    def is_available(self) -> bool:
        return self.status == TableState.AVAILABLE

    def to_dict(self) -> dict:
        """Convert to dictionary for API responses."""
        def iso(value):
            return value.isoformat() if value is not None else None

        return {
            "status": self.status.value,
            "indexstatus": self.indexstatus.value,
            "size": self.size,
            "firstUpdate": iso(self.first_update),
            "lastUpdate": iso(self.last_update),
            "originalSize": self.original_size,
            "originalFirstUpdate": iso(self.original_first_update),
            "originalLastUpdate": iso(self.original_last_update),
            "summary": self.summary,
        }


@dataclass
class CacheResult:
    """Outcome of one lifecycle action."""
    success: bool
    status: Optional[CacheStatus] = None
    error_code: Optional[CacheErrorCode] = None
    message: str = ''

    @classmethod
    def ok(cls, status: Optional[CacheStatus], message: str = '') -> 'CacheResult':
        return cls(success=True, status=status, message=message)

    @classmethod
    def failure(cls, error_code: CacheErrorCode, message: str,
                status: Optional[CacheStatus] = None) -> 'CacheResult':
        return cls(success=False, status=status, error_code=error_code, message=message)

    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "status": self.status.to_dict() if self.status else None,
            "errorCode": self.error_code.value if self.error_code else None,
            "message": self.message,
        }
