# Bikepark Reports - Models Package

from .cache import (
    CacheAction,
    CacheErrorCode,
    CacheParams,
    CacheParamsError,
    CacheResult,
    CacheStatus,
    TableState,
)
from .report import (
    REPORT_TITLES,
    ReportCategories,
    ReportData,
    ReportGrouping,
    ReportParams,
    ReportType,
    ReportValidationError,
    SeriesData,
)

__all__ = [
    'CacheAction',
    'CacheErrorCode',
    'CacheParams',
    'CacheParamsError',
    'CacheResult',
    'CacheStatus',
    'TableState',
    'REPORT_TITLES',
    'ReportCategories',
    'ReportData',
    'ReportGrouping',
    'ReportParams',
    'ReportType',
    'ReportValidationError',
    'SeriesData',
]
