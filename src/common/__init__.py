# ABOUTME: Makes the shared common package importable across engines.
# ABOUTME: Re-exports fact record types, the fact store, and config loading.

from .schemas import AttendanceRecord, EngagementRecord, PerformanceRecord
from .store import InMemoryFactStore
from .config import EngineConfig, load_engine_config
from .errors import AnalyticsError, DerivedFieldError, InvalidRangeError

__all__ = [
    "AttendanceRecord",
    "EngagementRecord",
    "PerformanceRecord",
    "InMemoryFactStore",
    "EngineConfig",
    "load_engine_config",
    "AnalyticsError",
    "DerivedFieldError",
    "InvalidRangeError",
]
