from .ledger import (
    ABSENT,
    PRESENT,
    SCOPE_ALL,
    SCOPE_TODAY,
    AttendanceLedger,
    AttendanceRecord,
    AttendanceUnitKey,
)

__all__ = [
    'ABSENT',
    'PRESENT',
    'SCOPE_ALL',
    'SCOPE_TODAY',
    'AttendanceLedger',
    'AttendanceRecord',
    'AttendanceUnitKey',
]
