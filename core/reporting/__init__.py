from .reports import CSV_HEADER, AttendanceReporter, attendance_percentage

__all__ = ['CSV_HEADER', 'AttendanceReporter', 'attendance_percentage']
