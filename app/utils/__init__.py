"""
Utils package
"""
from .data_utils import (
    get_request_data,
    parse_student_id,
)
from .attendance_utils import (
    get_enrolled_faces,
    recognize,
)

__all__ = [
    'get_request_data',
    'parse_student_id',
    'get_enrolled_faces',
    'recognize',
]
