"""
Attendance utilities
Glue between stored student rows and the matcher
"""
from app import globals as app_globals
from core.features import blob_to_vector
from core.matching import EnrolledFace


def get_enrolled_faces():
    """Enrolled students as matcher candidates, in roll-number order."""
    faces = []
    for row in app_globals.database.get_enrolled_vectors():
        vector = blob_to_vector(row['face_vector'])
        if vector is None or vector.size == 0:
            continue
        faces.append(EnrolledFace(
            student_id=row['id'],
            roll_no=row['roll_no'],
            name=row['full_name'],
            vector=vector,
        ))
    return faces


def recognize(feature):
    """Match a validated query vector against every enrolled student."""
    return app_globals.matcher.match(feature, get_enrolled_faces())
