"""
API routes for students
List, edit and delete registered students
"""
from flask import Blueprint, jsonify, request

from app import globals as app_globals
from app.schemas import ReportScope, StudentUpdateRequest
from app.utils import get_request_data, parse_student_id
from logging_config import get_client_ip, security_logger

student_api_bp = Blueprint('student_api', __name__, url_prefix='/api')


def _serialize_student(row):
    return {
        'id': row['id'],
        'rollNo': row['roll_no'],
        'name': row['full_name'],
        'email': row['email'],
        'registeredAt': row['registered_at'],
    }


@student_api_bp.route('/students', methods=['GET'])
def get_students():
    """Students in roll-number order with their status for the day/session."""
    scope = ReportScope.from_mapping(request.args, app_globals.today())
    return jsonify(app_globals.reporter.student_rows(scope.day, **scope.filters()))


@student_api_bp.route('/students/<student_id>', methods=['PUT', 'DELETE'])
def manage_student(student_id):
    """Edit (PUT) or delete (DELETE) one student."""
    student_id = parse_student_id(student_id)

    if request.method == 'PUT':
        payload = StudentUpdateRequest.from_payload(get_request_data())
        student = app_globals.enrollment.update_student(
            student_id,
            name=payload.name,
            roll_no=payload.roll_no,
            email=payload.email,
        )
        return jsonify({'ok': True, 'student': _serialize_student(student)})

    removed = app_globals.enrollment.delete_student(student_id)
    security_logger.log_admin_action(
        'delete-student', get_client_ip(request), f"id={student_id}, images={removed}"
    )
    return jsonify({'ok': True, 'message': 'Student deleted successfully'})


@student_api_bp.route('/clear-all-students', methods=['POST'])
def clear_all_students():
    """Delete every student together with their attendance and images."""
    deleted, attendance_deleted = app_globals.ledger.clear_all()
    security_logger.log_admin_action(
        'clear-all-students', get_client_ip(request),
        f"students={deleted}, attendance={attendance_deleted}",
    )
    return jsonify({
        'ok': True,
        'deletedCount': deleted,
        'message': f'Cleared {deleted} students and all related data',
    })


@student_api_bp.route('/clear-database', methods=['POST'])
def clear_database():
    """Wipe the ledger and the registry."""
    students_deleted, attendance_deleted = app_globals.ledger.clear_all()
    security_logger.log_admin_action(
        'clear-database', get_client_ip(request),
        f"students={students_deleted}, attendance={attendance_deleted}",
    )
    return jsonify({
        'ok': True,
        'deletedCount': students_deleted,
        'deletedAttendance': attendance_deleted,
    })
