"""
API routes for attendance
Mark, clear, export and deliver attendance
"""
from flask import Blueprint, Response, current_app, jsonify, request

from app import globals as app_globals
from app.schemas import ClearAttendanceRequest, MarkAttendanceRequest, NotifyAbsentRequest, ReportScope
from app.utils import get_request_data, recognize
from core.errors import DeliveryError
from logging_config import get_client_ip, security_logger

attendance_api_bp = Blueprint('attendance_api', __name__, url_prefix='/api')


def _default_unit():
    return {
        'subject': current_app.config['DEFAULT_SUBJECT'],
        'timeslot': current_app.config['DEFAULT_TIMESLOT'],
        'slot_type': current_app.config['DEFAULT_SLOT_TYPE'],
    }


@attendance_api_bp.route('/attendance/mark', methods=['POST'])
def api_mark_attendance():
    """Recognize the query vector and mark the matched student present."""
    payload = MarkAttendanceRequest.from_payload(get_request_data(), _default_unit())
    result = recognize(payload.feature)

    if not result.recognized:
        body = {
            'success': False,
            'recognized': False,
            'distance': result.distance,
        }
        if result.no_registrants:
            body['noRegistrants'] = True
        return jsonify(body)

    record = app_globals.ledger.mark_present(
        result,
        payload.subject,
        payload.timeslot,
        payload.slot_type,
        now=app_globals.now(),
    )
    return jsonify({
        'success': True,
        'recognized': True,
        'distance': result.distance,
        'student': {
            'id': result.student_id,
            'name': result.name,
            'rollNo': result.roll_no,
        },
        'attendance': {
            'subject': record.key.subject,
            'timeslot': record.key.timeslot,
            'slotType': record.key.slot_type,
            'markedAt': record.marked_at.isoformat(),
        },
    })


@attendance_api_bp.route('/clear-attendance', methods=['POST'])
def api_clear_attendance():
    """Delete today's attendance (or all of it with scope=all)."""
    payload = ClearAttendanceRequest.from_payload(get_request_data(required=False))
    deleted = app_globals.ledger.clear_scope(payload.scope, today=app_globals.today())
    security_logger.log_admin_action(
        'clear-attendance', get_client_ip(request), f"scope={payload.scope}, deleted={deleted}"
    )
    return jsonify({
        'ok': True,
        'deletedCount': deleted,
        'message': f'Cleared {deleted} attendance records',
    })


@attendance_api_bp.route('/attendance/export', methods=['GET'])
def api_export_attendance():
    """Download the attendance sheet of a day as CSV."""
    scope = ReportScope.from_mapping(request.args, app_globals.today())
    csv_text = app_globals.reporter.export_csv(scope.day, **scope.filters())
    security_logger.log_data_access('attendance', 'export', get_client_ip(request))
    return Response(
        csv_text,
        mimetype='text/csv',
        headers={'Content-Disposition': f'attachment; filename=attendance_{scope.day.isoformat()}.csv'},
    )


@attendance_api_bp.route('/send-attendance', methods=['POST'])
def api_send_attendance():
    """Email the attendance sheet to the configured recipient."""
    scope = ReportScope.from_mapping(get_request_data(required=False), app_globals.today())
    summary = app_globals.reporter.daily_summary(scope.day, **scope.filters())
    csv_text = app_globals.reporter.export_csv(scope.day, **scope.filters())
    app_globals.email_service.send_attendance_report(
        csv_text,
        summary,
        scope.day.isoformat(),
        scope=scope.describe(),
    )
    return jsonify({
        'ok': True,
        'message': 'Attendance sent successfully',
        'summary': summary,
    })


@attendance_api_bp.route('/attendance/notify-absent', methods=['POST'])
def api_notify_absent():
    """Email every absent student of a session."""
    payload = NotifyAbsentRequest.from_payload(get_request_data(), app_globals.today())
    scope = payload.scope
    sent, failed = [], []
    for student in app_globals.reporter.absentees(scope.day, **scope.filters()):
        try:
            app_globals.email_service.send_absence_notification(
                student['email'],
                student['name'],
                scope.subject,
                scope.timeslot,
                scope.day.isoformat(),
            )
            sent.append(student['rollNo'])
        except DeliveryError as exc:
            current_app.logger.warning(f"Absence notification for {student['rollNo']} failed: {exc}")
            failed.append({'rollNo': student['rollNo'], 'error': exc.message})
    return jsonify({'ok': not failed, 'sent': sent, 'failed': failed})
