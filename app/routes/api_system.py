"""
API routes for system status
"""
from flask import Blueprint, current_app, jsonify, request

from app import globals as app_globals
from app.schemas import EmailTestRequest
from app.utils import get_request_data

system_api_bp = Blueprint('system_api', __name__)


@system_api_bp.route('/status')
def api_system_status():
    """System status; ?checkEmail=1 also opens an SMTP session"""
    status = {
        'ok': True,
        'registeredStudents': app_globals.database.count_students(),
        'threshold': app_globals.matcher.threshold,
        'minFrames': app_globals.enrollment.min_frames,
        'featureLength': current_app.config['FEATURE_VECTOR_LENGTH'] or None,
    }
    if request.args.get('checkEmail', '').lower() in ('1', 'true', 'yes'):
        status['emailReady'] = app_globals.email_service.verify_connection()
    return jsonify(status)


@system_api_bp.route('/api/email/test', methods=['POST'])
def api_test_email():
    """Send a test email to check the SMTP settings"""
    payload = EmailTestRequest.from_payload(get_request_data())
    if payload.message:
        app_globals.email_service.send_test_email(payload.email, payload.message)
    else:
        app_globals.email_service.send_test_email(payload.email)
    return jsonify({'ok': True, 'message': f'Test email sent to {payload.email}'})
