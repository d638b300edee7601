"""
API routes for registration
Enroll a student from a multi-pose capture (frames + feature vectors)
"""
from flask import Blueprint, jsonify, current_app

from app import globals as app_globals
from app.schemas import RegisterRequest
from app.utils import get_request_data

register_api_bp = Blueprint('register_api', __name__, url_prefix='/api')


@register_api_bp.route('/register', methods=['POST'])
def api_register():
    """Register a new student with its averaged face vector."""
    payload = RegisterRequest.from_payload(get_request_data())
    current_app.logger.info(
        f"Register request - Roll No: {payload.roll_no}, Frames: {len(payload.frames)}, "
        f"Features: {len(payload.features)}"
    )

    student_id = app_globals.enrollment.register(
        payload.name,
        payload.roll_no,
        payload.email,
        payload.frames,
        payload.features,
        now=app_globals.now(),
    )
    return jsonify({
        'ok': True,
        'id': student_id,
        'message': 'Student registered successfully',
    })
