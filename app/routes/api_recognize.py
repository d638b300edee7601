"""
API routes for recognition
Read-only matching of a query feature vector
"""
from flask import Blueprint, jsonify

from app.schemas import RecognizeRequest
from app.utils import get_request_data, recognize

recognize_api_bp = Blueprint('recognize_api', __name__, url_prefix='/api')


@recognize_api_bp.route('/recognize', methods=['POST'])
def api_recognize():
    """Find the closest enrolled student; never writes attendance."""
    payload = RecognizeRequest.from_payload(get_request_data())
    result = recognize(payload.feature)
    return jsonify(result.to_payload())
