"""
API routes for statistics
"""
from flask import Blueprint, jsonify

from app import globals as app_globals

stats_api_bp = Blueprint('stats_api', __name__, url_prefix='/api')


@stats_api_bp.route('/stats')
def api_stats():
    """Today's attendance counts and percentage"""
    return jsonify(app_globals.reporter.stats(app_globals.today()))
