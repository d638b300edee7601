"""
Routes package
Registers every blueprint
"""
from .api_recognize import recognize_api_bp
from .api_register import register_api_bp
from .api_attendance import attendance_api_bp
from .api_students import student_api_bp
from .api_stats import stats_api_bp
from .api_system import system_api_bp


def register_blueprints(app):
    """Register all blueprints with the Flask app."""
    app.register_blueprint(recognize_api_bp)
    app.register_blueprint(register_api_bp)
    app.register_blueprint(attendance_api_bp)
    app.register_blueprint(student_api_bp)
    app.register_blueprint(stats_api_bp)
    app.register_blueprint(system_api_bp)

    app.logger.info("Registered all blueprints")
