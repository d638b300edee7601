# config.py - Configuration and constants for the attendance system

import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

# Flask app configuration
SECRET_KEY = os.getenv('SECRET_KEY', 'dev-secret-key-change-in-production')
MAX_CONTENT_LENGTH = 64 * 1024 * 1024  # 64MB, enrollment posts carry 25+ frames

# Storage locations
DATA_DIR = Path(os.getenv('DATA_DIR', 'data'))
IMAGES_DIR = Path(os.getenv('IMAGES_DIR', 'images'))
LOG_DIR = Path(os.getenv('LOG_DIR', 'logs'))
DATABASE_PATH = os.getenv('DATABASE_PATH', 'attendance_system.db')
DB_TIMEOUT_SECONDS = float(os.getenv('DB_TIMEOUT_SECONDS', '5'))
PERSISTENCE_RETRIES = max(0, int(os.getenv('PERSISTENCE_RETRIES', '1')))

# Logging
LOG_LEVEL = os.getenv('LOG_LEVEL', 'INFO')

# Face matching
MATCH_THRESHOLD = float(os.getenv('MATCH_THRESHOLD', '0.18'))
MIN_ENROLLMENT_FRAMES = max(1, int(os.getenv('MIN_ENROLLMENT_FRAMES', '25')))
# 0 disables the fixed-length check
FEATURE_VECTOR_LENGTH = max(0, int(os.getenv('FEATURE_VECTOR_LENGTH', '1024')))

# Default attendance unit when a caller omits it
DEFAULT_SUBJECT = os.getenv('DEFAULT_SUBJECT', 'General')
DEFAULT_TIMESLOT = os.getenv('DEFAULT_TIMESLOT', 'Default')
DEFAULT_SLOT_TYPE = os.getenv('DEFAULT_SLOT_TYPE', 'lecture')

# Email delivery
SMTP_HOST = os.getenv('SMTP_HOST', 'smtp.gmail.com')
SMTP_PORT = int(os.getenv('SMTP_PORT', '587'))
SMTP_USE_TLS = os.getenv('SMTP_USE_TLS', '1') == '1'
SMTP_TIMEOUT_SECONDS = float(os.getenv('SMTP_TIMEOUT_SECONDS', '15'))
EMAIL_FROM = os.getenv('EMAIL_FROM') or os.getenv('EMAIL_USER', '')
EMAIL_PASSWORD = os.getenv('EMAIL_PASSWORD') or os.getenv('EMAIL_PASS', '')
EMAIL_TO = os.getenv('EMAIL_TO', '')

# Flask server
FLASK_HOST = os.getenv('FLASK_HOST', '0.0.0.0')
FLASK_PORT = int(os.getenv('FLASK_PORT', '5000'))
FLASK_DEBUG = os.getenv('FLASK_DEBUG', 'False').lower() in ('true', '1', 'yes')


def as_flask_config():
    """Collect the upper-case settings of this module into a dict for app.config."""
    return {
        key: value
        for key, value in globals().items()
        if key.isupper()
    }
