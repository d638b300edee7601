"""
Logging configuration for the attendance system
"""

import logging
import logging.handlers
from datetime import datetime
from pathlib import Path


def _remove_owned_handlers(target):
    for handler in target.handlers[:]:
        if getattr(handler, '_attendance_owned', False):
            target.removeHandler(handler)
            handler.close()


def setup_logging(app, log_level='INFO', log_dir='logs', max_log_size=10*1024*1024, backup_count=5):
    """
    Configure logging for the Flask application

    Args:
        app: Flask app instance
        log_level: DEBUG, INFO, WARNING, ERROR or CRITICAL
        log_dir: directory holding the rotating log files
        max_log_size: maximum size of one log file (bytes)
        backup_count: number of rotated files to keep
    """

    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)

    log_level = getattr(logging, str(log_level).upper(), logging.INFO)

    formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(module)s:%(lineno)d - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )

    # Main file with rotation
    file_handler = logging.handlers.RotatingFileHandler(
        log_dir / 'attendance_system.log',
        maxBytes=max_log_size,
        backupCount=backup_count,
        encoding='utf-8'
    )
    file_handler.setLevel(log_level)
    file_handler.setFormatter(formatter)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(log_level)
    console_handler.setFormatter(formatter)

    error_handler = logging.handlers.RotatingFileHandler(
        log_dir / 'errors.log',
        maxBytes=max_log_size,
        backupCount=backup_count,
        encoding='utf-8'
    )
    error_handler.setLevel(logging.ERROR)
    error_handler.setFormatter(formatter)

    security_handler = logging.handlers.RotatingFileHandler(
        log_dir / 'security.log',
        maxBytes=max_log_size,
        backupCount=backup_count,
        encoding='utf-8'
    )
    security_handler.setLevel(logging.INFO)
    security_handler.setFormatter(formatter)

    for handler in (file_handler, console_handler, error_handler, security_handler):
        handler._attendance_owned = True

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)

    # Drop handlers from a previous setup (tests build several apps)
    _remove_owned_handlers(root_logger)

    root_logger.addHandler(file_handler)
    root_logger.addHandler(console_handler)
    root_logger.addHandler(error_handler)

    security_logger = logging.getLogger('security')
    _remove_owned_handlers(security_logger)
    security_logger.addHandler(security_handler)
    security_logger.setLevel(logging.INFO)

    logging.getLogger('face_recognition').setLevel(logging.INFO)
    logging.getLogger('database').setLevel(logging.INFO)
    logging.getLogger('api').setLevel(logging.INFO)

    app.logger.setLevel(log_level)

    app.logger.info("=" * 50)
    app.logger.info("ATTENDANCE SYSTEM STARTUP")
    app.logger.info(f"Timestamp: {datetime.now().isoformat()}")
    app.logger.info(f"Log Level: {logging.getLevelName(log_level)}")
    app.logger.info(f"Log Directory: {log_dir.absolute()}")
    app.logger.info("=" * 50)


class SecurityLogger:
    """Logger for destructive and administrative operations"""

    def __init__(self):
        self.logger = logging.getLogger('security')

    def log_admin_action(self, action, ip_address=None, details=None):
        """Log an administrative action"""
        ip_info = f", IP: {ip_address}" if ip_address else ""
        details_info = f", Details: {details}" if details else ""
        self.logger.info(f"ADMIN ACTION - Action: {action}{ip_info}{details_info}")

    def log_data_access(self, data_type, action, ip_address=None):
        """Log a data export"""
        ip_info = f", IP: {ip_address}" if ip_address else ""
        self.logger.info(f"DATA ACCESS - Type: {data_type}, Action: {action}{ip_info}")


class FaceRecognitionLogger:
    """Logger for matching outcomes"""

    def __init__(self):
        self.logger = logging.getLogger('face_recognition')

    def log_face_recognized(self, name, distance, roll_no=None):
        roll_info = f", Roll No: {roll_no}" if roll_no else ""
        self.logger.info(f"Face recognized - Name: {name}, Distance: {distance:.4f}{roll_info}")

    def log_face_rejected(self, distance, threshold):
        self.logger.info(f"Face not recognized - Best distance: {distance:.4f}, Threshold: {threshold:.4f}")

    def log_no_registrants(self):
        self.logger.warning("Recognition requested but no students are enrolled")

    def log_attendance_marked(self, name, roll_no, unit, distance=None):
        """Log a ledger write"""
        distance_info = f", Distance: {distance:.4f}" if distance is not None else ""
        self.logger.info(f"Attendance marked - Name: {name}, Roll No: {roll_no}, Unit: {unit}{distance_info}")

    def log_enrolled(self, name, roll_no, samples):
        self.logger.info(f"Student enrolled - Name: {name}, Roll No: {roll_no}, Samples: {samples}")


class DatabaseLogger:
    """Logger for database operations"""

    def __init__(self):
        self.logger = logging.getLogger('database')

    def log_query(self, operation, duration=None, attempts=1):
        duration_info = f", Duration: {duration:.3f}s" if duration is not None else ""
        retry_info = f", Attempts: {attempts}" if attempts > 1 else ""
        self.logger.debug(f"DB Query - Operation: {operation}{duration_info}{retry_info}")

    def log_retry(self, operation, error_message):
        self.logger.warning(f"DB Retry - Operation: {operation}, Error: {error_message}")

    def log_error(self, operation, error_message):
        self.logger.error(f"DB Error - Operation: {operation}, Error: {error_message}")


class APILogger:
    """Logger for API calls"""

    def __init__(self):
        self.logger = logging.getLogger('api')

    def log_request(self, method, endpoint, ip_address=None):
        ip_info = f", IP: {ip_address}" if ip_address else ""
        self.logger.info(f"API Request - {method} {endpoint}{ip_info}")

    def log_error(self, endpoint, error_message, status_code=500):
        """Log an API error"""
        self.logger.error(f"API Error - {endpoint}, Status: {status_code}, Error: {error_message}")


# Global logger instances
security_logger = SecurityLogger()
face_recognition_logger = FaceRecognitionLogger()
database_logger = DatabaseLogger()
api_logger = APILogger()


def get_client_ip(request):
    """Return the client IP address"""
    if request.headers.get('X-Forwarded-For'):
        return request.headers.get('X-Forwarded-For').split(',')[0].strip()
    elif request.headers.get('X-Real-IP'):
        return request.headers.get('X-Real-IP')
    else:
        return request.remote_addr


def log_request_info(request):
    """Log request information"""
    ip_address = get_client_ip(request)
    api_logger.log_request(
        request.method,
        request.endpoint,
        ip_address=ip_address
    )
    return ip_address
