"""
Email delivery for attendance exports and absence notifications.

Messages are sent over SMTP with STARTTLS. Each send is attempted twice
before a DeliveryError reaches the caller.
"""

import logging
import smtplib
from email.message import EmailMessage
from pathlib import Path
from typing import Callable, Dict, Optional

from core.errors import DeliveryError

logger = logging.getLogger(__name__)

REPORT_FILENAME = 'attendanceSheet.csv'


class EmailService:
    """SMTP sender used by the reporting routes."""

    def __init__(self,
                 host: str,
                 port: int,
                 sender: str,
                 password: str = '',
                 default_recipient: str = '',
                 use_tls: bool = True,
                 timeout: float = 15.0,
                 data_dir: str = 'data',
                 attempts: int = 2,
                 smtp_factory: Optional[Callable[..., smtplib.SMTP]] = None):
        """
        Args:
            host, port: SMTP server
            sender, password: account used to authenticate and as From
            default_recipient: address receiving attendance reports
            use_tls: issue STARTTLS before login
            data_dir: where the last exported sheet is written
            attempts: total tries per message
            smtp_factory: replacement for smtplib.SMTP (tests)
        """
        self.host = host
        self.port = port
        self.sender = sender
        self.password = password
        self.default_recipient = default_recipient
        self.use_tls = use_tls
        self.timeout = timeout
        self.data_dir = Path(data_dir)
        self.attempts = max(1, attempts)
        self._smtp_factory = smtp_factory or smtplib.SMTP

    def _deliver(self, message: EmailMessage) -> None:
        last_error = None
        for attempt in range(1, self.attempts + 1):
            try:
                with self._smtp_factory(self.host, self.port, timeout=self.timeout) as smtp:
                    if self.use_tls:
                        smtp.starttls()
                    if self.sender and self.password:
                        smtp.login(self.sender, self.password)
                    smtp.send_message(message)
                logger.info("Email '%s' sent to %s", message['Subject'], message['To'])
                return
            except (smtplib.SMTPException, OSError) as exc:
                last_error = exc
                logger.warning("Email attempt %d/%d to %s failed: %s",
                               attempt, self.attempts, message['To'], exc)
        raise DeliveryError(f"Could not deliver email to {message['To']}: {last_error}")

    def verify_connection(self) -> bool:
        """Open a session with the SMTP server without sending anything."""
        try:
            with self._smtp_factory(self.host, self.port, timeout=self.timeout) as smtp:
                if self.use_tls:
                    smtp.starttls()
                if self.sender and self.password:
                    smtp.login(self.sender, self.password)
                smtp.noop()
        except (smtplib.SMTPException, OSError) as exc:
            logger.warning("Email service not reachable at %s:%s: %s", self.host, self.port, exc)
            return False
        logger.info("Email service is ready to send messages")
        return True

    def _new_message(self, to: str, subject: str) -> EmailMessage:
        if not to:
            raise DeliveryError('No recipient configured (set EMAIL_TO)')
        message = EmailMessage()
        message['From'] = self.sender
        message['To'] = to
        message['Subject'] = subject
        return message

    def write_report(self, csv_text: str) -> Path:
        self.data_dir.mkdir(parents=True, exist_ok=True)
        path = self.data_dir / REPORT_FILENAME
        path.write_text(csv_text, encoding='utf-8', newline='')
        return path

    def send_attendance_report(self, csv_text: str, summary: Dict, day, scope: Optional[Dict] = None,
                               to: Optional[str] = None) -> None:
        """Write the sheet to disk and email it with a short summary."""
        self.write_report(csv_text)
        message = self._new_message(to or self.default_recipient, f"Attendance Report - {day}")

        lines = ["Please find the attached attendance sheet."]
        if scope and scope.get('subject'):
            lines.append(f"Subject: {scope['subject']}")
        if scope and scope.get('timeslot'):
            lines.append(f"Time Slot: {scope['timeslot']}")
        lines.extend([
            f"Total Students: {summary['totalStudents']}",
            f"Present: {summary['present']}",
            f"Absent: {summary['absent']}",
        ])
        message.set_content('\n'.join(lines))
        message.add_attachment(
            csv_text.encode('utf-8'),
            maintype='text',
            subtype='csv',
            filename=REPORT_FILENAME,
        )
        self._deliver(message)

    def send_absence_notification(self, student_email: str, student_name: str,
                                  subject: str, timeslot: str, day) -> None:
        message = self._new_message(student_email, f"Attendance Alert - {student_name}")
        message.set_content(
            "Student Absence Notification\n\n"
            f"Student: {student_name}\n"
            f"Subject: {subject}\n"
            f"Time Slot: {timeslot}\n"
            f"Date: {day}\n\n"
            "This is an automated notification from the Face Recognition Attendance System. "
            "Please contact your instructor if you believe this is an error."
        )
        self._deliver(message)

    def send_test_email(self, email: str, test_message: str = 'This is a test email from the Attendance System') -> None:
        message = self._new_message(email, 'Test Email - Attendance System')
        message.set_content(
            f"{test_message}\n\nIf you received this email, the email service is working correctly."
        )
        self._deliver(message)
