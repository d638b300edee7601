"""
Side services for the attendance system.

- ImageStore: persists enrollment frames and hands out opaque references
- EmailService: SMTP delivery of attendance sheets and absence notices
"""

from .email_service import EmailService
from .image_store import ImageStore

__all__ = [
	'EmailService',
	'ImageStore',
]
