"""
Global service instances
Populated by create_app(); routes read them at request time
"""
from datetime import datetime

database = None
image_store = None
matcher = None
enrollment = None
ledger = None
reporter = None
email_service = None

# Swappable clock so "today" can be pinned
clock = datetime.now


def now():
    return clock()


def today():
    return clock().date()
