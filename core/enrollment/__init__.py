from .aggregator import (
    DEFAULT_MIN_FRAMES,
    EnrollmentAggregator,
    validate_email,
    validate_identity,
)

__all__ = ['DEFAULT_MIN_FRAMES', 'EnrollmentAggregator', 'validate_email', 'validate_identity']
