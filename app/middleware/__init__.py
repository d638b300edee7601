from .errors import error_payload, register_error_middleware

__all__ = ['error_payload', 'register_error_middleware']
