"""
Response serializers and envelope helpers.
"""

from .response import error_envelope, with_request_meta

__all__ = ['error_envelope', 'with_request_meta']
