"""
Authentication for participant endpoints.
"""
from .dependencies import get_current_user
from .security import create_access_token, decode_token

__all__ = ["create_access_token", "decode_token", "get_current_user"]
