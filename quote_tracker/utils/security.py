"""
Security utilities for client tracking tokens and scheduled-job secrets.
"""

import secrets
import string

TOKEN_ALPHABET = string.ascii_letters + string.digits
ACCESS_TOKEN_LENGTH = 32


def generate_access_token(length: int = ACCESS_TOKEN_LENGTH) -> str:
    """
    Generate an alphanumeric capability token.
    
    Args:
        length: Number of characters
        
    Returns:
        Token drawn uniformly from [A-Za-z0-9]
    """
    return "".join(secrets.choice(TOKEN_ALPHABET) for _ in range(length))


def is_valid_access_token(token: object) -> bool:
    """Check token shape without touching the store."""
    return (
        isinstance(token, str)
        and len(token) == ACCESS_TOKEN_LENGTH
        and all(char in TOKEN_ALPHABET for char in token)
    )


def verify_bearer_secret(authorization: str | None, secret: str) -> bool:
    """Constant-time check of an `Authorization: Bearer <secret>` header."""
    if not authorization:
        return False
    return secrets.compare_digest(
        authorization.encode("utf-8"),
        f"Bearer {secret}".encode("utf-8"),
    )


def mask_sensitive_data(data: str, visible_chars: int = 4) -> str:
    """
    Mask sensitive data for logging/display.
    
    Args:
        data: Sensitive string to mask
        visible_chars: Number of characters to show at end
        
    Returns:
        Masked string
    """
    if len(data) <= visible_chars:
        return "*" * len(data)
    
    return "*" * (len(data) - visible_chars) + data[-visible_chars:]
