"""Password strength validation utilities."""
import re

MIN_LENGTH = 8
MAX_LENGTH = 128


def validate_password_strength(password):
    """
    Validate password meets minimum requirements for site accounts.

    Requirements:
    - Between 8 and 128 characters
    - Contains at least one letter
    - Contains at least one digit

    Returns:
        tuple: (is_valid: bool, error_message: str or None)
    """
    if not password or len(password) < MIN_LENGTH:
        return False, f"Password must be at least {MIN_LENGTH} characters long"

    if len(password) > MAX_LENGTH:
        return False, f"Password must be at most {MAX_LENGTH} characters long"

    if not re.search(r'[A-Za-z]', password):
        return False, "Password must contain at least one letter"

    if not re.search(r'\d', password):
        return False, "Password must contain at least one number"

    return True, None
