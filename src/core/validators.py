from email_validator import EmailNotValidError, validate_email

from src.core.exceptions import ResponseStatus, ServiceError


def normalize_email(email: str) -> str:
    """Validate the address syntax and return it lower-cased"""
    try:
        result = validate_email(email or "", check_deliverability=False)
    except EmailNotValidError as e:
        raise ServiceError(ResponseStatus.EMAIL_NOT_VALID, f"Email is not valid: {email} ({e})")
    return result.normalized.lower()
