"""
Validation utilities

Each parser either returns a clean value or raises ValidationError naming
the offending field.
"""
import math
from datetime import datetime

from tripbid.errors import ValidationError


def require_fields(data, fields):
    """
    Ensure every field is present and not blank

    Args:
        data (dict): Request payload
        fields (list): Required field names

    Raises:
        ValidationError: on the first missing field
    """
    for field in fields:
        value = data.get(field)
        if value is None or (isinstance(value, str) and not value.strip()):
            raise ValidationError(f'{field} is required', field=field)


def parse_number(value, field, minimum=None, strictly_positive=False):
    """
    Parse a numeric value

    Args:
        value: Raw value from the request
        field (str): Field name for error messages
        minimum (float): Inclusive lower bound
        strictly_positive (bool): Require value > 0

    Returns:
        float: Parsed value
    """
    if value is None or isinstance(value, bool):
        raise ValidationError(f'{field} must be a number', field=field)
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f'{field} must be a number', field=field)

    if math.isnan(number) or math.isinf(number):
        raise ValidationError(f'{field} must be a number', field=field)
    if strictly_positive and number <= 0:
        raise ValidationError(f'{field} must be greater than 0', field=field)
    if minimum is not None and number < minimum:
        raise ValidationError(f'{field} must be at least {minimum}', field=field)

    return number


def parse_int(value, field, minimum=None, maximum=None):
    """Parse an integer, rejecting floats with a fractional part"""
    if value is None or isinstance(value, bool):
        raise ValidationError(f'{field} must be an integer', field=field)
    try:
        number = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f'{field} must be an integer', field=field)
    if isinstance(value, float) and value != number:
        raise ValidationError(f'{field} must be an integer', field=field)

    if minimum is not None and number < minimum:
        raise ValidationError(f'{field} must be at least {minimum}', field=field)
    if maximum is not None and number > maximum:
        raise ValidationError(f'{field} must be at most {maximum}', field=field)

    return number


def parse_datetime(value, field):
    """
    Parse an ISO 8601 date or datetime string

    Returns:
        datetime: Parsed value (naive values are kept as given)
    """
    if isinstance(value, datetime):
        return value
    if not value or not isinstance(value, str):
        raise ValidationError(f'{field} is required', field=field)

    raw = value.strip()
    if raw.endswith('Z'):
        raw = raw[:-1] + '+00:00'
    try:
        return datetime.fromisoformat(raw)
    except ValueError:
        raise ValidationError(f'{field} must be an ISO 8601 date', field=field)


def parse_rating(value):
    """Ratings are whole stars between 1 and 5"""
    return parse_int(value, 'rating', minimum=1, maximum=5)


def clean_text(value, max_length=None):
    """Strip a free-text field; blank becomes None"""
    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None
    if max_length is not None:
        text = text[:max_length]
    return text
