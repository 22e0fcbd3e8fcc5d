import math

from finance.dates import is_past, parse_date
from finance.errors import ValidationError


def is_blank(value) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def to_number(value) -> float | None:
    """Coerce a JSON number or numeric string to float, None if it is not one."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def parse_positive(value, message) -> float:
    number = to_number(value)
    if number is None or number <= 0:
        raise ValidationError(message)
    return number


def parse_non_negative(value, message) -> float:
    number = to_number(value)
    if number is None or number < 0:
        raise ValidationError(message)
    return number


def parse_text(value, message, type_message=None) -> str:
    if value is not None and not isinstance(value, str):
        raise ValidationError(type_message or message)
    if is_blank(value):
        raise ValidationError(message)
    return value.strip()


def parse_optional_text(value) -> str | None:
    # null and "" clear the field
    if is_blank(value):
        return None
    return str(value).strip()


def parse_choice(value, choices, message) -> str:
    if value not in choices:
        raise ValidationError(message)
    return value


def parse_calendar_date(value, message):
    parsed = parse_date(value)
    if parsed is None:
        raise ValidationError(message)
    return parsed


def parse_future_date(value, invalid_message, past_message):
    """Parse a date that may be today but not earlier."""
    parsed = parse_calendar_date(value, invalid_message)
    if is_past(parsed):
        raise ValidationError(past_message)
    return parsed
