from datetime import date, datetime

_DATE_FORMATS = ('%Y-%m-%d', '%Y/%m/%d', '%Y.%m.%d')


def today() -> date:
    return date.today()


def parse_date(value) -> date | None:
    """Parse a calendar date, returning None on failure.

    Accepts YYYY-MM-DD (or / and . separators) and ISO datetimes, in which
    case only the date part is kept.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value.strip():
        return None
    value = value.strip()
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(value, fmt).date()
        except ValueError:
            continue
    try:
        return datetime.fromisoformat(value.replace('Z', '+00:00')).date()
    except ValueError:
        return None


def is_past(d: date, reference: date | None = None) -> bool:
    return d < (reference or today())
