# milk_ledger/utils.py
import calendar
import re
from datetime import date, datetime
from decimal import Decimal, InvalidOperation

import pytz
from django.conf import settings
from django.utils import timezone

from .exceptions import ValidationError

MONTH_RE = re.compile(r'^(\d{4})-(\d{2})$')
CENTS = Decimal('0.01')


def get_business_timezone():
    return pytz.timezone(settings.BUSINESS_TIMEZONE)


def local_now():
    """Current time in the dairy's timezone"""
    return timezone.now().astimezone(get_business_timezone())


def local_today():
    return local_now().date()


def parse_date(value, field='date'):
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return datetime.strptime(str(value), '%Y-%m-%d').date()
    except (TypeError, ValueError):
        raise ValidationError(f'Invalid {field} format. Use YYYY-MM-DD', entity=field)


def parse_month(value):
    """Validate a billing month and return it as 'YYYY-MM'."""
    if isinstance(value, date):
        return value.strftime('%Y-%m')
    match = MONTH_RE.match(str(value or '').strip())
    if not match or not 1 <= int(match.group(2)) <= 12:
        raise ValidationError('Invalid month format. Use YYYY-MM', entity='month')
    return match.group(0)


def month_bounds(month):
    """First and last calendar day of a 'YYYY-MM' month."""
    year, mon = (int(part) for part in parse_month(month).split('-'))
    last_day = calendar.monthrange(year, mon)[1]
    return date(year, mon, 1), date(year, mon, last_day)


def month_of(day):
    return day.strftime('%Y-%m')


def days_between(start, end):
    """Inclusive day count, zero when the range is empty."""
    if end < start:
        return 0
    return (end - start).days + 1


def payment_due_date(now=None):
    """Reminders are due on a fixed day of the month after ``now``."""
    today = now or local_now()
    if isinstance(today, datetime):
        today = today.date()
    if today.month == 12:
        return date(today.year + 1, 1, settings.PAYMENT_DUE_DAY)
    return date(today.year, today.month + 1, settings.PAYMENT_DUE_DAY)


def to_decimal(value, field):
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool) or value is None or value == '':
        raise ValidationError(f'{field} is required', entity=field)
    try:
        result = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationError(f'{field} must be a number', entity=field)
    if not result.is_finite():
        raise ValidationError(f'{field} must be a number', entity=field)
    return result


def check_digits(value, field, integer_digits, decimal_places=None):
    """Reject a Decimal that does not fit the column it is stored in.

    ``integer_digits`` bounds the digits before the point. With
    ``decimal_places`` None the fractional part is left to the caller.
    """
    if abs(value) >= Decimal(10) ** integer_digits:
        raise ValidationError(f'{field} is too large', entity=field)
    if decimal_places is not None and value != value.quantize(Decimal(1).scaleb(-decimal_places)):
        raise ValidationError(f'{field} allows at most {decimal_places} decimal places', entity=field)
    return value


def money(value):
    return Decimal(value).quantize(CENTS)
