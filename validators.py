"""
Input Validation & Sanitization Utilities
Field-level checks return (is_valid, error_message); the record-level
validators collect a field map and raise ValidationError.
"""
import re
from datetime import datetime, date, timezone
from decimal import Decimal, InvalidOperation
from typing import Dict, Any, List, Optional, Tuple
from werkzeug.utils import secure_filename
import logging

from constants import (
    PROPERTY_TYPES, LISTING_TYPES, PROPERTY_STATUSES, HEATING_TYPES,
    ENERGY_EFFICIENCY_CLASSES, LANGUAGE_PREFERENCES, CALL_TYPES, CALL_OUTCOMES,
    POSTAL_CODE_PATTERN, PHONE_PATTERN as PHONE_REGEX,
    CALL_NOTE_SUBJECT_MAX, CALL_NOTE_NOTES_MIN, CALL_NOTE_NOTES_MAX,
    CALL_DURATION_MAX_MINUTES, PASSWORD_MIN_LENGTH,
)
from exceptions import ValidationError

logger = logging.getLogger(__name__)

# Regex patterns
EMAIL_PATTERN = re.compile(r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$')
PHONE_PATTERN = re.compile(PHONE_REGEX)
POSTAL_CODE = re.compile(POSTAL_CODE_PATTERN)
URL_PATTERN = re.compile(r'^https?://[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}.*$')


def validate_required_fields(data: Dict[str, Any], required_fields: List[str]) -> Tuple[bool, Optional[str]]:
    """
    Validate that all required fields are present in the data

    Args:
        data: Dictionary of input data
        required_fields: List of required field names

    Returns:
        Tuple of (is_valid, error_message)
    """
    missing_fields = [field for field in required_fields if field not in data or data[field] is None or data[field] == '']

    if missing_fields:
        return False, f"Missing required fields: {', '.join(missing_fields)}"

    return True, None


def validate_email(email: str) -> Tuple[bool, Optional[str]]:
    """
    Validate email format

    Args:
        email: Email address to validate

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not email or not isinstance(email, str):
        return False, "Email must be a non-empty string"

    if len(email) > 254:  # RFC 5321
        return False, "Email address too long"

    if not EMAIL_PATTERN.match(email):
        return False, "Invalid email format"

    return True, None


def validate_phone(phone: str) -> Tuple[bool, Optional[str]]:
    """Phone numbers may contain digits, spaces, dashes, parentheses and a leading +"""
    if not phone or not isinstance(phone, str):
        return False, "Phone must be a non-empty string"

    if len(phone) > 50:
        return False, "Phone number too long"

    if not PHONE_PATTERN.match(phone):
        return False, "Invalid phone number format"

    return True, None


def validate_postal_code(postal_code: str) -> Tuple[bool, Optional[str]]:
    """German postal codes: exactly five digits"""
    if not isinstance(postal_code, str) or not POSTAL_CODE.match(postal_code):
        return False, "Postal code must be 5 digits"
    return True, None


def validate_url(url: str) -> Tuple[bool, Optional[str]]:
    if not url or not isinstance(url, str):
        return False, "URL must be a non-empty string"

    if not URL_PATTERN.match(url):
        return False, "Invalid URL format"

    if len(url) > 500:
        return False, "URL too long"

    return True, None


def validate_string_length(value: str, min_length: int = 0, max_length: int = 1000) -> Tuple[bool, Optional[str]]:
    """
    Validate string length is within acceptable range

    Args:
        value: String to validate
        min_length: Minimum allowed length
        max_length: Maximum allowed length

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not isinstance(value, str):
        return False, "Value must be a string"

    if len(value) < min_length:
        return False, f"Value too short (minimum {min_length} characters)"

    if len(value) > max_length:
        return False, f"Value too long (maximum {max_length} characters)"

    return True, None


def validate_number_range(value, min_value: Optional[float] = None, max_value: Optional[float] = None) -> Tuple[bool, Optional[str]]:
    """
    Validate number is within acceptable range

    Args:
        value: Number to validate
        min_value: Minimum allowed value
        max_value: Maximum allowed value

    Returns:
        Tuple of (is_valid, error_message)
    """
    if isinstance(value, bool) or not isinstance(value, (int, float, Decimal)):
        return False, "Value must be a number"

    if min_value is not None and value < min_value:
        return False, f"Value too small (minimum {min_value})"

    if max_value is not None and value > max_value:
        return False, f"Value too large (maximum {max_value})"

    return True, None


def validate_enum(value: Any, allowed, label: str = "Value") -> Tuple[bool, Optional[str]]:
    if not isinstance(value, str) or value.upper() not in allowed:
        return False, f"{label} must be one of: {', '.join(allowed)}"
    return True, None


def validate_password_strength(password: str) -> Tuple[bool, Optional[str]]:
    """
    At least 8 characters with an upper-case letter, a lower-case letter
    and a digit.
    """
    if not password or not isinstance(password, str):
        return False, "Password is required"

    if len(password) < PASSWORD_MIN_LENGTH:
        return False, f"Password must be at least {PASSWORD_MIN_LENGTH} characters long"

    if len(password) > 128:
        return False, "Password must not exceed 128 characters"

    if not re.search(r'[A-Z]', password):
        return False, "Password must contain at least one uppercase letter"

    if not re.search(r'[a-z]', password):
        return False, "Password must contain at least one lowercase letter"

    if not re.search(r'\d', password):
        return False, "Password must contain at least one digit"

    return True, None


def sanitize_string(value: str, max_length: int = 1000) -> str:
    """
    Sanitize string input by removing null bytes and surrounding whitespace

    Args:
        value: String to sanitize
        max_length: Maximum allowed length

    Returns:
        Sanitized string
    """
    if not isinstance(value, str):
        return str(value)

    sanitized = value.replace('\x00', '').strip()

    if len(sanitized) > max_length:
        sanitized = sanitized[:max_length]

    return sanitized


def sanitize_filename(filename: str) -> str:
    """Sanitize filename to prevent directory traversal attacks"""
    safe_name = secure_filename(filename or '')

    if not safe_name:
        safe_name = 'file'

    return safe_name


# ============================================================================
# PARSING HELPERS
# ============================================================================

def parse_decimal(value, field: str) -> Optional[Decimal]:
    if value is None or value == '':
        return None
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a number", field=field)
    try:
        result = Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValidationError(f"{field} must be a number", field=field)
    # NaN and Infinity parse but cannot be compared
    if not result.is_finite():
        raise ValidationError(f"{field} must be a number", field=field)
    return result


def parse_int(value, field: str) -> Optional[int]:
    if value is None or value == '':
        return None
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer", field=field)
    try:
        return int(value)
    except (TypeError, ValueError, OverflowError):
        raise ValidationError(f"{field} must be an integer", field=field)


def parse_bool(value) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in ('true', '1', 'yes', 'on')
    return bool(value)


def parse_date(value, field: str) -> Optional[date]:
    """Accept a date, a datetime, or an ISO string (YYYY-MM-DD or full timestamp)"""
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError:
        raise ValidationError(f"{field} must be an ISO date (YYYY-MM-DD)", field=field)


def parse_datetime(value, field: str) -> Optional[datetime]:
    """ISO timestamps; timezone-aware values are converted to naive UTC"""
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        text = str(value).strip()
        if text.endswith('Z'):
            text = text[:-1] + '+00:00'
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            raise ValidationError(f"{field} must be an ISO timestamp", field=field)
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def _check(errors: Dict[str, str], field: str, result: Tuple[bool, Optional[str]]):
    is_valid, error = result
    if not is_valid and field not in errors:
        errors[field] = error


def _raise_if_errors(errors: Dict[str, str], message: str = "Validation failed"):
    if errors:
        logger.debug(f"Validation failed: {errors}")
        raise ValidationError(message, errors=errors)


# ============================================================================
# RECORD VALIDATORS
# ============================================================================

def validate_search_criteria(data: Dict[str, Any]) -> Dict[str, str]:
    """
    Check the min/max pairs of a search criteria payload.

    Returns:
        Field map of errors (empty when valid)
    """
    errors = {}
    if not data:
        return errors

    pairs = (
        ('min_square_meters', 'max_square_meters', 'square meters'),
        ('min_rooms', 'max_rooms', 'rooms'),
        ('min_budget', 'max_budget', 'budget'),
    )
    for low_key, high_key, label in pairs:
        try:
            low = parse_decimal(data.get(low_key), low_key)
            high = parse_decimal(data.get(high_key), high_key)
        except ValidationError as e:
            errors.update(e.errors)
            continue

        for key, value in ((low_key, low), (high_key, high)):
            if value is not None and value < 0:
                errors[key] = f"{key} must not be negative"

        if low is not None and high is not None and high < low:
            errors[high_key] = f"Maximum {label} must be greater than or equal to minimum {label}"

    for key in ('property_types',):
        values = data.get(key)
        if isinstance(values, str):
            values = [v.strip() for v in values.split(',') if v.strip()]
        for value in values or []:
            if str(value).upper() not in PROPERTY_TYPES:
                errors[key] = f"Unknown property type: {value}"
                break

    return errors


def validate_client_data(data: Dict[str, Any], partial: bool = False):
    """Raise ValidationError with a field map if the client payload is invalid."""
    errors = {}
    if not partial:
        for field in ('first_name', 'last_name'):
            if not data.get(field) or not str(data.get(field)).strip():
                errors[field] = f"{field} is required"

    for field in ('first_name', 'last_name'):
        if data.get(field) and field not in errors:
            _check(errors, field, validate_string_length(data[field], 1, 100))

    if data.get('email'):
        _check(errors, 'email', validate_email(data['email']))
    if data.get('phone'):
        _check(errors, 'phone', validate_phone(data['phone']))
    if data.get('address_postal_code'):
        _check(errors, 'address_postal_code', validate_postal_code(data['address_postal_code']))
    if data.get('address_street'):
        _check(errors, 'address_street', validate_string_length(data['address_street'], 0, 255))
    if data.get('address_city'):
        _check(errors, 'address_city', validate_string_length(data['address_city'], 0, 100))

    criteria = data.get('search_criteria')
    if criteria:
        for key, message in validate_search_criteria(criteria).items():
            errors[f"search_criteria.{key}"] = message

    _raise_if_errors(errors)


def validate_property_data(data: Dict[str, Any], partial: bool = False):
    """Raise ValidationError with a field map if the property payload is invalid."""
    errors = {}
    if not partial:
        for field in ('title', 'property_type', 'listing_type'):
            if not data.get(field):
                errors[field] = f"{field} is required"

    if data.get('title') and 'title' not in errors:
        _check(errors, 'title', validate_string_length(data['title'], 1, 255))

    enums = (
        ('property_type', PROPERTY_TYPES, 'Property type'),
        ('listing_type', LISTING_TYPES, 'Listing type'),
        ('status', PROPERTY_STATUSES, 'Status'),
        ('heating_type', HEATING_TYPES, 'Heating type'),
        ('energy_efficiency_class', ENERGY_EFFICIENCY_CLASSES, 'Energy efficiency class'),
    )
    for field, allowed, label in enums:
        if data.get(field) and field not in errors:
            _check(errors, field, validate_enum(data[field], allowed, label))

    if data.get('address_postal_code'):
        _check(errors, 'address_postal_code', validate_postal_code(data['address_postal_code']))
    if data.get('contact_email'):
        _check(errors, 'contact_email', validate_email(data['contact_email']))
    if data.get('contact_phone'):
        _check(errors, 'contact_phone', validate_phone(data['contact_phone']))
    if data.get('virtual_tour_url'):
        _check(errors, 'virtual_tour_url', validate_url(data['virtual_tour_url']))

    ranges = (
        ('living_area_sqm', 0, 10000),
        ('total_area_sqm', 0, 100000),
        ('plot_area_sqm', 0, 1000000),
        ('rooms', 0.5, 50),
        ('bedrooms', 0, 20),
        ('bathrooms', 0, 20),
        ('floors', 0, 200),
        ('construction_year', 1800, 2100),
        ('last_renovation_year', 1800, 2100),
        ('price', 0, None),
        ('additional_costs', 0, None),
        ('heating_costs', 0, None),
        ('energy_consumption_kwh', 0, None),
    )
    for field, low, high in ranges:
        if data.get(field) is None or data.get(field) == '':
            continue
        try:
            value = parse_decimal(data[field], field)
        except ValidationError as e:
            errors.update(e.errors)
            continue
        _check(errors, field, validate_number_range(value, low, high))

    _raise_if_errors(errors)


def validate_call_note_data(data: Dict[str, Any], now: Optional[datetime] = None):
    """
    Call note rules: call date not in the future, duration 0-1440 minutes,
    subject up to 200 characters, notes 10-5000 characters, and a future
    follow-up date whenever a follow-up is required.
    """
    now = now or datetime.utcnow()
    errors = {}

    if not data.get('client_id'):
        errors['client_id'] = "client_id is required"

    try:
        call_date = parse_datetime(data.get('call_date'), 'call_date')
        if call_date is None:
            errors['call_date'] = "call_date is required"
        elif call_date > now:
            errors['call_date'] = "Call date cannot be in the future"
    except ValidationError as e:
        errors.update(e.errors)

    if not data.get('call_type'):
        errors['call_type'] = "call_type is required"
    else:
        _check(errors, 'call_type', validate_enum(data['call_type'], CALL_TYPES, 'Call type'))

    subject = data.get('subject')
    if not subject or not str(subject).strip():
        errors['subject'] = "subject is required"
    else:
        _check(errors, 'subject', validate_string_length(subject, 1, CALL_NOTE_SUBJECT_MAX))

    notes = data.get('notes')
    if not notes or not str(notes).strip():
        errors['notes'] = "notes is required"
    else:
        _check(errors, 'notes', validate_string_length(notes, CALL_NOTE_NOTES_MIN, CALL_NOTE_NOTES_MAX))

    if data.get('duration_minutes') not in (None, ''):
        try:
            duration = parse_int(data['duration_minutes'], 'duration_minutes')
            _check(errors, 'duration_minutes',
                   validate_number_range(duration, 0, CALL_DURATION_MAX_MINUTES))
        except ValidationError as e:
            errors.update(e.errors)

    if data.get('outcome'):
        _check(errors, 'outcome', validate_enum(data['outcome'], CALL_OUTCOMES, 'Outcome'))

    if parse_bool(data.get('follow_up_required', False)):
        try:
            follow_up = parse_date(data.get('follow_up_date'), 'follow_up_date')
            if follow_up is None:
                errors['follow_up_date'] = "Follow-up date is required when follow-up is needed"
            elif follow_up <= now.date():
                errors['follow_up_date'] = "Follow-up date must be in the future"
        except ValidationError as e:
            errors.update(e.errors)

    _raise_if_errors(errors)


def validate_registration_data(data: Dict[str, Any]):
    errors = {}
    for field in ('email', 'password', 'first_name', 'last_name'):
        if not data.get(field):
            errors[field] = f"{field} is required"

    if data.get('email'):
        _check(errors, 'email', validate_email(data['email']))
    if data.get('password'):
        _check(errors, 'password', validate_password_strength(data['password']))
    for field in ('first_name', 'last_name'):
        if data.get(field):
            _check(errors, field, validate_string_length(data[field], 1, 100))
    if data.get('phone'):
        _check(errors, 'phone', validate_phone(data['phone']))
    if data.get('language_preference'):
        _check(errors, 'language_preference',
               validate_enum(data['language_preference'], LANGUAGE_PREFERENCES, 'Language'))

    _raise_if_errors(errors)
