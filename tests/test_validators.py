"""
Tests for input validation utilities
"""
import pytest
from datetime import datetime, date, timedelta
from decimal import Decimal

from exceptions import ValidationError
from validators import (
    validate_required_fields,
    validate_email,
    validate_phone,
    validate_postal_code,
    validate_url,
    validate_string_length,
    validate_number_range,
    validate_enum,
    validate_password_strength,
    sanitize_string,
    sanitize_filename,
    parse_decimal,
    parse_int,
    parse_bool,
    parse_date,
    parse_datetime,
    validate_search_criteria,
    validate_client_data,
    validate_property_data,
    validate_call_note_data,
    validate_registration_data,
)


@pytest.mark.unit
class TestRequiredFields:
    """Tests for required fields validation"""

    def test_validate_all_fields_present(self):
        """Test validation passes when all fields present"""
        data = {'first_name': 'Peter', 'last_name': 'Müller'}
        is_valid, error = validate_required_fields(data, ['first_name', 'last_name'])
        assert is_valid is True
        assert error is None

    def test_validate_missing_field(self):
        """Test validation fails when field missing"""
        is_valid, error = validate_required_fields({'first_name': 'Peter'}, ['first_name', 'last_name'])
        assert is_valid is False
        assert 'last_name' in error

    def test_validate_empty_field(self):
        """Test validation fails when field is empty string"""
        is_valid, _ = validate_required_fields({'first_name': ''}, ['first_name'])
        assert is_valid is False


@pytest.mark.unit
class TestFieldValidators:
    """Tests for single-field checks"""

    def test_valid_email(self):
        """Test valid email passes"""
        assert validate_email('max.mustermann@realestate.de') == (True, None)

    def test_invalid_email_no_at(self):
        """Test invalid email without @ fails"""
        is_valid, _ = validate_email('invalidemail.de')
        assert is_valid is False

    def test_german_phone_number(self):
        """Test international format with spaces passes"""
        assert validate_phone('+49 (89) 123-4567')[0] is True

    def test_phone_with_letters_fails(self):
        assert validate_phone('089-CALL-ME')[0] is False

    def test_postal_code_five_digits(self):
        """Test German postal codes must be exactly five digits"""
        assert validate_postal_code('80331')[0] is True
        assert validate_postal_code('8033')[0] is False
        assert validate_postal_code('80331a')[0] is False

    def test_url_requires_scheme(self):
        assert validate_url('https://tour.example.de/123')[0] is True
        assert validate_url('tour.example.de')[0] is False

    def test_string_length_bounds(self):
        assert validate_string_length('abc', 1, 3)[0] is True
        assert validate_string_length('abcd', 1, 3)[0] is False
        assert validate_string_length('', 1, 3)[0] is False

    def test_number_range_rejects_bool(self):
        """Test that booleans are not accepted as numbers"""
        assert validate_number_range(True, 0, 10)[0] is False

    def test_number_range_accepts_decimal(self):
        assert validate_number_range(Decimal('5.5'), 0, 10)[0] is True

    def test_enum_is_case_insensitive(self):
        assert validate_enum('apartment', ('APARTMENT', 'HOUSE'))[0] is True
        assert validate_enum('castle', ('APARTMENT', 'HOUSE'))[0] is False


@pytest.mark.unit
class TestPasswordStrength:
    """Tests for the password policy"""

    def test_strong_password(self):
        assert validate_password_strength('Secret123') == (True, None)

    @pytest.mark.parametrize('password', ['Short1', 'alllowercase1', 'ALLUPPERCASE1', 'NoDigitsHere', ''])
    def test_weak_passwords(self, password):
        """Test each policy rule rejects a password"""
        is_valid, error = validate_password_strength(password)
        assert is_valid is False
        assert error


@pytest.mark.unit
class TestSanitization:
    """Tests for input sanitization"""

    def test_sanitize_removes_null_bytes(self):
        assert sanitize_string('  Peter\x00  ') == 'Peter'

    def test_sanitize_truncates(self):
        assert sanitize_string('x' * 20, max_length=5) == 'xxxxx'

    def test_sanitize_filename_path_traversal(self):
        """Test that directory components are stripped"""
        safe = sanitize_filename('../../../etc/passwd')
        assert '/' not in safe
        assert '..' not in safe

    def test_sanitize_filename_empty(self):
        assert sanitize_filename('') == 'file'


@pytest.mark.unit
class TestParsers:
    """Tests for request value parsing"""

    def test_parse_decimal(self):
        assert parse_decimal('450000.50', 'price') == Decimal('450000.50')
        assert parse_decimal('', 'price') is None

    def test_parse_decimal_invalid(self):
        with pytest.raises(ValidationError) as exc_info:
            parse_decimal('viel', 'price')
        assert 'price' in exc_info.value.errors

    @pytest.mark.parametrize('value', ['NaN', 'Infinity', '-inf', float('nan'), float('inf')])
    def test_parse_decimal_rejects_non_finite(self, value):
        with pytest.raises(ValidationError) as exc_info:
            parse_decimal(value, 'price')
        assert exc_info.value.errors == {'price': 'price must be a number'}

    def test_parse_int_rejects_infinity(self):
        with pytest.raises(ValidationError):
            parse_int(float('inf'), 'max_results')

    @pytest.mark.parametrize('value,expected', [
        ('true', True), ('1', True), ('on', True), ('false', False), ('', False), (0, False), (True, True)
    ])
    def test_parse_bool(self, value, expected):
        assert parse_bool(value) is expected

    def test_parse_date_from_timestamp(self):
        assert parse_date('2025-03-01T10:00:00', 'd') == date(2025, 3, 1)

    def test_parse_datetime_converts_to_naive_utc(self):
        """Test that zone-aware timestamps end up as naive UTC"""
        parsed = parse_datetime('2025-03-01T12:00:00+02:00', 'call_date')
        assert parsed == datetime(2025, 3, 1, 10, 0, 0)
        assert parsed.tzinfo is None

    def test_parse_datetime_zulu(self):
        assert parse_datetime('2025-03-01T12:00:00Z', 'call_date') == datetime(2025, 3, 1, 12, 0, 0)


@pytest.mark.unit
class TestSearchCriteriaValidation:
    """Tests for min/max pairs in client search criteria"""

    def test_valid_ranges(self):
        assert validate_search_criteria({'min_budget': 100, 'max_budget': 200}) == {}

    def test_equal_bounds_allowed(self):
        assert validate_search_criteria({'min_rooms': 3, 'max_rooms': 3}) == {}

    @pytest.mark.parametrize('low_key,high_key', [
        ('min_square_meters', 'max_square_meters'),
        ('min_rooms', 'max_rooms'),
        ('min_budget', 'max_budget'),
    ])
    def test_min_greater_than_max_rejected(self, low_key, high_key):
        """Test every range reports its max field when min > max"""
        errors = validate_search_criteria({low_key: 10, high_key: 5})
        assert high_key in errors

    def test_negative_values_rejected(self):
        errors = validate_search_criteria({'min_budget': -1})
        assert 'min_budget' in errors

    def test_nan_budget_is_a_field_error(self):
        errors = validate_search_criteria({'min_budget': 'NaN', 'max_budget': 300000})
        assert errors == {'min_budget': 'min_budget must be a number'}

    def test_unknown_property_type(self):
        errors = validate_search_criteria({'property_types': ['APARTMENT', 'SPACESHIP']})
        assert 'property_types' in errors


@pytest.mark.unit
class TestRecordValidators:
    """Tests for record-level validators raising field maps"""

    def test_client_requires_names(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_client_data({'email': 'peter@example.de'})
        assert set(exc_info.value.errors) >= {'first_name', 'last_name'}

    def test_client_invalid_criteria_prefixed(self):
        """Test that nested criteria errors are reported under search_criteria.*"""
        with pytest.raises(ValidationError) as exc_info:
            validate_client_data({
                'first_name': 'Peter', 'last_name': 'Müller',
                'search_criteria': {'min_budget': 500000, 'max_budget': 400000}
            })
        assert 'search_criteria.max_budget' in exc_info.value.errors

    def test_client_partial_allows_missing_names(self):
        validate_client_data({'phone': '+49 89 1'}, partial=True)

    def test_property_requires_core_fields(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_property_data({})
        assert set(exc_info.value.errors) == {'title', 'property_type', 'listing_type'}

    def test_property_rejects_unknown_enum(self, sample_property_data):
        sample_property_data['heating_type'] = 'NUCLEAR'
        with pytest.raises(ValidationError) as exc_info:
            validate_property_data(sample_property_data)
        assert 'heating_type' in exc_info.value.errors

    def test_property_rooms_range(self, sample_property_data):
        sample_property_data['rooms'] = 0
        with pytest.raises(ValidationError) as exc_info:
            validate_property_data(sample_property_data)
        assert 'rooms' in exc_info.value.errors

    def test_registration_password_policy(self):
        with pytest.raises(ValidationError) as exc_info:
            validate_registration_data({
                'email': 'new@realestate.de', 'password': 'weak',
                'first_name': 'Neu', 'last_name': 'Agent'
            })
        assert 'password' in exc_info.value.errors


@pytest.mark.unit
class TestCallNoteValidation:
    """Tests for call note rules"""

    @pytest.fixture
    def note(self):
        return {
            'client_id': 'c-1',
            'call_date': (datetime.utcnow() - timedelta(hours=2)).isoformat(),
            'call_type': 'PHONE_INBOUND',
            'subject': 'Besichtigung',
            'notes': 'Kunde möchte die Wohnung am Samstag besichtigen.',
        }

    def test_valid_note(self, note):
        validate_call_note_data(note)

    def test_future_call_date_rejected(self, note):
        note['call_date'] = (datetime.utcnow() + timedelta(days=1)).isoformat()
        with pytest.raises(ValidationError) as exc_info:
            validate_call_note_data(note)
        assert 'call_date' in exc_info.value.errors

    def test_notes_too_short(self, note):
        note['notes'] = 'kurz'
        with pytest.raises(ValidationError) as exc_info:
            validate_call_note_data(note)
        assert 'notes' in exc_info.value.errors

    def test_duration_over_a_day(self, note):
        note['duration_minutes'] = 1441
        with pytest.raises(ValidationError) as exc_info:
            validate_call_note_data(note)
        assert 'duration_minutes' in exc_info.value.errors

    def test_follow_up_requires_date(self, note):
        note['follow_up_required'] = True
        with pytest.raises(ValidationError) as exc_info:
            validate_call_note_data(note)
        assert 'follow_up_date' in exc_info.value.errors

    def test_follow_up_date_must_be_future(self, note):
        note['follow_up_required'] = True
        note['follow_up_date'] = datetime.utcnow().date().isoformat()
        with pytest.raises(ValidationError) as exc_info:
            validate_call_note_data(note)
        assert 'follow_up_date' in exc_info.value.errors

    def test_follow_up_tomorrow_ok(self, note):
        note['follow_up_required'] = True
        note['follow_up_date'] = (datetime.utcnow().date() + timedelta(days=1)).isoformat()
        validate_call_note_data(note)

    def test_unknown_outcome(self, note):
        note['outcome'] = 'MAYBE'
        with pytest.raises(ValidationError) as exc_info:
            validate_call_note_data(note)
        assert 'outcome' in exc_info.value.errors
