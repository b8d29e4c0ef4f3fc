"""
Enumerations, limits and messages shared across the CRM backend.

Enum values are stored as plain strings in the database; the tuples below are
the allowed values.
"""

# =============================================================================
# ENUMERATIONS
# =============================================================================

PROPERTY_TYPES = (
    'APARTMENT', 'HOUSE', 'TOWNHOUSE', 'VILLA', 'PENTHOUSE', 'LOFT', 'DUPLEX',
    'STUDIO', 'OFFICE', 'RETAIL', 'WAREHOUSE', 'INDUSTRIAL', 'RESTAURANT',
    'HOTEL', 'PARKING_SPACE', 'GARAGE', 'LAND', 'FARM', 'CASTLE', 'OTHER',
)

LISTING_TYPES = ('SALE', 'RENT', 'LEASE')

PROPERTY_STATUSES = (
    'AVAILABLE', 'RESERVED', 'SOLD', 'RENTED', 'WITHDRAWN', 'UNDER_CONSTRUCTION',
)

HEATING_TYPES = (
    'GAS', 'OIL', 'ELECTRIC', 'DISTRICT_HEATING', 'HEAT_PUMP', 'SOLAR',
    'WOOD_PELLETS', 'GEOTHERMAL', 'COAL', 'OTHER',
)

ENERGY_EFFICIENCY_CLASSES = ('A+', 'A', 'B', 'C', 'D', 'E', 'F', 'G', 'H')

PROPERTY_IMAGE_TYPES = (
    'GENERAL', 'EXTERIOR', 'INTERIOR', 'KITCHEN', 'BATHROOM', 'BEDROOM',
    'LIVING_ROOM', 'BALCONY_TERRACE', 'GARDEN', 'GARAGE_PARKING', 'BASEMENT',
    'ATTIC', 'FLOOR_PLAN', 'ENERGY_CERTIFICATE', 'LOCATION_MAP',
)

FILE_ATTACHMENT_TYPES = (
    'CONTRACT', 'FLOOR_PLAN', 'ID_DOCUMENT', 'CERTIFICATE', 'FINANCIAL',
    'INSPECTION_REPORT', 'OTHER',
)

LANGUAGE_PREFERENCES = ('DE', 'EN')

CALL_TYPES = ('PHONE_INBOUND', 'PHONE_OUTBOUND', 'EMAIL', 'MEETING', 'OTHER')

CALL_OUTCOMES = (
    'INTERESTED', 'NOT_INTERESTED', 'SCHEDULED_VIEWING', 'OFFER_MADE', 'DEAL_CLOSED',
)

GDPR_EXPORT_TYPES = ('FULL_EXPORT', 'CLIENTS_ONLY', 'PROPERTIES_ONLY', 'CALL_NOTES_ONLY')
GDPR_EXPORT_FORMATS = ('JSON', 'PDF')

PROPERTY_FEATURE_FLAGS = (
    'has_elevator', 'has_balcony', 'has_terrace', 'has_garden', 'has_garage',
    'has_parking', 'has_basement', 'has_attic', 'is_barrier_free',
    'pets_allowed', 'furnished',
)

ROLE_AGENT = 'ROLE_AGENT'

# =============================================================================
# FILE LIMITS
# =============================================================================

MB = 1024 * 1024
MAX_IMAGE_SIZE_BYTES = 5 * MB
MAX_EXPOSE_SIZE_BYTES = 50 * MB
MAX_ATTACHMENT_SIZE_BYTES = 10 * MB

THUMBNAIL_SIZE = 200

ALLOWED_IMAGE_MIME_TYPES = {
    'image/jpeg', 'image/jpg', 'image/png', 'image/gif', 'image/webp',
}

ALLOWED_EXPOSE_MIME_TYPES = {'application/pdf'}

ALLOWED_ATTACHMENT_MIME_TYPES = {
    'application/pdf',
    'application/msword',
    'application/vnd.openxmlformats-officedocument.wordprocessingml.document',
    'application/vnd.ms-excel',
    'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet',
    'image/jpeg',
    'image/png',
    'image/gif',
}

# =============================================================================
# VALIDATION
# =============================================================================

DEFAULT_ADDRESS_COUNTRY = 'Germany'
POSTAL_CODE_PATTERN = r'^[0-9]{5}$'
PHONE_PATTERN = r'^[+]?[0-9\s\-()]+$'

CALL_NOTE_SUBJECT_MAX = 200
CALL_NOTE_NOTES_MIN = 10
CALL_NOTE_NOTES_MAX = 5000
CALL_DURATION_MAX_MINUTES = 1440

PASSWORD_MIN_LENGTH = 8

DUPLICATE_CLIENT_EMAIL_MESSAGE = 'A client with this email already exists'
DUPLICATE_AGENT_EMAIL_MESSAGE = 'Email is already in use'
INVALID_CREDENTIALS_MESSAGE = 'Invalid email or password'
PASSWORD_RESET_GENERIC_MESSAGE = (
    'If an account with this email exists, a password reset link has been sent.'
)

# =============================================================================
# PAGINATION
# =============================================================================

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100
DEFAULT_SORT_FIELD = 'created_at'
DEFAULT_SORT_DIRECTION = 'desc'

# =============================================================================
# DASHBOARD
# =============================================================================

DAYS_WITHOUT_CONTACT_THRESHOLD = 30
HOT_LEAD_DAYS_THRESHOLD = 7
MAX_URGENT_CLIENT_INSIGHTS = 10
MAX_SUGGESTED_ACTIONS = 5

# =============================================================================
# AI SUMMARY
# =============================================================================

MAX_AI_SUMMARY_WORDS = 300
