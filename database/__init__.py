"""
Database package for the MarklerApp CRM.
Provides SQLAlchemy models, connection management, and session handling.
"""

from database.connection import (
    Base,
    configure_database,
    get_engine,
    get_db_session,
    init_db,
    drop_db,
    check_db_connection
)

from database.models import (
    Agent,
    Client,
    PropertySearchCriteria,
    Property,
    PropertyImage,
    CallNote,
    FileAttachment,
    PasswordResetToken,
    GdprExportAuditLog
)

__all__ = [
    # Connection
    'Base',
    'configure_database',
    'get_engine',
    'get_db_session',
    'init_db',
    'drop_db',
    'check_db_connection',
    # Models
    'Agent',
    'Client',
    'PropertySearchCriteria',
    'Property',
    'PropertyImage',
    'CallNote',
    'FileAttachment',
    'PasswordResetToken',
    'GdprExportAuditLog'
]
