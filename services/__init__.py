"""
Services package for the MarklerApp CRM backend.
Contains the per-agent repositories and the domain services built on them.
"""

from services.agents_repository import AgentsRepository
from services.clients_repository import ClientsRepository
from services.properties_repository import PropertiesRepository
from services.property_images_repository import PropertyImagesRepository
from services.call_notes_repository import CallNotesRepository
from services.attachments_repository import AttachmentsRepository
from services.auth_service import AuthService
from services.password_reset_service import PasswordResetService
from services.matching_service import MatchingService
from services.gdpr_service import GdprService
from services.dashboard_service import DashboardService
from services.call_summary_service import CallSummaryService

__all__ = [
    'AgentsRepository',
    'ClientsRepository',
    'PropertiesRepository',
    'PropertyImagesRepository',
    'CallNotesRepository',
    'AttachmentsRepository',
    'AuthService',
    'PasswordResetService',
    'MatchingService',
    'GdprService',
    'DashboardService',
    'CallSummaryService'
]
