"""
GDPR Service - right-of-access exports of everything stored for an agent.

Every export attempt (JSON or PDF, full or partial, successful or not) leaves
exactly one row in gdpr_export_audit_logs. The audit row is written in its own
session so that a failing audit never fails the export it describes.
"""

import json
import logging
import time
from datetime import datetime
from typing import Callable, Dict, List, Tuple

from sqlalchemy.orm import Session

from database.connection import get_db_session
from database.models import (
    Agent, Client, Property, PropertyImage, PropertySearchCriteria, CallNote, GdprExportAuditLog,
)
from exceptions import NotFoundError
from services.gdpr_pdf import build_gdpr_pdf

logger = logging.getLogger(__name__)

EXPORT_VERSION = "1.0"
DATA_CONTROLLER = "MarklerApp Real Estate CRM"
GDPR_STATEMENT = (
    "This export contains all personal data stored in the MarklerApp CRM system as required "
    "by GDPR Article 15 (Right of Access). The data has been exported in a structured, "
    "commonly used, and machine-readable format."
)
PURPOSE_OF_PROCESSING = (
    "The personal data is processed for the purpose of real estate client relationship "
    "management, property portfolio management, and communication tracking for real estate "
    "agents in accordance with GDPR regulations."
)

# Rough per-record JSON weight used by export_summary
SIZE_KB_PER_CLIENT = 5
SIZE_KB_PER_PROPERTY = 10
SIZE_KB_PER_CALL_NOTE = 2
SIZE_KB_OVERHEAD = 50


def build_metadata() -> Dict:
    return {
        'export_timestamp': datetime.utcnow().isoformat(),
        'export_version': EXPORT_VERSION,
        'data_controller': DATA_CONTROLLER,
        'gdpr_statement': GDPR_STATEMENT,
        'purpose_of_processing': PURPOSE_OF_PROCESSING
    }


def export_filename(prefix: str = 'gdpr_export', extension: str = 'json', now: datetime = None) -> str:
    """gdpr_export_20250101_120000.json"""
    stamp = (now or datetime.now()).strftime('%Y%m%d_%H%M%S')
    return f"{prefix}_{stamp}.{extension}"


def serialized_size(payload: Dict) -> int:
    return len(json.dumps(payload, default=str, ensure_ascii=False).encode('utf-8'))


class GdprService:
    """
    Builds exports for one agent and records the audit trail.

    Args:
        session: session used to read the agent's data
        agent_id: the exporting agent
        ip_address / user_agent: request details stored on the audit row
        audit_session_factory: context manager yielding the session the audit
            row is written in; defaults to a fresh get_db_session()
    """

    def __init__(self, session: Session, agent_id: str, ip_address: str = None,
                 user_agent: str = None, audit_session_factory: Callable = None):
        self.session = session
        self.agent_id = agent_id
        self.ip_address = ip_address
        self.user_agent = (user_agent or '')[:500] or None
        self.audit_session_factory = audit_session_factory or get_db_session

    # =========================================================================
    # DATA COLLECTION
    # =========================================================================

    def _agent(self) -> Agent:
        agent = self.session.query(Agent).filter(Agent.id == self.agent_id).first()
        if not agent:
            raise NotFoundError('Agent', self.agent_id)
        return agent

    def _clients(self) -> List[Dict]:
        clients = self.session.query(Client).filter(
            Client.agent_id == self.agent_id
        ).order_by(Client.created_at, Client.id).all()
        return [c.to_dict(include_criteria=True) for c in clients]

    def _properties(self) -> List[Dict]:
        properties = self.session.query(Property).filter(
            Property.agent_id == self.agent_id
        ).order_by(Property.created_at, Property.id).all()
        # Image metadata only; blobs and thumbnails stay out of the export
        result = []
        for prop in properties:
            data = prop.to_dict(include_images=True)
            for image in data['images']:
                image.pop('thumbnail_data', None)
            result.append(data)
        return result

    def _call_notes(self) -> List[Dict]:
        notes = self.session.query(CallNote).filter(
            CallNote.agent_id == self.agent_id
        ).order_by(CallNote.call_date, CallNote.id).all()
        return [n.to_dict() for n in notes]

    def get_statistics(self) -> Dict:
        return {
            'total_clients': self.session.query(Client).filter(
                Client.agent_id == self.agent_id).count(),
            'total_properties': self.session.query(Property).filter(
                Property.agent_id == self.agent_id).count(),
            'total_call_notes': self.session.query(CallNote).filter(
                CallNote.agent_id == self.agent_id).count(),
            'total_search_criteria': self.session.query(PropertySearchCriteria).join(Client).filter(
                Client.agent_id == self.agent_id).count(),
            'total_property_images': self.session.query(PropertyImage).join(Property).filter(
                Property.agent_id == self.agent_id).count()
        }

    def _build_full_export(self) -> Dict:
        agent = self._agent()
        return {
            'metadata': build_metadata(),
            'agent': agent.to_dict(),
            'clients': self._clients(),
            'properties': self._properties(),
            'call_notes': self._call_notes(),
            'statistics': self.get_statistics()
        }

    # =========================================================================
    # AUDIT
    # =========================================================================

    def _write_audit(self, export_type: str, export_format: str, records: int = None,
                     size_bytes: int = None, elapsed_ms: int = 0, success: bool = True,
                     error_message: str = None):
        try:
            with self.audit_session_factory() as audit_session:
                audit_session.add(GdprExportAuditLog(
                    agent_id=self.agent_id,
                    export_type=export_type,
                    export_format=export_format,
                    export_timestamp=datetime.utcnow(),
                    ip_address=self.ip_address,
                    user_agent=self.user_agent,
                    records_exported=records,
                    export_size_bytes=size_bytes,
                    success=success,
                    error_message=error_message,
                    processing_time_ms=elapsed_ms
                ))
            logger.info(f"GDPR export audited: agent={self.agent_id} type={export_type} "
                        f"format={export_format} success={success}")
        except Exception as e:
            logger.error(f"Failed to write GDPR audit log for agent {self.agent_id}: {e}")

    def _audited(self, export_type: str, export_format: str,
                 build: Callable[[], Tuple[object, int, int]]):
        """
        Run an export and audit it once.

        `build` returns (result, record_count, size_bytes).
        """
        start = time.monotonic()
        try:
            result, records, size_bytes = build()
        except Exception as e:
            elapsed_ms = int((time.monotonic() - start) * 1000)
            logger.error(f"GDPR {export_type} export failed for agent {self.agent_id}: {e}")
            self._write_audit(export_type, export_format, elapsed_ms=elapsed_ms,
                              success=False, error_message=str(e))
            raise

        elapsed_ms = int((time.monotonic() - start) * 1000)
        self._write_audit(export_type, export_format, records, size_bytes, elapsed_ms)
        return result

    # =========================================================================
    # EXPORTS
    # =========================================================================

    def export_all(self) -> Dict:
        def build():
            export = self._build_full_export()
            stats = export['statistics']
            records = stats['total_clients'] + stats['total_properties'] + stats['total_call_notes']
            return export, records, serialized_size(export)

        logger.info(f"GDPR full export requested by agent {self.agent_id}")
        return self._audited('FULL_EXPORT', 'JSON', build)

    def _partial(self, export_type: str, key: str, collect: Callable[[], List[Dict]]) -> Dict:
        def build():
            self._agent()
            items = collect()
            payload = {'metadata': build_metadata(), key: items, 'total': len(items)}
            return payload, len(items), serialized_size(payload)

        logger.info(f"GDPR {export_type} export requested by agent {self.agent_id}")
        return self._audited(export_type, 'JSON', build)

    def export_clients(self) -> Dict:
        return self._partial('CLIENTS_ONLY', 'clients', self._clients)

    def export_properties(self) -> Dict:
        return self._partial('PROPERTIES_ONLY', 'properties', self._properties)

    def export_call_notes(self) -> Dict:
        return self._partial('CALL_NOTES_ONLY', 'call_notes', self._call_notes)

    def export_pdf(self) -> bytes:
        def build():
            export = self._build_full_export()
            stats = export['statistics']
            records = stats['total_clients'] + stats['total_properties'] + stats['total_call_notes']
            pdf_bytes = build_gdpr_pdf(export)
            return pdf_bytes, records, len(pdf_bytes)

        logger.info(f"GDPR PDF export requested by agent {self.agent_id}")
        return self._audited('FULL_EXPORT', 'PDF', build)

    def export_summary(self) -> Dict:
        """What an export would contain, without producing it. Not audited."""
        agent = self._agent()
        stats = self.get_statistics()
        estimated_kb = (stats['total_clients'] * SIZE_KB_PER_CLIENT
                        + stats['total_properties'] * SIZE_KB_PER_PROPERTY
                        + stats['total_call_notes'] * SIZE_KB_PER_CALL_NOTE
                        + SIZE_KB_OVERHEAD)
        return {
            'agent_id': agent.id,
            'agent_name': agent.full_name,
            'agent_email': agent.email,
            'statistics': stats,
            'estimated_export_size_kb': estimated_kb,
            'export_version': EXPORT_VERSION
        }
