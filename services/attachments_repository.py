"""
Attachments Repository - documents attached to a property or a client.
Each attachment belongs to exactly one of the two.
"""

import logging
from datetime import datetime
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from constants import FILE_ATTACHMENT_TYPES
from database.models import FileAttachment, Property, Client
from exceptions import ValidationError
from services.file_storage import read_upload, validate_attachment, encode_base64, generate_stored_filename
from services.ownership import get_owned
from validators import validate_enum, sanitize_filename, sanitize_string

logger = logging.getLogger(__name__)


class AttachmentsRepository:
    """Repository for file attachments with per-agent ownership."""

    def __init__(self, session: Session, agent_id: str):
        self.session = session
        self.agent_id = agent_id

    def _get(self, attachment_id: str) -> FileAttachment:
        return get_owned(self.session, FileAttachment, attachment_id, self.agent_id, 'File attachment')

    @staticmethod
    def _normalize_file_type(file_type: Optional[str]) -> str:
        if not file_type:
            return 'OTHER'
        is_valid, error = validate_enum(file_type, FILE_ATTACHMENT_TYPES, 'File type')
        if not is_valid:
            raise ValidationError(error, field='file_type')
        return file_type.upper()

    def create_attachment(self, file_storage, property_id: str = None, client_id: str = None,
                          file_type: str = None, description: str = None,
                          custom_file_name: str = None) -> Dict:
        """
        Store an attachment for exactly one owner record.

        Raises:
            ValidationError: if both or neither of property_id / client_id are given
        """
        if bool(property_id) == bool(client_id):
            raise ValidationError(
                "An attachment must belong to exactly one property or one client",
                errors={'property_id': "Provide either property_id or client_id",
                        'client_id': "Provide either property_id or client_id"}
            )

        if property_id:
            get_owned(self.session, Property, property_id, self.agent_id, 'Property')
        else:
            get_owned(self.session, Client, client_id, self.agent_id, 'Client')

        file_type = self._normalize_file_type(file_type)
        data, original_name, content_type = read_upload(file_storage)
        validate_attachment(data, content_type)

        if custom_file_name and custom_file_name.strip():
            file_name = sanitize_filename(custom_file_name.strip())
        else:
            file_name = generate_stored_filename(original_name)

        attachment = FileAttachment(
            agent_id=self.agent_id,
            property_id=property_id,
            client_id=client_id,
            file_name=file_name,
            original_file_name=sanitize_string(original_name, 255),
            file_data=encode_base64(data),
            file_size=len(data),
            mime_type=content_type,
            file_type=file_type,
            description=description,
            upload_date=datetime.utcnow()
        )
        self.session.add(attachment)
        self.session.flush()

        owner = f"property {property_id}" if property_id else f"client {client_id}"
        logger.info(f"Uploaded attachment {attachment.id} for {owner} ({len(data)} bytes)")
        return attachment.to_dict()

    def upload_property_attachment(self, property_id: str, file_storage, **kwargs) -> Dict:
        return self.create_attachment(file_storage, property_id=property_id, **kwargs)

    def upload_client_attachment(self, client_id: str, file_storage, **kwargs) -> Dict:
        return self.create_attachment(file_storage, client_id=client_id, **kwargs)

    def list_property_attachments(self, property_id: str) -> List[Dict]:
        get_owned(self.session, Property, property_id, self.agent_id, 'Property')
        attachments = self.session.query(FileAttachment).filter(
            FileAttachment.property_id == property_id
        ).order_by(FileAttachment.upload_date.desc()).all()
        return [a.to_dict() for a in attachments]

    def list_client_attachments(self, client_id: str) -> List[Dict]:
        get_owned(self.session, Client, client_id, self.agent_id, 'Client')
        attachments = self.session.query(FileAttachment).filter(
            FileAttachment.client_id == client_id
        ).order_by(FileAttachment.upload_date.desc()).all()
        return [a.to_dict() for a in attachments]

    def download_attachment(self, attachment_id: str) -> Dict:
        attachment = self._get(attachment_id)
        logger.debug(f"Downloading attachment: {attachment_id}")
        return attachment.to_dict(include_data=True)

    def update_attachment_metadata(self, attachment_id: str, data: Dict) -> Dict:
        """Only file_type, description and file_name can change."""
        attachment = self._get(attachment_id)
        if 'file_type' in data:
            attachment.file_type = self._normalize_file_type(data['file_type'])
        if 'description' in data:
            attachment.description = data['description'] or None
        if data.get('file_name'):
            attachment.file_name = sanitize_filename(data['file_name'].strip())
        attachment.updated_at = datetime.utcnow()
        self.session.flush()
        logger.info(f"Updated attachment metadata: {attachment_id}")
        return attachment.to_dict()

    def delete_attachment(self, attachment_id: str) -> bool:
        attachment = self._get(attachment_id)
        self.session.delete(attachment)
        self.session.flush()
        logger.info(f"Deleted attachment: {attachment_id}")
        return True
