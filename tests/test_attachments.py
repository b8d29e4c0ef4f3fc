"""
Tests for file attachments on properties and clients
"""
import io
import pytest

from werkzeug.datastructures import FileStorage

from constants import MB
from database.models import FileAttachment
from exceptions import StorageError, ValidationError
from services.attachments_repository import AttachmentsRepository


def pdf_upload(pdf_bytes, filename='vertrag.pdf'):
    return FileStorage(stream=io.BytesIO(pdf_bytes), filename=filename, content_type='application/pdf')


@pytest.mark.unit
class TestAttachmentsRepository:
    """Tests for AttachmentsRepository"""

    @pytest.fixture
    def repo(self, db_session, agent):
        return AttachmentsRepository(db_session, agent.id)

    def test_both_owners_rejected(self, repo, owned_client, owned_property, pdf_bytes):
        with pytest.raises(ValidationError) as exc_info:
            repo.create_attachment(pdf_upload(pdf_bytes), property_id=owned_property['id'],
                                   client_id=owned_client['id'])
        assert set(exc_info.value.errors) == {'property_id', 'client_id'}

    def test_no_owner_rejected(self, repo, db_session, pdf_bytes):
        with pytest.raises(ValidationError):
            repo.create_attachment(pdf_upload(pdf_bytes))
        assert db_session.query(FileAttachment).count() == 0

    def test_property_attachment(self, repo, owned_property, pdf_bytes):
        attachment = repo.upload_property_attachment(owned_property['id'], pdf_upload(pdf_bytes),
                                                     file_type='contract', description='Kaufvertrag')

        assert attachment['property_id'] == owned_property['id']
        assert attachment['client_id'] is None
        assert attachment['file_type'] == 'CONTRACT'
        assert attachment['is_pdf'] is True
        assert attachment['file_extension'] == 'pdf'
        assert attachment['original_file_name'] == 'vertrag.pdf'
        assert attachment['file_name'].endswith('.pdf')
        assert 'file_data' not in attachment

    def test_client_attachment_with_custom_name(self, repo, owned_client, pdf_bytes):
        attachment = repo.upload_client_attachment(owned_client['id'], pdf_upload(pdf_bytes),
                                                   custom_file_name='Ausweis Kopie.pdf')

        assert attachment['client_id'] == owned_client['id']
        assert attachment['file_type'] == 'OTHER'
        assert attachment['file_name'] == 'Ausweis_Kopie.pdf'

    def test_download_includes_data(self, repo, owned_client, pdf_bytes):
        attachment = repo.upload_client_attachment(owned_client['id'], pdf_upload(pdf_bytes))

        downloaded = repo.download_attachment(attachment['id'])

        assert downloaded['file_data']
        assert downloaded['data_url'].startswith('data:application/pdf;base64,')

    def test_unsupported_type(self, repo, owned_client):
        upload = FileStorage(stream=io.BytesIO(b'#!/bin/sh'), filename='run.sh', content_type='text/x-shellscript')
        with pytest.raises(StorageError):
            repo.upload_client_attachment(owned_client['id'], upload)

    def test_oversized_attachment(self, repo, owned_client):
        upload = FileStorage(stream=io.BytesIO(b'0' * (10 * MB + 1)), filename='gross.pdf',
                             content_type='application/pdf')
        with pytest.raises(StorageError) as exc_info:
            repo.upload_client_attachment(owned_client['id'], upload)
        assert exc_info.value.status_code == 413

    def test_invalid_file_type(self, repo, owned_client, pdf_bytes):
        with pytest.raises(ValidationError):
            repo.upload_client_attachment(owned_client['id'], pdf_upload(pdf_bytes), file_type='RECIPE')

    def test_update_metadata(self, repo, owned_property, pdf_bytes):
        attachment = repo.upload_property_attachment(owned_property['id'], pdf_upload(pdf_bytes))

        updated = repo.update_attachment_metadata(attachment['id'], {
            'file_type': 'FLOOR_PLAN', 'description': 'Grundriss EG', 'file_name': 'grundriss.pdf'
        })

        assert updated['file_type'] == 'FLOOR_PLAN'
        assert updated['description'] == 'Grundriss EG'
        assert updated['file_name'] == 'grundriss.pdf'

    def test_deleting_client_removes_attachments(self, repo, db_session, agent, owned_client, pdf_bytes):
        from services.clients_repository import ClientsRepository

        repo.upload_client_attachment(owned_client['id'], pdf_upload(pdf_bytes))
        db_session.commit()

        ClientsRepository(db_session, agent.id).delete_client(owned_client['id'])
        db_session.commit()

        assert db_session.query(FileAttachment).count() == 0


@pytest.mark.integration
class TestAttachmentEndpoints:
    """Tests for /api/v1/attachments"""

    def _post(self, client, headers, url, pdf_bytes, **fields):
        data = {'file': (io.BytesIO(pdf_bytes), 'expose-alt.pdf', 'application/pdf')}
        data.update(fields)
        return client.post(url, headers=headers, data=data, content_type='multipart/form-data')

    def test_upload_list_download_delete(self, client, auth_headers, owned_property, pdf_bytes):
        url = f"/api/v1/attachments/properties/{owned_property['id']}"

        created = self._post(client, auth_headers, url, pdf_bytes, file_type='CERTIFICATE',
                             description='Energieausweis')
        assert created.status_code == 201
        attachment = created.get_json()['attachment']

        listing = client.get(url, headers=auth_headers).get_json()
        assert [a['id'] for a in listing['attachments']] == [attachment['id']]

        download = client.get(attachment['download_url'], headers=auth_headers)
        assert download.status_code == 200
        assert download.data == pdf_bytes
        assert download.mimetype == 'application/pdf'

        assert client.delete(f"/api/v1/attachments/{attachment['id']}", headers=auth_headers).status_code == 200
        assert client.get(url, headers=auth_headers).get_json()['attachments'] == []

    def test_client_upload_and_metadata(self, client, auth_headers, owned_client, pdf_bytes):
        created = self._post(client, auth_headers, f"/api/v1/attachments/clients/{owned_client['id']}",
                             pdf_bytes, file_name='selbstauskunft.pdf')
        attachment = created.get_json()['attachment']
        assert attachment['file_name'] == 'selbstauskunft.pdf'

        response = client.put(f"/api/v1/attachments/{attachment['id']}/metadata", headers=auth_headers,
                              json={'file_type': 'FINANCIAL'})
        assert response.get_json()['attachment']['file_type'] == 'FINANCIAL'

    def test_upload_without_file(self, client, auth_headers, owned_client):
        response = client.post(f"/api/v1/attachments/clients/{owned_client['id']}", headers=auth_headers,
                               data={'file_type': 'OTHER'}, content_type='multipart/form-data')
        assert response.status_code == 400


@pytest.mark.unit
class TestFileAttachmentModel:
    """Tests for FileAttachment model helpers"""

    @pytest.mark.parametrize('original,stored,expected', [
        ('Grundriss.PDF', 'x.pdf', 'pdf'),
        (None, 'kaufvertrag.docx', 'docx'),
        ('ohne_endung', 'ohne_endung', ''),
    ])
    def test_file_extension(self, original, stored, expected):
        attachment = FileAttachment(original_file_name=original, file_name=stored)
        assert attachment.file_extension == expected

    def test_property_relationship_and_extension_coexist(self):
        assert isinstance(FileAttachment.__dict__['file_extension'], property)
        assert hasattr(FileAttachment, 'property')
