"""
Tests for per-agent data isolation across every resource
"""
import io
import pytest

from database.models import CallNote, Client, FileAttachment, PropertyImage
from exceptions import NotFoundError, OwnershipViolationError
from services.ownership import get_owned, get_owned_image


@pytest.fixture
def owned_note(db_session, agent, call_note_data):
    from services.call_notes_repository import CallNotesRepository

    note = CallNotesRepository(db_session, agent.id).create_call_note(call_note_data)
    db_session.commit()
    return note


@pytest.fixture
def owned_attachment(db_session, agent, owned_client, pdf_bytes):
    from werkzeug.datastructures import FileStorage
    from services.attachments_repository import AttachmentsRepository

    upload = FileStorage(stream=io.BytesIO(pdf_bytes), filename='vertrag.pdf', content_type='application/pdf')
    attachment = AttachmentsRepository(db_session, agent.id).upload_client_attachment(owned_client['id'], upload)
    db_session.commit()
    return attachment


@pytest.fixture
def owned_image(db_session, agent, owned_property, png_bytes):
    from werkzeug.datastructures import FileStorage
    from services.property_images_repository import PropertyImagesRepository

    upload = FileStorage(stream=io.BytesIO(png_bytes), filename='bild.png', content_type='image/png')
    image = PropertyImagesRepository(db_session, agent.id).upload_image(owned_property['id'], upload)
    db_session.commit()
    return image


@pytest.mark.unit
class TestOwnershipHelpers:
    """Tests for get_owned / get_owned_image"""

    def test_owner_gets_record(self, db_session, agent, owned_client):
        client = get_owned(db_session, Client, owned_client['id'], agent.id)
        assert client.id == owned_client['id']

    def test_missing_record_is_not_found(self, db_session, agent):
        with pytest.raises(NotFoundError) as exc_info:
            get_owned(db_session, Client, 'missing', agent.id, 'Client')
        assert exc_info.value.status_code == 404

    def test_foreign_record_is_violation(self, db_session, other_agent, owned_client):
        with pytest.raises(OwnershipViolationError) as exc_info:
            get_owned(db_session, Client, owned_client['id'], other_agent.id, 'Client')
        assert exc_info.value.status_code == 403

    def test_image_owned_through_property(self, db_session, agent, other_agent, owned_image):
        assert get_owned_image(db_session, owned_image['id'], agent.id).id == owned_image['id']
        with pytest.raises(OwnershipViolationError):
            get_owned_image(db_session, owned_image['id'], other_agent.id)


@pytest.mark.integration
class TestCrossAgentAccess:
    """Another agent's records are never readable, writable or deletable"""

    def test_client_routes(self, client, other_auth_headers, owned_client, sample_client_data):
        url = f"/api/v1/clients/{owned_client['id']}"

        assert client.get(url, headers=other_auth_headers).status_code == 403
        assert client.put(url, headers=other_auth_headers, json=sample_client_data).status_code == 403
        assert client.delete(url, headers=other_auth_headers).status_code == 403
        assert client.get(f'{url}/export', headers=other_auth_headers).status_code == 403

    def test_client_survives_foreign_delete(self, client, auth_headers, other_auth_headers, owned_client):
        client.delete(f"/api/v1/clients/{owned_client['id']}", headers=other_auth_headers)
        assert client.get(f"/api/v1/clients/{owned_client['id']}", headers=auth_headers).status_code == 200

    def test_property_routes(self, client, other_auth_headers, owned_property):
        url = f"/api/v1/properties/{owned_property['id']}"

        assert client.get(url, headers=other_auth_headers).status_code == 403
        assert client.patch(url, headers=other_auth_headers, json={'price': 1}).status_code == 403
        assert client.delete(url, headers=other_auth_headers).status_code == 403
        assert client.get(f'{url}/expose/exists', headers=other_auth_headers).status_code == 403
        assert client.get(f'{url}/images', headers=other_auth_headers).status_code == 403

    def test_image_routes(self, client, other_auth_headers, owned_property, owned_image):
        url = f"/api/v1/properties/{owned_property['id']}/images/{owned_image['id']}"

        assert client.put(url, headers=other_auth_headers, json={'title': 'x'}).status_code == 403
        assert client.put(f'{url}/primary', headers=other_auth_headers).status_code == 403
        assert client.delete(url, headers=other_auth_headers).status_code == 403

    def test_call_note_routes(self, client, other_auth_headers, owned_note, owned_client):
        url = f"/api/v1/call-notes/{owned_note['id']}"

        assert client.get(url, headers=other_auth_headers).status_code == 403
        assert client.delete(url, headers=other_auth_headers).status_code == 403
        assert client.get(f"/api/v1/call-notes/client/{owned_client['id']}",
                          headers=other_auth_headers).status_code == 403

    def test_call_note_list_is_scoped(self, client, other_auth_headers, owned_note):
        data = client.get('/api/v1/call-notes', headers=other_auth_headers).get_json()
        assert data['items'] == []

    def test_attachment_routes(self, client, other_auth_headers, owned_attachment, owned_client):
        url = f"/api/v1/attachments/{owned_attachment['id']}"

        assert client.get(f'{url}/download', headers=other_auth_headers).status_code == 403
        assert client.put(f'{url}/metadata', headers=other_auth_headers,
                          json={'description': 'x'}).status_code == 403
        assert client.delete(url, headers=other_auth_headers).status_code == 403
        assert client.get(f"/api/v1/attachments/clients/{owned_client['id']}",
                          headers=other_auth_headers).status_code == 403

    def test_matching_for_foreign_client(self, client, other_auth_headers, owned_client):
        response = client.post(f"/api/v1/properties/match/client/{owned_client['id']}",
                               headers=other_auth_headers, json={})
        assert response.status_code == 403

    def test_missing_ids_are_404(self, client, auth_headers):
        for url in ('/api/v1/clients/missing', '/api/v1/properties/missing',
                    '/api/v1/call-notes/missing', '/api/v1/attachments/missing/download'):
            assert client.get(url, headers=auth_headers).status_code == 404, url

    def test_records_unchanged_after_denied_writes(self, client, db_session, other_auth_headers,
                                                   owned_note, owned_attachment, owned_image, owned_property):
        client.delete(f"/api/v1/call-notes/{owned_note['id']}", headers=other_auth_headers)
        client.delete(f"/api/v1/attachments/{owned_attachment['id']}", headers=other_auth_headers)
        client.delete(f"/api/v1/properties/{owned_property['id']}/images/{owned_image['id']}",
                      headers=other_auth_headers)

        assert db_session.query(CallNote).count() == 1
        assert db_session.query(FileAttachment).count() == 1
        assert db_session.query(PropertyImage).count() == 1
