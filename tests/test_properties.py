"""
Tests for property listings, images and the expose PDF
"""
import io
import pytest

from constants import MB
from database.models import PropertyImage
from exceptions import StorageError
from services.properties_repository import PropertiesRepository
from services.property_images_repository import PropertyImagesRepository
from werkzeug.datastructures import FileStorage


def upload(data, filename, content_type):
    return FileStorage(stream=io.BytesIO(data), filename=filename, content_type=content_type)


def multipart(data, filename, content_type, **fields):
    payload = {'file': (io.BytesIO(data), filename, content_type)}
    payload.update(fields)
    return payload


@pytest.mark.unit
class TestPropertiesRepository:
    """Tests for PropertiesRepository"""

    def test_create_computes_price_per_sqm(self, db_session, agent, sample_property_data):
        prop = PropertiesRepository(db_session, agent.id).create_property(sample_property_data)

        assert prop['price_per_sqm'] == 4736.84
        assert prop['status'] == 'AVAILABLE'
        assert prop['address_country'] == 'Germany'
        assert prop['formatted_address'] == 'Leopoldstraße 42, 80802 München'

    def test_no_area_no_price_per_sqm(self, db_session, agent, sample_property_data):
        del sample_property_data['living_area_sqm']
        prop = PropertiesRepository(db_session, agent.id).create_property(sample_property_data)
        assert prop['price_per_sqm'] is None

    def test_patch_keeps_other_fields(self, db_session, agent, owned_property):
        repo = PropertiesRepository(db_session, agent.id)
        patched = repo.patch_property(owned_property['id'], {'price': 475000})

        assert patched['price'] == 475000.0
        assert patched['title'] == owned_property['title']
        assert patched['has_balcony'] is True
        assert patched['price_per_sqm'] == 5000.0

    def test_put_resets_omitted_fields(self, db_session, agent, owned_property):
        """Test that a full update clears optional fields not sent"""
        repo = PropertiesRepository(db_session, agent.id)
        updated = repo.update_property(owned_property['id'], {
            'title': 'Neu', 'property_type': 'HOUSE', 'listing_type': 'RENT'
        })

        assert updated['price'] is None
        assert updated['has_balcony'] is False
        assert updated['property_type'] == 'HOUSE'

    def test_search_filters(self, db_session, agent, sample_property_data):
        repo = PropertiesRepository(db_session, agent.id)
        repo.create_property(sample_property_data)
        sample_property_data.update({'title': 'Haus in Augsburg', 'property_type': 'HOUSE',
                                     'address_city': 'Augsburg', 'price': 800000})
        repo.create_property(sample_property_data)

        cheap = repo.search_properties({'max_price': '500000'})
        city = repo.search_properties({'city': 'augs'})
        houses = repo.search_properties({'property_type': 'house'})

        assert cheap['pagination']['total'] == 1
        assert city['items'][0]['address_city'] == 'Augsburg'
        assert houses['pagination']['total'] == 1

    def test_free_text_filter(self, db_session, agent, owned_property):
        repo = PropertiesRepository(db_session, agent.id)
        assert repo.filter_properties('schwabing')['pagination']['total'] == 1
        assert repo.filter_properties('80802')['pagination']['total'] == 1
        assert repo.filter_properties('hamburg')['pagination']['total'] == 0

    def test_stats(self, db_session, agent, owned_property):
        stats = PropertiesRepository(db_session, agent.id).get_property_stats()

        assert stats['total_properties'] == 1
        assert stats['by_status'] == {'AVAILABLE': 1}
        assert stats['average_price'] == 450000.0

    def test_expose_round_trip(self, db_session, agent, owned_property, pdf_bytes):
        repo = PropertiesRepository(db_session, agent.id)
        repo.upload_expose(owned_property['id'], upload(pdf_bytes, 'expose.pdf', 'application/pdf'))

        assert repo.has_expose(owned_property['id']) is True
        assert repo.download_expose(owned_property['id'])['file_size'] == len(pdf_bytes)

        repo.delete_expose(owned_property['id'])
        assert repo.has_expose(owned_property['id']) is False

    def test_expose_rejects_non_pdf(self, db_session, agent, owned_property, png_bytes):
        with pytest.raises(StorageError):
            PropertiesRepository(db_session, agent.id).upload_expose(
                owned_property['id'], upload(png_bytes, 'bild.png', 'image/png')
            )


@pytest.mark.unit
class TestPropertyImagesRepository:
    """Tests for primary image bookkeeping"""

    @pytest.fixture
    def repo(self, db_session, agent):
        return PropertyImagesRepository(db_session, agent.id)

    def _upload(self, repo, property_id, png_bytes, **kwargs):
        return repo.upload_image(property_id, upload(png_bytes, 'bild.png', 'image/png'), **kwargs)

    def _primary_count(self, db_session, property_id):
        return db_session.query(PropertyImage).filter(
            PropertyImage.property_id == property_id, PropertyImage.is_primary.is_(True)
        ).count()

    def test_first_image_is_primary(self, repo, owned_property, png_bytes):
        image = self._upload(repo, owned_property['id'], png_bytes)

        assert image['is_primary'] is True
        assert (image['width'], image['height']) == (640, 480)
        assert image['thumbnail_data']
        assert image['filename'].endswith('.png')
        assert image['filename'] != 'bild.png'

    def test_second_image_not_primary(self, repo, owned_property, png_bytes):
        self._upload(repo, owned_property['id'], png_bytes)
        second = self._upload(repo, owned_property['id'], png_bytes)

        assert second['is_primary'] is False
        assert second['sort_order'] == 1

    def test_explicit_primary_moves_flag(self, repo, db_session, owned_property, png_bytes):
        first = self._upload(repo, owned_property['id'], png_bytes)
        second = self._upload(repo, owned_property['id'], png_bytes, is_primary=True)

        assert second['is_primary'] is True
        assert self._primary_count(db_session, owned_property['id']) == 1
        assert db_session.get(PropertyImage, first['id']).is_primary is False

    def test_set_primary(self, repo, db_session, owned_property, png_bytes):
        self._upload(repo, owned_property['id'], png_bytes)
        second = self._upload(repo, owned_property['id'], png_bytes)

        repo.set_primary_image(owned_property['id'], second['id'])

        assert self._primary_count(db_session, owned_property['id']) == 1
        assert db_session.get(PropertyImage, second['id']).is_primary is True

    def test_deleting_primary_promotes_next(self, repo, db_session, owned_property, png_bytes):
        first = self._upload(repo, owned_property['id'], png_bytes)
        second = self._upload(repo, owned_property['id'], png_bytes)

        repo.delete_image(owned_property['id'], first['id'])

        assert db_session.get(PropertyImage, second['id']).is_primary is True

    def test_update_metadata(self, repo, owned_property, png_bytes):
        image = self._upload(repo, owned_property['id'], png_bytes)

        updated = repo.update_image_metadata(owned_property['id'], image['id'], {
            'title': 'Wohnzimmer', 'image_type': 'interior', 'sort_order': 4
        })

        assert updated['title'] == 'Wohnzimmer'
        assert updated['image_type'] == 'INTERIOR'
        assert updated['sort_order'] == 4

    def test_negative_sort_order(self, repo, owned_property, png_bytes):
        from exceptions import ValidationError

        image = self._upload(repo, owned_property['id'], png_bytes)
        with pytest.raises(ValidationError):
            repo.update_image_metadata(owned_property['id'], image['id'], {'sort_order': -1})

    def test_invalid_image_type(self, repo, owned_property, png_bytes):
        from exceptions import ValidationError

        with pytest.raises(ValidationError):
            self._upload(repo, owned_property['id'], png_bytes, image_type='SELFIE')


@pytest.mark.integration
class TestPropertyEndpoints:
    """Tests for /api/v1/properties"""

    def test_create_and_get(self, client, auth_headers, sample_property_data):
        created = client.post('/api/v1/properties', headers=auth_headers, json=sample_property_data)
        assert created.status_code == 201

        property_id = created.get_json()['property']['id']
        fetched = client.get(f'/api/v1/properties/{property_id}', headers=auth_headers).get_json()
        assert fetched['property']['images'] == []

    def test_create_missing_required(self, client, auth_headers):
        response = client.post('/api/v1/properties', headers=auth_headers, json={'title': 'Nur Titel'})
        data = response.get_json()

        assert response.status_code == 400
        assert set(data['field_errors']) == {'property_type', 'listing_type'}

    @pytest.mark.parametrize('price', ['NaN', 'Infinity', float('nan')])
    def test_create_non_finite_price_is_400(self, client, auth_headers, sample_property_data, price):
        sample_property_data['price'] = price
        response = client.post('/api/v1/properties', headers=auth_headers, json=sample_property_data)

        assert response.status_code == 400
        assert 'price' in response.get_json()['field_errors']

    def test_patch(self, client, auth_headers, owned_property):
        response = client.patch(f"/api/v1/properties/{owned_property['id']}", headers=auth_headers,
                                json={'status': 'RESERVED'})
        assert response.get_json()['property']['status'] == 'RESERVED'

    def test_status_route_validates_enum(self, client, auth_headers):
        assert client.get('/api/v1/properties/status/GONE', headers=auth_headers).status_code == 400

    def test_status_type_city_routes(self, client, auth_headers, owned_property):
        by_status = client.get('/api/v1/properties/status/available', headers=auth_headers).get_json()
        by_type = client.get('/api/v1/properties/type/APARTMENT', headers=auth_headers).get_json()
        by_city = client.get('/api/v1/properties/city/nchen', headers=auth_headers).get_json()

        assert by_status['pagination']['total'] == 1
        assert by_type['pagination']['total'] == 1
        assert by_city['pagination']['total'] == 1

    def test_search_endpoint(self, client, auth_headers, owned_property):
        data = client.get('/api/v1/properties/search?min_rooms=3&max_area=100', headers=auth_headers).get_json()
        assert data['pagination']['total'] == 1

    def test_available_and_recent(self, client, auth_headers, owned_property):
        available = client.get('/api/v1/properties/available', headers=auth_headers).get_json()
        recent = client.get('/api/v1/properties/recent', headers=auth_headers).get_json()

        assert len(available['properties']) == 1
        assert len(recent['properties']) == 1

    def test_delete(self, client, auth_headers, owned_property):
        url = f"/api/v1/properties/{owned_property['id']}"
        assert client.delete(url, headers=auth_headers).status_code == 200
        assert client.get(url, headers=auth_headers).status_code == 404


@pytest.mark.integration
class TestImageAndExposeEndpoints:
    """Tests for multipart uploads under /api/v1/properties/<id>"""

    def test_upload_image(self, client, auth_headers, owned_property, png_bytes):
        response = client.post(
            f"/api/v1/properties/{owned_property['id']}/images",
            headers=auth_headers,
            data=multipart(png_bytes, 'haus.png', 'image/png', title='Fassade'),
            content_type='multipart/form-data'
        )
        data = response.get_json()

        assert response.status_code == 201
        assert data['image']['is_primary'] is True
        assert data['image']['title'] == 'Fassade'
        assert 'image_data' not in data['image']

    def test_list_images_with_data(self, client, auth_headers, owned_property, png_bytes):
        client.post(f"/api/v1/properties/{owned_property['id']}/images", headers=auth_headers,
                    data=multipart(png_bytes, 'haus.png', 'image/png'), content_type='multipart/form-data')

        data = client.get(f"/api/v1/properties/{owned_property['id']}/images?include_data=true",
                          headers=auth_headers).get_json()

        assert len(data['images']) == 1
        assert data['images'][0]['image_data']

    def test_bulk_upload(self, client, auth_headers, owned_property, png_bytes):
        response = client.post(
            f"/api/v1/properties/{owned_property['id']}/images/bulk",
            headers=auth_headers,
            data={'files': [(io.BytesIO(png_bytes), 'a.png', 'image/png'),
                            (io.BytesIO(png_bytes), 'b.png', 'image/png')]},
            content_type='multipart/form-data'
        )
        data = response.get_json()

        assert response.status_code == 201
        assert data['count'] == 2
        assert [img['is_primary'] for img in data['images']] == [True, False]

    def test_upload_wrong_type(self, client, auth_headers, owned_property, pdf_bytes):
        response = client.post(f"/api/v1/properties/{owned_property['id']}/images", headers=auth_headers,
                               data=multipart(pdf_bytes, 'doc.pdf', 'application/pdf'),
                               content_type='multipart/form-data')
        assert response.status_code == 400

    def test_upload_oversized_image(self, client, auth_headers, owned_property):
        too_big = b'\x00' * (5 * MB + 1)
        response = client.post(f"/api/v1/properties/{owned_property['id']}/images", headers=auth_headers,
                               data=multipart(too_big, 'riesig.png', 'image/png'),
                               content_type='multipart/form-data')
        assert response.status_code == 413

    def test_upload_image_over_pixel_limit(self, client, auth_headers, db_session, owned_property,
                                           png_bytes, monkeypatch):
        from PIL import Image

        monkeypatch.setattr(Image, 'MAX_IMAGE_PIXELS', 1000)
        response = client.post(f"/api/v1/properties/{owned_property['id']}/images", headers=auth_headers,
                               data=multipart(png_bytes, 'riesig.png', 'image/png'),
                               content_type='multipart/form-data')

        assert response.status_code == 413
        assert db_session.query(PropertyImage).count() == 0

    def test_upload_without_file(self, client, auth_headers, owned_property):
        response = client.post(f"/api/v1/properties/{owned_property['id']}/images", headers=auth_headers,
                               data={}, content_type='multipart/form-data')
        assert response.status_code == 400

    def test_expose_endpoints(self, client, auth_headers, owned_property, pdf_bytes):
        base = f"/api/v1/properties/{owned_property['id']}/expose"

        uploaded = client.post(base, headers=auth_headers,
                               data=multipart(pdf_bytes, 'expose.pdf', 'application/pdf'),
                               content_type='multipart/form-data')
        assert uploaded.status_code == 201
        assert uploaded.get_json()['expose_file_name'] == 'expose.pdf'

        assert client.get(f'{base}/exists', headers=auth_headers).get_json()['has_expose'] is True

        download = client.get(f'{base}/download', headers=auth_headers)
        assert download.status_code == 200
        assert download.data == pdf_bytes
        assert download.mimetype == 'application/pdf'
        assert 'attachment' in download.headers['Content-Disposition']

        assert client.delete(base, headers=auth_headers).status_code == 200
        assert client.get(f'{base}/download', headers=auth_headers).status_code == 404
