"""
Property Image Routes Blueprint

Multipart image upload and metadata for a property's gallery.
Mounted at /api/v1/properties; every route is under /<property_id>/images.
"""

from flask import Blueprint, request, jsonify
import logging

from auth import jwt_required, get_current_agent_id
from app.utils.helpers import get_json_body, get_upload
from database import get_db_session
from exceptions import ValidationError
from services.property_images_repository import PropertyImagesRepository
from validators import parse_bool

logger = logging.getLogger(__name__)

images_bp = Blueprint('images_bp', __name__)


def _repo(db) -> PropertyImagesRepository:
    return PropertyImagesRepository(db, get_current_agent_id())


@images_bp.route('/<property_id>/images', methods=['POST'])
@jwt_required
def upload_image(property_id):
    upload = get_upload('file')
    form = request.form
    with get_db_session() as db:
        image = _repo(db).upload_image(
            property_id,
            upload,
            title=form.get('title'),
            description=form.get('description'),
            image_type=form.get('image_type'),
            is_primary=parse_bool(form.get('is_primary', False))
        )
    return jsonify({'success': True, 'image': image}), 201


@images_bp.route('/<property_id>/images/bulk', methods=['POST'])
@jwt_required
def upload_images_bulk(property_id):
    files = [f for f in request.files.getlist('files') if f and f.filename]
    if not files:
        raise ValidationError("No files uploaded", field='files')

    with get_db_session() as db:
        images = _repo(db).upload_images_bulk(property_id, files, image_type=request.form.get('image_type'))
    return jsonify({'success': True, 'images': images, 'count': len(images)}), 201


@images_bp.route('/<property_id>/images', methods=['GET'])
@jwt_required
def list_images(property_id):
    include_data = parse_bool(request.args.get('include_data', False))
    with get_db_session() as db:
        images = _repo(db).list_images(property_id, include_data=include_data)
    return jsonify({'success': True, 'images': images})


@images_bp.route('/<property_id>/images/<image_id>', methods=['PUT'])
@jwt_required
def update_image(property_id, image_id):
    data = get_json_body()
    with get_db_session() as db:
        image = _repo(db).update_image_metadata(property_id, image_id, data)
    return jsonify({'success': True, 'image': image})


@images_bp.route('/<property_id>/images/<image_id>/primary', methods=['PUT'])
@jwt_required
def set_primary_image(property_id, image_id):
    with get_db_session() as db:
        image = _repo(db).set_primary_image(property_id, image_id)
    return jsonify({'success': True, 'image': image})


@images_bp.route('/<property_id>/images/<image_id>', methods=['DELETE'])
@jwt_required
def delete_image(property_id, image_id):
    with get_db_session() as db:
        _repo(db).delete_image(property_id, image_id)
    return jsonify({'success': True, 'message': 'Image deleted'})
