"""
Property Images Repository - image upload, thumbnailing and primary-image
bookkeeping. A property has at most one primary image.
"""

import logging
from datetime import datetime
from typing import Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from constants import PROPERTY_IMAGE_TYPES
from database.models import Property, PropertyImage
from exceptions import NotFoundError, ValidationError
from services.file_storage import (
    read_upload, validate_image, read_image_dimensions, make_thumbnail,
    encode_base64, generate_stored_filename,
)
from services.ownership import get_owned, get_owned_image
from validators import validate_enum, parse_bool, parse_int, sanitize_string

logger = logging.getLogger(__name__)


class PropertyImagesRepository:
    """Images are owned through their property."""

    METADATA_FIELDS = ('title', 'description', 'alt_text')

    def __init__(self, session: Session, agent_id: str):
        self.session = session
        self.agent_id = agent_id

    def _get_property(self, property_id: str) -> Property:
        return get_owned(self.session, Property, property_id, self.agent_id, 'Property')

    def _get_image(self, property_id: str, image_id: str) -> PropertyImage:
        image = get_owned_image(self.session, image_id, self.agent_id)
        if image.property_id != property_id:
            raise NotFoundError('Property image', image_id)
        return image

    def _images(self, property_id: str) -> List[PropertyImage]:
        return self.session.query(PropertyImage).filter(
            PropertyImage.property_id == property_id
        ).order_by(PropertyImage.sort_order, PropertyImage.created_at).all()

    def _clear_primary(self, property_id: str, keep_id: str = None):
        query = self.session.query(PropertyImage).filter(
            PropertyImage.property_id == property_id,
            PropertyImage.is_primary.is_(True)
        )
        if keep_id:
            query = query.filter(PropertyImage.id != keep_id)
        for image in query.all():
            image.is_primary = False
        # Flush before setting a new primary so the unique index never sees two
        self.session.flush()

    def _normalize_image_type(self, image_type: Optional[str]) -> str:
        if not image_type:
            return 'GENERAL'
        is_valid, error = validate_enum(image_type, PROPERTY_IMAGE_TYPES, 'Image type')
        if not is_valid:
            raise ValidationError(error, field='image_type')
        return image_type.upper()

    # =========================================================================
    # UPLOAD
    # =========================================================================

    def upload_image(self, property_id: str, file_storage, title: str = None,
                     description: str = None, image_type: str = None,
                     is_primary: bool = False) -> Dict:
        """
        Store an image with its dimensions and a 200x200 thumbnail.
        The first image of a property always becomes primary.
        """
        prop = self._get_property(property_id)
        image_type = self._normalize_image_type(image_type)

        data, filename, content_type = read_upload(file_storage)
        validate_image(data, content_type)
        width, height = read_image_dimensions(data)
        thumbnail = make_thumbnail(data, content_type)

        max_order = self.session.query(func.max(PropertyImage.sort_order)).filter(
            PropertyImage.property_id == prop.id
        ).scalar()
        has_images = max_order is not None
        make_primary = parse_bool(is_primary) or not has_images
        if make_primary and has_images:
            self._clear_primary(prop.id)

        image = PropertyImage(
            property_id=prop.id,
            filename=generate_stored_filename(filename),
            original_filename=sanitize_string(filename, 255),
            content_type=content_type,
            file_size=len(data),
            width=width,
            height=height,
            title=title,
            description=description,
            alt_text=title,
            is_primary=make_primary,
            sort_order=(max_order + 1) if has_images else 0,
            image_type=image_type,
            image_data=encode_base64(data),
            thumbnail_data=thumbnail
        )
        self.session.add(image)
        self.session.flush()

        logger.info(f"Uploaded image {image.id} for property {prop.id} ({width}x{height}, primary={make_primary})")
        return image.to_dict()

    def upload_images_bulk(self, property_id: str, files, image_type: str = None) -> List[Dict]:
        if not files:
            raise ValidationError("No files provided", field='files')
        results = [self.upload_image(property_id, f, image_type=image_type) for f in files]
        logger.info(f"Bulk uploaded {len(results)} images for property {property_id}")
        return results

    # =========================================================================
    # QUERIES & METADATA
    # =========================================================================

    def list_images(self, property_id: str, include_data: bool = False) -> List[Dict]:
        self._get_property(property_id)
        return [img.to_dict(include_data=include_data) for img in self._images(property_id)]

    def update_image_metadata(self, property_id: str, image_id: str, data: Dict) -> Dict:
        image = self._get_image(property_id, image_id)

        for field in self.METADATA_FIELDS:
            if field in data:
                value = data[field]
                setattr(image, field, sanitize_string(value, 500) if value else None)
        if 'image_type' in data:
            image.image_type = self._normalize_image_type(data['image_type'])
        if 'sort_order' in data:
            sort_order = parse_int(data['sort_order'], 'sort_order')
            if sort_order is None or sort_order < 0:
                raise ValidationError("sort_order must not be negative", field='sort_order')
            image.sort_order = sort_order
        if parse_bool(data.get('is_primary', False)) and not image.is_primary:
            self._clear_primary(property_id, keep_id=image.id)
            image.is_primary = True

        image.updated_at = datetime.utcnow()
        self.session.flush()
        logger.info(f"Updated image metadata: {image_id}")
        return image.to_dict()

    def set_primary_image(self, property_id: str, image_id: str) -> Dict:
        image = self._get_image(property_id, image_id)
        if not image.is_primary:
            self._clear_primary(property_id, keep_id=image.id)
            image.is_primary = True
            self.session.flush()
        logger.info(f"Set primary image {image_id} for property {property_id}")
        return image.to_dict()

    def delete_image(self, property_id: str, image_id: str) -> bool:
        """Delete an image; if it was primary, the next one by sort order takes over."""
        image = self._get_image(property_id, image_id)
        was_primary = image.is_primary
        self.session.delete(image)
        self.session.flush()

        if was_primary:
            remaining = self._images(property_id)
            if remaining:
                remaining[0].is_primary = True
                self.session.flush()
                logger.info(f"Promoted image {remaining[0].id} to primary for property {property_id}")

        logger.info(f"Deleted image: {image_id}")
        return True
