"""
Ownership checks shared by the repositories.

A record that does not exist is reported as NotFoundError (404); a record
owned by another agent as OwnershipViolationError (403). Child records
(images, search criteria) resolve their owner through the parent.
"""

import logging

from exceptions import NotFoundError, OwnershipViolationError

logger = logging.getLogger(__name__)


def ensure_owner(record, agent_id: str, resource: str, record_id=None):
    """Raise unless `record` exists and belongs to `agent_id`."""
    if record is None:
        raise NotFoundError(resource, record_id)
    if record.agent_id != agent_id:
        logger.warning(f"Agent {agent_id} denied access to {resource} {record.id}")
        raise OwnershipViolationError(resource, record.id)
    return record


def get_owned(session, model, record_id: str, agent_id: str, resource: str = None):
    """Load a record by id and check that the agent owns it."""
    resource = resource or model.__name__
    record = session.query(model).filter(model.id == record_id).first()
    return ensure_owner(record, agent_id, resource, record_id)


def get_owned_image(session, image_id: str, agent_id: str):
    """Images belong to whoever owns their property."""
    from database.models import PropertyImage

    image = session.query(PropertyImage).filter(PropertyImage.id == image_id).first()
    if image is None:
        raise NotFoundError('Property image', image_id)
    if image.property.agent_id != agent_id:
        logger.warning(f"Agent {agent_id} denied access to property image {image_id}")
        raise OwnershipViolationError('Property image', image_id)
    return image
