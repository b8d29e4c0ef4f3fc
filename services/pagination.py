"""
Pagination and sorting for list endpoints.

Query parameters: page (1-based), size (default 20, capped at 100) and
sort=field,direction. Only whitelisted sort fields are accepted.
"""

import math
from typing import Dict, Iterable, Tuple

from sqlalchemy import asc, desc

from constants import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE, DEFAULT_SORT_FIELD, DEFAULT_SORT_DIRECTION
from exceptions import ValidationError


def parse_page_args(args) -> Tuple[int, int]:
    try:
        page = int(args.get('page', 1))
        size = int(args.get('size', DEFAULT_PAGE_SIZE))
    except (TypeError, ValueError):
        raise ValidationError("page and size must be integers")

    if page < 1:
        raise ValidationError("page must be 1 or greater", field='page')
    if size < 1:
        raise ValidationError("size must be 1 or greater", field='size')
    return page, min(size, MAX_PAGE_SIZE)


def parse_sort(sort: str, allowed: Iterable[str]) -> Tuple[str, str]:
    """Parse 'field,direction' against a whitelist of sortable fields."""
    if not sort:
        return DEFAULT_SORT_FIELD, DEFAULT_SORT_DIRECTION

    parts = [p.strip() for p in sort.split(',')]
    field = parts[0]
    direction = parts[1].lower() if len(parts) > 1 and parts[1] else 'asc'

    if field not in allowed:
        raise ValidationError(f"Cannot sort by '{field}'", field='sort')
    if direction not in ('asc', 'desc'):
        raise ValidationError("Sort direction must be asc or desc", field='sort')
    return field, direction


def apply_sort(query, model, field: str, direction: str):
    column = getattr(model, field)
    order = desc(column) if direction == 'desc' else asc(column)
    # id as a tiebreaker keeps pages stable
    return query.order_by(order, asc(model.id))


def paginate(query, page: int, size: int, serializer=None) -> Dict:
    """
    Run a paginated query.

    Returns:
        {'items': [...], 'pagination': {page, size, total, total_pages}}
    """
    total = query.order_by(None).count()
    records = query.offset((page - 1) * size).limit(size).all()
    serializer = serializer or (lambda r: r.to_dict())
    return {
        'items': [serializer(r) for r in records],
        'pagination': {
            'page': page,
            'size': size,
            'total': total,
            'total_pages': math.ceil(total / size) if size else 0
        }
    }
