"""
Property Matching Service

Scores how well a property fits a client's search criteria. Five sub-scores
(price, location, area, rooms, property type) are each 0-100 and combined
with configurable weights into an overall 0-100 match score.

The scoring functions are pure: they read attributes off the property and
criteria objects and never touch the database.
"""

import logging
import math
import re
import time
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, List, Optional

from sqlalchemy.orm import Session

from database.models import Client, Property
from exceptions import ValidationError
from services.ownership import get_owned
from validators import parse_bool, parse_decimal, parse_int

logger = logging.getLogger(__name__)

BUDGET_FLEXIBILITY_MULTIPLIER = Decimal('1.10')
AREA_TOLERANCE = Decimal('0.15')
POSTAL_CODE_PROXIMITY_RANGE = 50
POSTAL_CODE_RE = re.compile(r'^\d{5}$')

DEFAULT_WEIGHTS = (30, 25, 20, 15, 10)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _as_list(value) -> List[str]:
    if not value:
        return []
    if isinstance(value, str):
        value = value.split(',')
    return [str(v).strip() for v in value if str(v).strip()]


@dataclass
class MatchCriteria:
    """What a client is looking for."""
    min_budget: Optional[Decimal] = None
    max_budget: Optional[Decimal] = None
    min_area: Optional[Decimal] = None
    max_area: Optional[Decimal] = None
    min_rooms: Optional[Decimal] = None
    max_rooms: Optional[Decimal] = None
    preferred_locations: List[str] = field(default_factory=list)
    property_types: List[str] = field(default_factory=list)

    @classmethod
    def from_model(cls, criteria) -> 'MatchCriteria':
        """Build from a PropertySearchCriteria row."""
        def dec(value):
            return Decimal(value) if value is not None else None

        return cls(
            min_budget=dec(criteria.min_budget),
            max_budget=dec(criteria.max_budget),
            min_area=dec(criteria.min_square_meters),
            max_area=dec(criteria.max_square_meters),
            min_rooms=dec(criteria.min_rooms),
            max_rooms=dec(criteria.max_rooms),
            preferred_locations=criteria.preferred_locations_list,
            property_types=criteria.property_types_list
        )

    @classmethod
    def from_dict(cls, data: Dict) -> 'MatchCriteria':
        data = data or {}
        return cls(
            min_budget=parse_decimal(data.get('min_budget'), 'min_budget'),
            max_budget=parse_decimal(data.get('max_budget'), 'max_budget'),
            min_area=parse_decimal(data.get('min_area', data.get('min_square_meters')), 'min_area'),
            max_area=parse_decimal(data.get('max_area', data.get('max_square_meters')), 'max_area'),
            min_rooms=parse_decimal(data.get('min_rooms'), 'min_rooms'),
            max_rooms=parse_decimal(data.get('max_rooms'), 'max_rooms'),
            preferred_locations=_as_list(data.get('preferred_locations')),
            property_types=[t.upper() for t in _as_list(data.get('property_types'))]
        )


@dataclass
class MatchRequest:
    """Tuning knobs for one matching run."""
    match_threshold: int = 70
    max_results: int = 50
    price_weight: int = 30
    location_weight: int = 25
    area_weight: int = 20
    room_weight: int = 15
    feature_weight: int = 10
    include_unavailable: bool = False
    allow_budget_flexibility: bool = True
    exact_location_match: bool = False

    WEIGHT_FIELDS = ('price_weight', 'location_weight', 'area_weight', 'room_weight', 'feature_weight')

    @classmethod
    def from_dict(cls, data: Dict) -> 'MatchRequest':
        """Parse and range-check request options; unknown keys are ignored."""
        data = data or {}
        request = cls()
        errors = {}

        bounds = {'match_threshold': (0, 100), 'max_results': (1, 500)}
        bounds.update({name: (0, 100) for name in cls.WEIGHT_FIELDS})
        for name, (low, high) in bounds.items():
            if data.get(name) in (None, ''):
                continue
            try:
                value = parse_int(data[name], name)
            except ValidationError as e:
                errors.update(e.errors)
                continue
            if value < low or value > high:
                errors[name] = f"{name} must be between {low} and {high}"
            else:
                setattr(request, name, value)

        for name in ('include_unavailable', 'allow_budget_flexibility', 'exact_location_match'):
            if data.get(name) not in (None, ''):
                setattr(request, name, parse_bool(data[name]))

        if errors:
            raise ValidationError("Invalid match request", errors=errors)
        return request

    def normalized_weights(self) -> List[float]:
        weights = [getattr(self, name) or 0 for name in self.WEIGHT_FIELDS]
        total = sum(weights)
        if total <= 0:
            weights = list(DEFAULT_WEIGHTS)
            total = sum(weights)
        return [w / total for w in weights]


# ============================================================================
# SUB-SCORES
# ============================================================================

def _dec(value) -> Optional[Decimal]:
    if value is None:
        return None
    return value if isinstance(value, Decimal) else Decimal(str(value))


def _percent(diff: Decimal, base: Decimal) -> Decimal:
    return (diff / base).quantize(Decimal('0.0001')) * 100


def price_score(prop, criteria: MatchCriteria, request: MatchRequest,
                reasons: List[str], mismatches: List[str]) -> int:
    price = _dec(getattr(prop, 'price', None))
    if price is None:
        reasons.append("Price not specified for this property")
        return 50

    min_budget, max_budget = criteria.min_budget, criteria.max_budget
    if min_budget is None and max_budget is None:
        reasons.append("No budget constraints specified")
        return 100

    within_min = min_budget is None or price >= min_budget
    within_max = max_budget is None or price <= max_budget
    if within_min and within_max:
        reasons.append(f"Price €{int(price):,} is within budget range")
        return 100

    if (within_min and max_budget is not None and request.allow_budget_flexibility
            and price <= max_budget * BUDGET_FLEXIBILITY_MULTIPLIER):
        reasons.append(f"Price €{int(price):,} is slightly over budget but within 10% tolerance")
        return 85

    if max_budget is not None and price > max_budget:
        if max_budget <= 0:
            mismatches.append(f"Price €{int(price):,} exceeds budget")
            return 0
        pct = _percent(price - max_budget, max_budget)
        if pct <= 20:
            mismatches.append(f"Price €{int(price):,} is {pct:.1f}% over budget")
            return max(50, 100 - int(pct))
        mismatches.append(f"Price €{int(price):,} significantly exceeds budget ({pct:.1f}% over)")
        return max(0, 50 - (int(pct) - 20))

    if min_budget is not None and price < min_budget:
        mismatches.append(f"Price €{int(price):,} is below minimum budget")
        return 30

    return 50


def location_score(prop, criteria: MatchCriteria, request: MatchRequest,
                   reasons: List[str], mismatches: List[str]) -> int:
    locations = criteria.preferred_locations
    if not locations:
        reasons.append("No location preferences specified")
        return 100

    city = getattr(prop, 'address_city', None)
    postal_code = getattr(prop, 'address_postal_code', None)
    if not city and not postal_code:
        reasons.append("Property location not fully specified")
        return 50

    for location in locations:
        location = location.strip()
        if city and city.strip().lower() == location.lower():
            reasons.append(f"Property is in preferred city: {city}")
            return 100

        if postal_code and POSTAL_CODE_RE.match(location):
            if postal_code == location:
                reasons.append(f"Property postal code {postal_code} matches exactly")
                return 100
            if not request.exact_location_match and POSTAL_CODE_RE.match(postal_code):
                if abs(int(postal_code) - int(location)) <= POSTAL_CODE_PROXIMITY_RANGE:
                    reasons.append(
                        f"Property postal code {postal_code} is near preferred location "
                        f"(within {POSTAL_CODE_PROXIMITY_RANGE})"
                    )
                    return 80

    mismatches.append(f"Property location {city} does not match preferred locations")
    return 0


def area_score(prop, criteria: MatchCriteria, request: MatchRequest,
               reasons: List[str], mismatches: List[str]) -> int:
    area = _dec(getattr(prop, 'living_area_sqm', None))
    if area is None:
        reasons.append("Living area not specified for this property")
        return 50

    min_area, max_area = criteria.min_area, criteria.max_area
    if min_area is None and max_area is None:
        reasons.append("No area constraints specified")
        return 100

    within_min = min_area is None or area >= min_area
    within_max = max_area is None or area <= max_area
    if within_min and within_max:
        reasons.append(f"Living area {area:.0f} m² is within desired range")
        return 100

    if max_area is not None and area > max_area:
        if area <= max_area + max_area * AREA_TOLERANCE:
            reasons.append(f"Living area {area:.0f} m² is slightly larger than preferred (within 15% tolerance)")
            return 85
        if max_area <= 0:
            mismatches.append(f"Living area {area:.0f} m² is larger than preferred maximum")
            return 0
        pct = _percent(area - max_area, max_area)
        mismatches.append(f"Living area {area:.0f} m² is {pct:.1f}% larger than preferred maximum")
        return max(0, 100 - int(pct))

    if min_area is not None and area < min_area:
        pct = _percent(min_area - area, min_area)
        mismatches.append(f"Living area {area:.0f} m² is {pct:.1f}% smaller than preferred minimum")
        return max(0, 100 - int(pct))

    return 50


def room_score(prop, criteria: MatchCriteria, request: MatchRequest,
               reasons: List[str], mismatches: List[str]) -> int:
    rooms = _dec(getattr(prop, 'rooms', None))
    if rooms is None:
        reasons.append("Room count not specified for this property")
        return 50

    min_rooms, max_rooms = criteria.min_rooms, criteria.max_rooms
    if min_rooms is None and max_rooms is None:
        reasons.append("No room count constraints specified")
        return 100

    within_min = min_rooms is None or rooms >= min_rooms
    within_max = max_rooms is None or rooms <= max_rooms
    if within_min and within_max:
        reasons.append(f"{rooms:.1f} rooms is within desired range")
        return 100

    if max_rooms is not None and rooms > max_rooms:
        diff, direction = rooms - max_rooms, 'more'
    else:
        diff, direction = min_rooms - rooms, 'less'

    if diff <= 1:
        reasons.append(f"{rooms:.1f} rooms is 1 room {direction} than preferred")
        return 75
    if diff <= 2:
        mismatches.append(f"{rooms:.1f} rooms is 2 rooms {direction} than preferred")
        return 50
    mismatches.append(f"{rooms:.1f} rooms is significantly {direction} than preferred")
    return max(0, 50 - (int(diff) - 2) * 10)


def feature_score(prop, criteria: MatchCriteria, request: MatchRequest,
                  reasons: List[str], mismatches: List[str]) -> int:
    types = criteria.property_types
    if not types:
        reasons.append("No specific property type preferences")
        return 100

    property_type = getattr(prop, 'property_type', None)
    if not property_type:
        reasons.append("Property type not specified")
        return 50

    if property_type.upper() in {t.strip().upper() for t in types}:
        reasons.append(f"Property type {property_type} matches preferences")
        return 100

    mismatches.append(f"Property type {property_type} does not match preferred types")
    return 0


def score_property(criteria: MatchCriteria, prop, request: MatchRequest = None) -> Dict:
    """
    Score one property against one set of criteria.

    Returns:
        {'match_score', 'score_breakdown', 'match_reasons', 'mismatch_reasons'}
    """
    request = request or MatchRequest()
    reasons, mismatches = [], []

    breakdown = {
        'price_score': price_score(prop, criteria, request, reasons, mismatches),
        'location_score': location_score(prop, criteria, request, reasons, mismatches),
        'area_score': area_score(prop, criteria, request, reasons, mismatches),
        'room_score': room_score(prop, criteria, request, reasons, mismatches),
        'feature_score': feature_score(prop, criteria, request, reasons, mismatches),
    }
    weights = request.normalized_weights()
    weighted = sum(score * weight for score, weight in zip(breakdown.values(), weights))
    overall = min(100, max(0, _round_half_up(weighted)))

    return {
        'match_score': overall,
        'score_breakdown': breakdown,
        'match_reasons': reasons,
        'mismatch_reasons': mismatches
    }


def rank_results(results: List[Dict], request: MatchRequest) -> Dict:
    """Apply the threshold, sort by score (ties by id) and truncate."""
    kept = [r for r in results if r['match_score'] >= request.match_threshold]
    kept.sort(key=lambda r: (-r['match_score'], r['id']))
    return {
        'matches': kept[:request.max_results],
        'total_matches': len(kept),
        'returned_matches': min(len(kept), request.max_results),
        'match_threshold': request.match_threshold
    }


# ============================================================================
# SERVICE
# ============================================================================

class MatchingService:
    """Runs matching over the calling agent's own properties and clients."""

    def __init__(self, session: Session, agent_id: str):
        self.session = session
        self.agent_id = agent_id

    def _candidate_properties(self, request: MatchRequest) -> List[Property]:
        query = self.session.query(Property).filter(Property.agent_id == self.agent_id)
        if not request.include_unavailable:
            query = query.filter(Property.status == 'AVAILABLE')
        return query.all()

    def _match_properties(self, criteria: MatchCriteria, request: MatchRequest) -> Dict:
        started = time.monotonic()
        candidates = self._candidate_properties(request)
        results = []
        for prop in candidates:
            scored = score_property(criteria, prop, request)
            scored['id'] = prop.id
            scored['property'] = prop.to_dict()
            results.append(scored)

        response = rank_results(results, request)
        response['execution_time_ms'] = int((time.monotonic() - started) * 1000)
        logger.info(
            f"Property matching: {response['total_matches']} of {len(candidates)} candidates "
            f"above {request.match_threshold} in {response['execution_time_ms']}ms"
        )
        return response

    def match_properties_for_client(self, client_id: str, request: MatchRequest = None) -> Dict:
        request = request or MatchRequest()
        client = get_owned(self.session, Client, client_id, self.agent_id, 'Client')
        if client.search_criteria is None:
            raise ValidationError("Client does not have search criteria configured", field='search_criteria')

        response = self._match_properties(MatchCriteria.from_model(client.search_criteria), request)
        response['client_id'] = client.id
        return response

    def match_properties_for_criteria(self, criteria: MatchCriteria, request: MatchRequest = None) -> Dict:
        if criteria is None:
            raise ValidationError("Search criteria are required", field='criteria')
        return self._match_properties(criteria, request or MatchRequest())

    def match_clients_for_property(self, property_id: str, request: MatchRequest = None) -> Dict:
        """Score every client of the agent that has search criteria against one property."""
        request = request or MatchRequest()
        started = time.monotonic()
        prop = get_owned(self.session, Property, property_id, self.agent_id, 'Property')

        clients = self.session.query(Client).filter(
            Client.agent_id == self.agent_id
        ).join(Client.search_criteria).all()

        results = []
        for client in clients:
            scored = score_property(MatchCriteria.from_model(client.search_criteria), prop, request)
            scored['id'] = client.id
            scored['client'] = client.to_dict()
            results.append(scored)

        response = rank_results(results, request)
        response['property_id'] = prop.id
        response['execution_time_ms'] = int((time.monotonic() - started) * 1000)
        logger.info(
            f"Client matching for property {prop.id}: {response['total_matches']} of "
            f"{len(clients)} clients above {request.match_threshold}"
        )
        return response
