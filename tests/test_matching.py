"""
Tests for property/client matching
"""
import pytest
from decimal import Decimal
from types import SimpleNamespace

from exceptions import ValidationError
from services.matching_service import (
    MatchCriteria,
    MatchRequest,
    _round_half_up,
    area_score,
    feature_score,
    location_score,
    price_score,
    rank_results,
    room_score,
    score_property,
)


def make_property(**overrides):
    values = {
        'price': Decimal('450000'),
        'address_city': 'München',
        'address_postal_code': '80331',
        'living_area_sqm': Decimal('95'),
        'rooms': Decimal('3'),
        'property_type': 'APARTMENT',
    }
    values.update(overrides)
    return SimpleNamespace(**values)


@pytest.fixture
def criteria():
    return MatchCriteria(
        min_budget=Decimal('400000'), max_budget=Decimal('500000'),
        min_area=Decimal('80'), max_area=Decimal('120'),
        min_rooms=Decimal('3'), max_rooms=Decimal('4'),
        preferred_locations=['München'], property_types=['APARTMENT']
    )


def run(scorer, prop, criteria, request=None):
    return scorer(prop, criteria, request or MatchRequest(), [], [])


@pytest.mark.unit
class TestMatchRequest:
    """Tests for request option parsing"""

    def test_defaults(self):
        request = MatchRequest.from_dict({})
        assert request.match_threshold == 70
        assert request.max_results == 50
        assert request.allow_budget_flexibility is True

    def test_string_values_parsed(self):
        request = MatchRequest.from_dict({'match_threshold': '40', 'include_unavailable': 'true'})
        assert request.match_threshold == 40
        assert request.include_unavailable is True

    @pytest.mark.parametrize('options', [
        {'match_threshold': 101},
        {'max_results': 0},
        {'price_weight': -5},
        {'area_weight': 'viel'},
    ])
    def test_out_of_range_rejected(self, options):
        with pytest.raises(ValidationError) as exc_info:
            MatchRequest.from_dict(options)
        assert set(options) <= set(exc_info.value.errors)

    def test_weights_normalized(self):
        weights = MatchRequest(price_weight=50, location_weight=50, area_weight=0,
                               room_weight=0, feature_weight=0).normalized_weights()
        assert weights == [0.5, 0.5, 0.0, 0.0, 0.0]

    def test_zero_weights_fall_back_to_defaults(self):
        """Test that all-zero weights use the default split instead of dividing by zero"""
        weights = MatchRequest(price_weight=0, location_weight=0, area_weight=0,
                               room_weight=0, feature_weight=0).normalized_weights()
        assert weights == [0.3, 0.25, 0.2, 0.15, 0.1]


@pytest.mark.unit
class TestSubScores:
    """Tests for each sub-score"""

    def test_price_within_budget(self, criteria):
        assert run(price_score, make_property(), criteria) == 100

    def test_price_within_flexibility(self, criteria):
        assert run(price_score, make_property(price=Decimal('550000')), criteria) == 85

    def test_price_over_budget_without_flexibility(self, criteria):
        request = MatchRequest(allow_budget_flexibility=False)
        assert run(price_score, make_property(price=Decimal('560000')), criteria, request) == 88

    def test_price_far_over_budget(self, criteria):
        assert run(price_score, make_property(price=Decimal('700000')), criteria) == 30

    def test_price_below_minimum(self, criteria):
        assert run(price_score, make_property(price=Decimal('300000')), criteria) == 30

    def test_price_unknown(self, criteria):
        assert run(price_score, make_property(price=None), criteria) == 50

    def test_price_no_budget(self):
        assert run(price_score, make_property(), MatchCriteria()) == 100

    def test_location_city_case_insensitive(self, criteria):
        assert run(location_score, make_property(address_city='münchen'), criteria) == 100

    def test_location_postal_code_nearby(self):
        criteria = MatchCriteria(preferred_locations=['80350'])
        prop = make_property(address_city='Garching')
        assert run(location_score, prop, criteria) == 80
        assert run(location_score, prop, criteria, MatchRequest(exact_location_match=True)) == 0

    def test_location_postal_code_far(self):
        criteria = MatchCriteria(preferred_locations=['10115'])
        assert run(location_score, make_property(address_city='Garching'), criteria) == 0

    def test_location_unspecified(self, criteria):
        assert run(location_score, make_property(address_city=None, address_postal_code=None), criteria) == 50

    @pytest.mark.parametrize('area,expected', [
        ('95', 100), ('130', 85), ('150', 75), ('60', 75), (None, 50),
    ])
    def test_area(self, criteria, area, expected):
        prop = make_property(living_area_sqm=Decimal(area) if area else None)
        assert run(area_score, prop, criteria) == expected

    @pytest.mark.parametrize('rooms,expected', [
        ('3.5', 100), ('5', 75), ('2', 75), ('6', 50), ('8', 30), ('12', 0),
    ])
    def test_rooms(self, criteria, rooms, expected):
        assert run(room_score, make_property(rooms=Decimal(rooms)), criteria) == expected

    def test_feature_type(self, criteria):
        assert run(feature_score, make_property(), criteria) == 100
        assert run(feature_score, make_property(property_type='HOUSE'), criteria) == 0
        assert run(feature_score, make_property(property_type=None), criteria) == 50


@pytest.mark.unit
class TestScoreProperty:
    """Tests for the combined score"""

    def test_perfect_match_is_100(self, criteria):
        result = score_property(criteria, make_property())

        assert result['match_score'] == 100
        assert result['mismatch_reasons'] == []
        assert set(result['score_breakdown']) == {
            'price_score', 'location_score', 'area_score', 'room_score', 'feature_score'
        }

    def test_default_weights(self, criteria):
        """Test that a wrong type costs exactly the 10% feature weight"""
        result = score_property(criteria, make_property(property_type='HOUSE'))

        assert result['match_score'] == 90
        assert result['mismatch_reasons']

    def test_custom_weights(self, criteria):
        request = MatchRequest(price_weight=0, location_weight=0, area_weight=0,
                               room_weight=0, feature_weight=100)
        assert score_property(criteria, make_property(property_type='HOUSE'), request)['match_score'] == 0

    @pytest.mark.parametrize('weights', [
        (0, 0, 0, 0, 0), (100, 100, 100, 100, 100), (1, 0, 0, 0, 99), (7, 13, 29, 41, 3),
    ])
    def test_score_always_in_range(self, criteria, weights):
        request = MatchRequest(**dict(zip(MatchRequest.WEIGHT_FIELDS, weights)))
        for prop in (make_property(), make_property(price=Decimal('9999999'), rooms=Decimal('20'),
                                                    address_city='Hamburg', property_type='LAND')):
            assert 0 <= score_property(criteria, prop, request)['match_score'] <= 100

    def test_round_half_up(self):
        assert _round_half_up(84.5) == 85
        assert _round_half_up(84.49) == 84
        assert _round_half_up(0.5) == 1


@pytest.mark.unit
class TestRankResults:
    """Tests for threshold, ordering and truncation"""

    def _results(self):
        return [
            {'id': 'c', 'match_score': 90},
            {'id': 'a', 'match_score': 90},
            {'id': 'b', 'match_score': 75},
            {'id': 'd', 'match_score': 40},
        ]

    def test_threshold_and_order(self):
        ranked = rank_results(self._results(), MatchRequest(match_threshold=70))

        assert [r['id'] for r in ranked['matches']] == ['a', 'c', 'b']
        assert ranked['total_matches'] == 3

    def test_truncation_keeps_total(self):
        ranked = rank_results(self._results(), MatchRequest(match_threshold=0, max_results=2))

        assert [r['id'] for r in ranked['matches']] == ['a', 'c']
        assert ranked['total_matches'] == 4
        assert ranked['returned_matches'] == 2


@pytest.mark.integration
class TestMatchingEndpoints:
    """Tests for /api/v1/properties/match"""

    def test_match_for_client(self, client, auth_headers, owned_client, owned_property):
        response = client.post(f"/api/v1/properties/match/client/{owned_client['id']}",
                               headers=auth_headers, json={'match_threshold': 50})
        data = response.get_json()

        assert response.status_code == 200
        assert data['client_id'] == owned_client['id']
        assert data['total_matches'] == 1
        assert data['matches'][0]['match_score'] == 100
        assert data['matches'][0]['property']['id'] == owned_property['id']

    def test_quick_match_uses_query_args(self, client, auth_headers, owned_client, owned_property):
        data = client.get(f"/api/v1/properties/match/client/{owned_client['id']}?match_threshold=100",
                          headers=auth_headers).get_json()
        assert data['match_threshold'] == 100
        assert data['total_matches'] == 1

    def test_unavailable_properties_excluded(self, client, auth_headers, owned_client, owned_property):
        client.patch(f"/api/v1/properties/{owned_property['id']}", headers=auth_headers, json={'status': 'SOLD'})

        default = client.post(f"/api/v1/properties/match/client/{owned_client['id']}",
                              headers=auth_headers, json={}).get_json()
        including = client.post(f"/api/v1/properties/match/client/{owned_client['id']}",
                                headers=auth_headers, json={'include_unavailable': True}).get_json()

        assert default['total_matches'] == 0
        assert including['total_matches'] == 1

    def test_client_without_criteria(self, client, auth_headers, sample_client_data):
        sample_client_data.pop('search_criteria')
        created = client.post('/api/v1/clients', headers=auth_headers, json=sample_client_data).get_json()

        response = client.post(f"/api/v1/properties/match/client/{created['client']['id']}",
                               headers=auth_headers, json={})
        assert response.status_code == 400

    def test_invalid_options(self, client, auth_headers, owned_client):
        response = client.post(f"/api/v1/properties/match/client/{owned_client['id']}",
                               headers=auth_headers, json={'match_threshold': 150})
        assert response.status_code == 400

    def test_match_clients_for_property(self, client, auth_headers, owned_client, owned_property):
        data = client.post(f"/api/v1/properties/match/property/{owned_property['id']}",
                           headers=auth_headers, json={}).get_json()

        assert data['property_id'] == owned_property['id']
        assert data['matches'][0]['client']['id'] == owned_client['id']

    def test_custom_criteria(self, client, auth_headers, owned_property):
        data = client.post('/api/v1/properties/match/custom', headers=auth_headers, json={
            'criteria': {'max_budget': 400000, 'property_types': ['HOUSE']},
            'match_threshold': 0
        }).get_json()

        match = data['matches'][0]
        assert match['score_breakdown']['feature_score'] == 0
        assert match['score_breakdown']['price_score'] == 88

    def test_custom_non_finite_budget_is_400(self, client, auth_headers):
        response = client.post('/api/v1/properties/match/custom', headers=auth_headers, json={
            'criteria': {'max_budget': 'Infinity'}
        })

        assert response.status_code == 400
        assert 'max_budget' in response.get_json()['field_errors']

    def test_custom_requires_criteria(self, client, auth_headers):
        response = client.post('/api/v1/properties/match/custom', headers=auth_headers, json={})
        assert response.status_code == 400
