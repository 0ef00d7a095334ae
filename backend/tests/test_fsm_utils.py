from vendor_expense.utils.fsm import TransitionValidator
from vendor_expense.errors import StateConflict
import pytest


def test_transition_validator_allows_valid():
    fsm = TransitionValidator({'A': {'B'}, 'B': set()})
    assert fsm.assert_can_transition('A', 'B') is True


def test_transition_validator_blocks_invalid():
    fsm = TransitionValidator({'A': {'B'}, 'B': set()})
    with pytest.raises(StateConflict) as exc:
        fsm.assert_can_transition('A', 'C')
    assert exc.value.status_code == 400


def test_room_transitions_documented(client):
    resp = client.get('/openapi.json')
    body = resp.get_json()
    room_schema = body['components']['schemas']['GrowingRoom']
    assert room_schema['x-transitions'] == ['IN_STAGE', 'UNSEEDED']
