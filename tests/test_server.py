"""
Tests for the API server: session relay and the REST match flow.
"""

import pytest
from fastapi.testclient import TestClient

from src.engine import EngineConfig
from src.server.main import app
from src.server.models import IntentRequest, IntentType
from src.server.session import SessionHandle, SessionManager, session_manager

from helpers import CARDS


TEST_CONFIG = EngineConfig(shuffle_on_start=False, opening_hand_size=2)


# -----------------------------------------------------------------------------
# Session layer
# -----------------------------------------------------------------------------

def test_session_handle_queues_until_drained():
    handle = SessionHandle('p1')
    handle.send({'n': 1})
    handle.send({'n': 2})

    assert handle.drain() == [{'n': 1}, {'n': 2}]
    assert handle.drain() == []


def test_intent_request_to_engine_intent():
    request = IntentRequest(player_id='p1', type=IntentType.PLAY_CARD, card_id='bolt', target_id='e3')
    assert request.to_intent() == {'type': 'play_card', 'cardId': 'bolt', 'targetId': 'e3'}

    request = IntentRequest(player_id='p1', type='attack', attacker_id='e1', target_id='e2')
    assert request.to_intent() == {'type': 'attack', 'attackerId': 'e1', 'targetId': 'e2'}


@pytest.fixture
def manager():
    return SessionManager(config=TEST_CONFIG)


@pytest.mark.asyncio
async def test_session_relays_snapshots_after_accepted_intents(manager):
    session = await manager.create_session(cards=CARDS, seed=3)
    p1 = await session.add_player()
    p2 = await session.add_player()

    delivered = []

    async def on_state_change(player_id, state):
        delivered.append((player_id, state['turn']['phase']))

    session.on_state_change = on_state_change

    assert await session.start()
    assert sorted(pid for pid, _ in delivered) == sorted([p1, p2])

    delivered.clear()
    assert await session.handle_intent(p1, {'type': 'end_phase'}) == (True, "Intent accepted")
    assert sorted(delivered) == sorted([(p1, 'DRAW'), (p2, 'DRAW')])

    delivered.clear()
    assert await session.handle_intent(p2, {'type': 'end_phase'}) == (False, "Intent end_phase rejected")
    assert delivered == []

    assert await session.handle_intent('nobody', {'type': 'end_phase'}) == (False, "Unknown player")


@pytest.mark.asyncio
async def test_failed_delivery_does_not_stop_others(manager):
    session = await manager.create_session(cards=CARDS)
    p1 = await session.add_player()
    p2 = await session.add_player()
    delivered = []

    async def on_state_change(player_id, state):
        if player_id == p1:
            raise ConnectionError("socket closed")
        delivered.append(player_id)

    session.on_state_change = on_state_change
    await session.start()

    assert delivered == [p2]


@pytest.mark.asyncio
async def test_sessions_track_sockets(manager):
    session = await manager.create_session(cards=CARDS)
    player_id = await session.add_player()

    session.connect_socket(player_id, 'sid-1')
    assert manager.get_session_by_socket('sid-1') == (session, player_id)

    assert session.disconnect_socket('sid-1') == player_id
    assert manager.get_session_by_socket('sid-1') is None

    await manager.remove_session(session.id)
    assert manager.get_session(session.id) is None


@pytest.mark.asyncio
async def test_regions_are_registered_on_create(manager):
    session = await manager.create_session(cards=CARDS, regions=[{
        'id': 'solaris',
        'passives': [{'event': 'OnEnterPlay', 'action': 'GrantKeywordOnEnter', 'keyword': 'fury'}],
    }])
    player_id = await session.add_player()
    match = session.match
    match.get_player(player_id).deck.extend(['grunt', 'sprout'])

    unit = match.zones.create_entity(player_id, 'ogre')
    match.zones.put_onto_board(unit)

    assert unit.granted_keywords == {'fury'}


# -----------------------------------------------------------------------------
# REST API
# -----------------------------------------------------------------------------

@pytest.fixture
def client(monkeypatch):
    monkeypatch.setattr(session_manager, 'config', TEST_CONFIG)
    return TestClient(app)


def create_started_match(client):
    match_id = client.post("/api/match/create", json={'cards': CARDS, 'seed': 1}).json()['match_id']
    p1 = client.post(f"/api/match/{match_id}/join").json()['player_id']
    p2 = client.post(f"/api/match/{match_id}/join").json()['player_id']
    for pid in (p1, p2):
        client.post(f"/api/match/{match_id}/deck", json={'player_id': pid, 'cards': ['grunt', 'ogre', 'sprout']})
    assert client.post(f"/api/match/{match_id}/start").status_code == 200
    return match_id, p1, p2


class TestApi:

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()['status'] == "healthy"

    def test_create_and_join(self, client):
        response = client.post("/api/match/create", json={'cards': CARDS})
        assert response.status_code == 200
        body = response.json()
        assert body['card_count'] == len(CARDS)
        assert body['status'] == "created"

        first = client.post(f"/api/match/{body['match_id']}/join").json()
        second = client.post(f"/api/match/{body['match_id']}/join").json()
        assert first['ready'] is False
        assert second['ready'] is True
        assert first['player_id'] != second['player_id']

    def test_bad_card_table_is_rejected(self, client):
        response = client.post("/api/match/create", json={'cards': [{'type': 'unit'}]})
        assert response.status_code == 400

        response = client.post("/api/match/create", json={'cards': [{'id': 'x', 'keywords': ['flying']}]})
        assert response.status_code == 400

    def test_set_deck(self, client):
        match_id = client.post("/api/match/create", json={'cards': CARDS}).json()['match_id']
        player_id = client.post(f"/api/match/{match_id}/join").json()['player_id']

        ok = client.post(f"/api/match/{match_id}/deck", json={'player_id': player_id, 'cards': ['grunt']})
        bad = client.post(f"/api/match/{match_id}/deck", json={'player_id': player_id, 'cards': ['broken']})

        assert ok.json()['accepted'] is True
        assert bad.json()['accepted'] is False

    def test_start_and_state(self, client):
        match_id, p1, p2 = create_started_match(client)

        state = client.get(f"/api/match/{match_id}/state", params={'player_id': p1}).json()

        assert state['me']['hand'] == ['grunt', 'ogre']
        assert state['me']['deckCount'] == 1
        assert state['opponents'][0]['id'] == p2
        assert state['turn'] == {'number': 1, 'phase': 'START', 'currentPlayerId': p1}

    def test_cannot_start_or_join_twice(self, client):
        match_id, _, _ = create_started_match(client)
        assert client.post(f"/api/match/{match_id}/start").status_code == 400
        assert client.post(f"/api/match/{match_id}/join").status_code == 400

    def test_intents(self, client):
        match_id, p1, p2 = create_started_match(client)

        response = client.post(f"/api/match/{match_id}/intent", json={'player_id': p1, 'type': 'end_phase'})
        body = response.json()
        assert body['accepted'] is True
        assert body['new_state']['turn']['phase'] == 'DRAW'
        assert body['new_state']['me']['hand'] == ['grunt', 'ogre', 'sprout']

        response = client.post(f"/api/match/{match_id}/intent", json={'player_id': p2, 'type': 'end_phase'})
        body = response.json()
        assert body['accepted'] is False
        assert body['message'] == "Intent end_phase rejected"
        assert body['new_state']['turn']['phase'] == 'DRAW'

    def test_play_card_over_rest(self, client):
        match_id, p1, _ = create_started_match(client)
        client.post(f"/api/match/{match_id}/intent", json={'player_id': p1, 'type': 'end_phase'})
        client.post(f"/api/match/{match_id}/intent", json={'player_id': p1, 'type': 'end_phase'})

        response = client.post(f"/api/match/{match_id}/intent", json={
            'player_id': p1, 'type': 'play_card', 'card_id': 'sprout',
        })

        body = response.json()
        assert body['accepted'] is True
        assert [u['cardId'] for u in body['new_state']['me']['board']] == ['sprout']

    def test_unknown_match_and_player(self, client):
        assert client.get("/api/match/nope/state", params={'player_id': 'x'}).status_code == 404
        assert client.post("/api/match/nope/join").status_code == 404

        match_id, _, _ = create_started_match(client)
        assert client.get(f"/api/match/{match_id}/state", params={'player_id': 'x'}).status_code == 404
        response = client.post(f"/api/match/{match_id}/intent", json={'player_id': 'x', 'type': 'pass'})
        assert response.status_code == 404

    def test_invalid_intent_type(self, client):
        match_id, p1, _ = create_started_match(client)
        response = client.post(f"/api/match/{match_id}/intent", json={'player_id': p1, 'type': 'concede'})
        assert response.status_code == 422

    def test_delete(self, client):
        match_id, p1, _ = create_started_match(client)

        assert client.delete(f"/api/match/{match_id}").json()['status'] == "deleted"
        assert client.get(f"/api/match/{match_id}/state", params={'player_id': p1}).status_code == 404
