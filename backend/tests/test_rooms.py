from datetime import timedelta
from vendor_expense.constants.permissions import ACTIVITIES
from vendor_expense import get_db
from vendor_expense.models.audit import AuditLog
from vendor_expense.models.room import GrowingRoom
from vendor_expense.services.room_cycle import cleared_status
from vendor_expense.utils.clock import utcnow
from tests.test_utils_seed import admin_headers, user_headers
from tests.test_lifecycle_helpers import create_stage, create_room


def _catalog(client, headers):
    return [
        create_stage(client, headers, 'Spawn Run', 1, 20, ruffling=True),
        create_stage(client, headers, 'Pinning', 2, 20, watering=True),
        create_stage(client, headers, 'Fruiting', 3, 20, watering=True, thumping=True),
    ]


def test_room_crud_and_unique_names(client):
    headers = admin_headers(client)
    room = create_room(client, headers, 'Orion', 250)
    assert room['currentStage'] is None
    assert room['activityStatus'] == {'watering': False, 'ruffling': False, 'thumping': False}
    assert client.post('/grow/rooms', json={'name': 'Orion', 'maxBagCapacity': 1}, headers=headers).status_code == 400
    assert client.post('/grow/rooms', json={'name': 'Neg', 'maxBagCapacity': -1}, headers=headers).status_code == 400
    upd = client.put(f"/grow/rooms/{room['id']}", json={'powerBackupSource': 'Generator'}, headers=headers)
    assert upd.get_json()['powerBackupSource'] == 'Generator'
    assert client.delete(f"/grow/rooms/{room['id']}", headers=headers).status_code == 200
    assert client.get(f"/grow/rooms/{room['id']}", headers=headers).status_code == 404


def test_init_move_and_wrap(client):
    headers = admin_headers(client)
    stages = _catalog(client, headers)
    room = create_room(client, headers)
    rid = room['id']
    init = client.post(f'/grow/rooms/{rid}/init-stage', headers=headers)
    assert init.status_code == 200
    assert init.get_json()['currentStage']['id'] == stages[0]['id']
    # a second init is a conflict
    again = client.post(f'/grow/rooms/{rid}/init-stage', headers=headers)
    assert again.status_code == 400
    order = []
    for _ in range(3):
        resp = client.post(f'/grow/rooms/{rid}/move-stage', json={}, headers=headers)
        assert resp.status_code == 200
        order.append(resp.get_json()['currentStage']['name'])
    assert order == ['Pinning', 'Fruiting', 'Spawn Run']
    jump = client.post(f'/grow/rooms/{rid}/move-stage', json={'stageId': stages[2]['id']}, headers=headers)
    assert jump.get_json()['currentStageId'] == stages[2]['id']
    missing = client.post(f'/grow/rooms/{rid}/move-stage', json={'stageId': 9999}, headers=headers)
    assert missing.status_code == 404
    logs = get_db().query(AuditLog).filter(AuditLog.entity == 'GrowingRoom').all()
    assert {'ROOM.STAGE.INIT', 'ROOM.STAGE.MOVE'} <= {log.action for log in logs}


def test_init_without_stages_is_rejected(client):
    headers = admin_headers(client)
    room = create_room(client, headers)
    resp = client.post(f"/grow/rooms/{room['id']}/init-stage", headers=headers)
    assert resp.status_code == 400
    assert resp.get_json()['error']['detail'] == 'No stages configured'


def test_activity_toggle_follows_stage_flags(client):
    headers = admin_headers(client)
    _catalog(client, headers)
    rid = create_room(client, headers)['id']
    client.post(f'/grow/rooms/{rid}/init-stage', headers=headers)
    ok = client.post(f'/grow/rooms/{rid}/activities', json={'activity': 'ruffling', 'done': True}, headers=headers)
    assert ok.status_code == 200
    assert ok.get_json()['activityStatus']['ruffling'] is True
    for done in (True, False):
        blocked = client.post(f'/grow/rooms/{rid}/activities', json={'activity': 'watering', 'done': done}, headers=headers)
        assert blocked.status_code == 400
    unknown = client.post(f'/grow/rooms/{rid}/activities', json={'activity': 'misting', 'done': True}, headers=headers)
    assert unknown.status_code == 400
    # moving clears the checklist
    moved = client.post(f'/grow/rooms/{rid}/move-stage', json={}, headers=headers).get_json()
    assert moved['activityStatus'] == {'watering': False, 'ruffling': False, 'thumping': False}


def test_activity_toggle_on_unseeded_room(client):
    headers = admin_headers(client)
    _catalog(client, headers)
    rid = create_room(client, headers)['id']
    resp = client.post(f'/grow/rooms/{rid}/activities', json={'activity': 'watering', 'done': True}, headers=headers)
    assert resp.status_code == 400
    assert resp.get_json()['error']['detail'] == 'Room has no active stage'


def test_status_board_resets_checklist_after_day_boundary(client):
    headers = admin_headers(client)
    _catalog(client, headers)
    rid = create_room(client, headers)['id']
    client.post(f'/grow/rooms/{rid}/init-stage', headers=headers)
    client.post(f'/grow/rooms/{rid}/activities', json={'activity': 'ruffling', 'done': True}, headers=headers)

    same_day = client.get('/grow/rooms/status', headers=headers).get_json()['data'][0]
    assert same_day['activityStatus']['ruffling'] is True
    assert same_day['nextStage']['name'] == 'Pinning'

    session = get_db()
    room = session.get(GrowingRoom, rid)
    room.stage_started_at = utcnow() - timedelta(days=2, hours=1)
    session.commit()

    first = client.get('/grow/rooms/status', headers=headers).get_json()['data'][0]
    assert first['activityDay'] == 2
    assert first['daysElapsed'] == 2
    assert first['activityStatus'] == {'watering': False, 'ruffling': False, 'thumping': False}
    second = client.get('/grow/rooms/status', headers=headers).get_json()['data'][0]
    assert second['activityDay'] == 2
    assert second['activityStatus'] == first['activityStatus']
    stored = get_db().get(GrowingRoom, rid)
    assert stored.activity_day == 2


def test_room_permissions(client):
    admin = admin_headers(client)
    _catalog(client, admin)
    rid = create_room(client, admin)['id']
    viewer = user_headers(client, 'watcher@example.com', ['roomActivities.view'])
    assert client.get('/grow/rooms/status', headers=viewer).status_code == 200
    assert client.post(f'/grow/rooms/{rid}/init-stage', headers=viewer).status_code == 403
    assert client.get('/grow/rooms', headers=viewer).status_code == 403

    operator = user_headers(client, 'operator@example.com', ['roomStages.edit'])
    assert client.post(f'/grow/rooms/{rid}/init-stage', headers=operator).status_code == 200
    assert client.post(f'/grow/rooms/{rid}/activities', json={'activity': 'ruffling', 'done': True}, headers=operator).status_code == 403

    nobody = user_headers(client, 'nobody@example.com', [])
    assert client.get('/grow/rooms/status', headers=nobody).status_code == 403


def test_new_room_row_starts_with_cleared_checklist(app_context):
    session = get_db()
    room = GrowingRoom(name='Bare Room', max_bag_capacity=5)
    session.add(room); session.commit()
    assert room.activity_status == cleared_status()
    assert set(room.activity_status) == set(ACTIVITIES)
    assert room.current_stage_id is None
