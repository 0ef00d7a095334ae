import importlib.util
import pathlib
from vendor_expense import get_db
from vendor_expense.constants.permissions import SEED_ROOMS
from vendor_expense.models.authz import Role, User
from vendor_expense.models.room import GrowingRoom

SCRIPT = pathlib.Path(__file__).resolve().parents[1] / 'scripts' / 'seed.py'


def _load_seed_module():
    spec = importlib.util.spec_from_file_location('seed_script', SCRIPT)
    mod = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(mod)
    return mod


def test_seed_helpers_are_idempotent(app_context, monkeypatch):
    seed = _load_seed_module()
    monkeypatch.setenv('SEED_ADMIN_EMAIL', 'Boss@Example.com')
    session = get_db()
    assert seed.ensure_roles(session) == 3
    assert seed.ensure_initial_admin(session) is True
    assert len(seed.ensure_rooms_seeded(session)) == len(SEED_ROOMS)
    session.commit()

    assert seed.ensure_roles(session) == 0
    assert seed.ensure_initial_admin(session) is False
    assert seed.ensure_rooms_seeded(session) == []
    session.commit()

    admin = session.query(User).filter_by(email='boss@example.com').one()
    assert admin.role == 'admin'
    accountant = session.query(Role).filter_by(name='Accountant').one()
    assert accountant.permissions['vouchers']['create'] is True
    assert accountant.permissions['roles']['view'] is False
    assert session.query(GrowingRoom).count() == len(SEED_ROOMS)


def test_seeded_admin_can_log_in(client, app_context):
    seed = _load_seed_module()
    session = get_db()
    seed.ensure_initial_admin(session)
    session.commit()
    resp = client.post('/iam/auth/login', json={'email': 'admin@example.com', 'password': 'ChangeMe123!'})
    assert resp.status_code == 200
    assert resp.get_json()['role'] == 'admin'


def test_role_summary_output(app_context, capsys):
    seed = _load_seed_module()
    session = get_db()
    seed.ensure_roles(session)
    seed.print_role_summary(session)
    out = capsys.readouterr().out
    assert 'Room Operator' in out
    assert 'roomActivities.edit' in out


def test_parse_args_flags():
    seed = _load_seed_module()
    args = seed.parse_args(['--dry-run', '--show-roles'])
    assert args.dry_run and args.show_roles
    assert not seed.parse_args([]).dry_run
