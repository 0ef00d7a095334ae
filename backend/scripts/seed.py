#!/usr/bin/env python
"""Idempotent seed script for role presets, the initial admin and the fixed growing rooms.

Usage:
    python backend/scripts/seed.py               # seed normally
    python backend/scripts/seed.py --show-roles  # print role -> granted module actions (after ensuring seed)
    python backend/scripts/seed.py --dry-run     # run logic then rollback (no DB changes)
    python backend/scripts/seed.py --dry-run --show-roles
"""
from __future__ import annotations
import os, sys, argparse, textwrap
from sqlalchemy import select
from sqlalchemy.exc import OperationalError

# Allow running from repo root
sys.path.append(os.path.abspath('backend'))

from vendor_expense import create_app, get_db  # noqa: E402
from vendor_expense.constants.permissions import ROLE_PRESETS, PrimaryRole  # noqa: E402
from vendor_expense.models.authz import Base, Role, User  # noqa: E402
from vendor_expense.services.policy import normalize_permissions  # noqa: E402
from vendor_expense.services.stage_catalog import ensure_rooms_seeded  # noqa: E402
# register every table on Base.metadata for the create_all fallback
import vendor_expense.models.audit  # noqa: E402,F401
import vendor_expense.models.material  # noqa: E402,F401
import vendor_expense.models.voucher  # noqa: E402,F401
import vendor_expense.models.stage  # noqa: E402,F401
import vendor_expense.models.room  # noqa: E402,F401


def ensure_roles(session):
    existing = {r.name: r for r in session.execute(select(Role)).scalars().all()}
    created = 0
    for role_name, perms in ROLE_PRESETS.items():
        role = existing.get(role_name)
        if role is None:
            session.add(Role(name=role_name, description=f'{role_name} preset', permissions=normalize_permissions(perms)))
            created += 1
    session.flush()
    return created


def ensure_initial_admin(session):
    admin_email = os.getenv('SEED_ADMIN_EMAIL', 'admin@example.com').strip().lower()
    existing_admin = session.execute(select(User).where(User.email == admin_email)).scalar_one_or_none()
    if existing_admin:
        return False
    user = User(name='Administrator', email=admin_email, role=PrimaryRole.ADMIN.value, is_active=True)
    user.set_password(os.getenv('SEED_ADMIN_PASSWORD', 'ChangeMe123!'))
    session.add(user)
    print(f"[INFO] Created initial admin user {admin_email} with temporary password.")
    return True


def print_role_summary(session):
    rows = []
    for role in session.execute(select(Role).order_by(Role.name)).scalars().all():
        granted = [
            f"{module}.{action}"
            for module, flags in sorted((role.permissions or {}).items())
            for action, allowed in flags.items() if allowed
        ]
        rows.append((role.name, granted))
    if not rows:
        print("[INFO] No roles present.")
        return
    name_w = max(len(r[0]) for r in rows)
    print(f"{'Role'.ljust(name_w)} | Count | Grants")
    print('-' * (name_w + 40))
    for name, granted in rows:
        print(f"{name.ljust(name_w)} | {str(len(granted)).rjust(5)} | {', '.join(granted)}")


def parse_args(argv=None):
    p = argparse.ArgumentParser(
        description="Seed role presets, initial admin and growing rooms",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=textwrap.dedent("""Examples:\n  seed normally: seed.py\n  dry run: seed.py --dry-run\n  show roles: seed.py --show-roles\n""")
    )
    p.add_argument('--show-roles', action='store_true', help='Print role grants after seeding')
    p.add_argument('--dry-run', action='store_true', help='Rollback after operations (no commit)')
    return p.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    app = create_app()
    with app.app_context():
        session = get_db()
        try:
            session.execute(select(Role.id).limit(1))
        except OperationalError:
            # Auto-create schema for bootstrap; in real env prefer alembic upgrade
            session.rollback()
            Base.metadata.create_all(session.get_bind())

        created_r = ensure_roles(session)
        created_admin = ensure_initial_admin(session)
        rooms = ensure_rooms_seeded(session)
        if args.show_roles:
            session.flush()
            print_role_summary(session)
        if args.dry_run:
            session.rollback()
            print(f"[DRY-RUN] (rolled back) Roles would create: {created_r}, admin: {int(created_admin)}, rooms: {len(rooms)}")
        else:
            session.commit()
            print(f"[DONE] Roles created: {created_r}, admin: {int(created_admin)}, rooms: {len(rooms)}")
    return 0


if __name__ == '__main__':
    sys.exit(main())
