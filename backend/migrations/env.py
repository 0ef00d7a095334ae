from __future__ import annotations
from logging.config import fileConfig
from sqlalchemy import engine_from_config, pool
from alembic import context
import os, sys

# Allow importing the vendor_expense package from backend/
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from vendor_expense.models.authz import Base  # noqa: E402
# every model module registers its tables on Base.metadata
import vendor_expense.models.audit  # noqa: E402,F401
import vendor_expense.models.vendor  # noqa: E402,F401
import vendor_expense.models.material  # noqa: E402,F401
import vendor_expense.models.voucher  # noqa: E402,F401
import vendor_expense.models.stage  # noqa: E402,F401
import vendor_expense.models.room  # noqa: E402,F401

config = context.config
if config.config_file_name is not None:
    fileConfig(config.config_file_name)

def get_url():
    return os.getenv('DATABASE_URL', 'sqlite:///dev.db')

config.set_main_option('sqlalchemy.url', get_url())

target_metadata = Base.metadata

def run_migrations_offline():
    url = config.get_main_option("sqlalchemy.url")
    context.configure(url=url, target_metadata=target_metadata, literal_binds=True, render_as_batch=True)
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online():
    connectable = engine_from_config(
        config.get_section(config.config_ini_section),
        prefix='sqlalchemy.',
        poolclass=pool.NullPool,
    )

    with connectable.connect() as connection:
        # batch mode keeps ALTERs working on SQLite
        context.configure(connection=connection, target_metadata=target_metadata, render_as_batch=True)
        with context.begin_transaction():
            context.run_migrations()

if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
