import os, sys, pytest
# Ensure backend directory is on path so 'vendor_expense' and 'tests' can be imported
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)
import vendor_expense
from vendor_expense import create_app
from vendor_expense.models.authz import Base
# Import all model modules to ensure tables are registered before create_all
import vendor_expense.models.audit  # noqa: F401
import vendor_expense.models.vendor  # noqa: F401
import vendor_expense.models.material  # noqa: F401
import vendor_expense.models.voucher  # noqa: F401
import vendor_expense.models.stage  # noqa: F401
import vendor_expense.models.room  # noqa: F401


@pytest.fixture(scope='session', autouse=True)
def app_instance():
    app = create_app({
        'DATABASE_URL': 'sqlite+pysqlite:///:memory:',
        'JWT_SECRET_KEY': 'test-secret',
        'STAGE_INTERVAL_BUDGET_DAYS': 60,
    })
    yield app


@pytest.fixture(autouse=True)
def fresh_schema(app_instance):
    # every test starts from empty tables
    vendor_expense.SessionLocal.remove()
    Base.metadata.drop_all(vendor_expense.db_engine)
    Base.metadata.create_all(vendor_expense.db_engine)
    yield
    vendor_expense.SessionLocal.remove()


@pytest.fixture()
def client(app_instance):
    return app_instance.test_client()


@pytest.fixture()
def app_context(app_instance):
    with app_instance.app_context():
        yield app_instance
