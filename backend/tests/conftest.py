import os, sys, pytest
# Ensure backend directory is on path so 'mdm' can be imported
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), '..'))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)
from mdm import create_app, get_db
from mdm.models.authz import Base
# Import all model modules to ensure tables are registered before create_all
import mdm.models.audit  # noqa: F401
import mdm.models.product  # noqa: F401
import mdm.models.product_cache  # noqa: F401
import mdm.models.geo  # noqa: F401
import mdm.models.catalog  # noqa: F401
import mdm.models.data_dictionary  # noqa: F401
import mdm.models.jobs  # noqa: F401
import mdm.models.outbox  # noqa: F401


class Recorder:
    """Stands in for a side-effect collaborator and records every call."""

    def __init__(self, fail=False):
        self.calls = []
        self.fail = fail

    def __getattr__(self, name):
        if name.startswith('_'):
            raise AttributeError(name)

        def record(*args, **kwargs):
            self.calls.append((name, args))
            if self.fail:
                raise RuntimeError(f'{name} unavailable')
            return True
        return record

    def names(self):
        return [c[0] for c in self.calls]


@pytest.fixture(scope='session', autouse=True)
def app_instance():
    os.environ['DATABASE_URL'] = 'sqlite+pysqlite:///:memory:'
    os.environ['COMPLIANCE_API_KEY'] = 'demo-key'
    app = create_app()
    # After app and blueprints are registered, ensure all tables exist
    with app.app_context():
        engine = get_db().get_bind()
        Base.metadata.create_all(engine)
    yield app


@pytest.fixture()
def client(app_instance):
    return app_instance.test_client()


@pytest.fixture()
def side_effects(app_instance, monkeypatch):
    """Replace cache / messages / realtime with recorders for one test."""
    fakes = {'product_cache': Recorder(), 'messages': Recorder(), 'realtime': Recorder()}
    for name, fake in fakes.items():
        monkeypatch.setitem(app_instance.extensions, f'mdm.{name}', fake)
    return fakes
