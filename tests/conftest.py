import pytest

from portal.core.config import Settings
from portal.core.database import create_db_engine, create_session_factory
from portal.core.security import hash_password
from portal.services.config_store import JsonConfigStore, SettingsPatch, SqlConfigStore
from portal.services.migration_runner import MigrationRunner

TEST_PASSWORD = "QREW2025"


@pytest.fixture
def make_settings(tmp_path):
    def _make(**overrides):
        values = {
            "SECRET_KEY": "test-signing-secret",
            "ADMIN_KEY": "admin-secret",
            "STRIPE_SECRET_KEY": "sk_test_123",
            "STRIPE_PUBLISHABLE_KEY": "pk_test_123",
            "SUCCESS_URL": "http://localhost:3000/success.html",
            "STATIC_DIR": str(tmp_path / "no-static"),
            "CONFIG_PATH": str(tmp_path / "config.json"),
            "LEGACY_CONFIG_PATH": "",
        }
        values.update(overrides)
        return Settings(**values)
    return _make


@pytest.fixture
def engine():
    engine = create_db_engine("sqlite://")
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    MigrationRunner(engine).run()
    return create_session_factory(engine)


@pytest.fixture
def sql_store(session_factory):
    return SqlConfigStore(session_factory)


@pytest.fixture
def json_store(tmp_path):
    store = JsonConfigStore(tmp_path / "config.json")
    store.initialize()
    return store


@pytest.fixture(params=["sql", "json"])
def store(request):
    return request.getfixturevalue(f"{request.param}_store")


@pytest.fixture(scope="session")
def password_hash():
    return hash_password(TEST_PASSWORD)


@pytest.fixture
def unlocked_store(store, password_hash):
    store.write(SettingsPatch(password_hash=password_hash, exclusive_enabled=True))
    return store
