"""
Session configuration and layered config loading.
"""

import pytest

from plumage.cache.backends.memory import MemoryBackend
from plumage.cache.backends.redis import RedisBackend
from plumage.config import ConfigError, ConfigLoader
from plumage.faults.core import FaultDomain, Severity
from plumage.sessions.config import (
    DEFAULT_SESSION_TTL_RENEWAL,
    SessionConfig,
    build_backend,
    build_store,
)
from plumage.sessions.faults import SessionConfigFault
from plumage.sessions.manager import SessionManager
from plumage.sessions.store import CredentialsCache


class DictStore:
    """Minimal credentials store used to check custom selectors."""

    def __init__(self, prefix: str = ""):
        self.prefix = prefix
        self.data = {}

    async def get(self, key):
        return self.data.get(key)

    async def put(self, key, record, ttl=None):
        self.data[key] = record

    async def delete(self, key):
        self.data.pop(key, None)


# ============================================================================
# SessionConfig
# ============================================================================

class TestSessionConfig:

    def test_defaults(self):
        config = SessionConfig()
        assert config.session_ttl_renewal == DEFAULT_SESSION_TTL_RENEWAL == 900_000
        assert config.resolved_session_key == "auth"
        assert config.current_user_assigns_key == "current_user"
        assert config.cache_store_backend == "memory"

    def test_namespaced_session_key(self):
        assert SessionConfig(app_name="my_app").resolved_session_key == "my_app_auth"

    def test_explicit_session_key_not_namespaced(self):
        config = SessionConfig(app_name="my_app", session_key="sid")
        assert config.resolved_session_key == "sid"

    @pytest.mark.parametrize("value", ["none", "None", " NONE ", None])
    def test_renewal_disabled(self, value):
        assert SessionConfig(session_ttl_renewal=value).session_ttl_renewal is None

    @pytest.mark.parametrize("value", ["soon", -1, True, 1.5])
    def test_invalid_renewal(self, value):
        with pytest.raises(SessionConfigFault) as exc:
            SessionConfig(session_ttl_renewal=value)
        assert exc.value.domain == FaultDomain.CONFIG
        assert exc.value.severity == Severity.FATAL

    def test_zero_renewal_allowed(self):
        assert SessionConfig(session_ttl_renewal=0).session_ttl_renewal == 0

    def test_invalid_session_key(self):
        with pytest.raises(SessionConfigFault):
            SessionConfig(session_key=42)

    def test_frozen(self):
        config = SessionConfig()
        with pytest.raises(AttributeError):
            config.app_name = "other"


class TestFromDict:

    def test_basic(self):
        config = SessionConfig.from_dict({"app_name": "app", "session_ttl_renewal": "none"})
        assert config.app_name == "app"
        assert config.session_ttl_renewal is None

    def test_enabled_flag_ignored(self):
        assert SessionConfig.from_dict({"enabled": True}).app_name is None

    def test_unknown_option(self):
        with pytest.raises(SessionConfigFault) as exc:
            SessionConfig.from_dict({"session_ttl": 5})
        assert "session_ttl" in exc.value.message

    def test_store_mapping(self):
        config = SessionConfig.from_dict({"session_store": {"type": "credentials_cache", "ttl": 60_000}})
        assert config.session_store == ("credentials_cache", {"ttl": 60_000})

    def test_store_mapping_default_type(self):
        config = SessionConfig.from_dict({"session_store": {"namespace": "creds"}})
        assert config.session_store == ("credentials_cache", {"namespace": "creds"})

    def test_store_list(self):
        config = SessionConfig.from_dict({"session_store": ["credentials_cache", {}]})
        assert config.session_store == ("credentials_cache", {})

    def test_null_backend_options(self):
        assert SessionConfig.from_dict({"cache_store_options": None}).cache_store_options == {}


# ============================================================================
# Store / backend resolution
# ============================================================================

class TestBuildStore:

    def test_default_store(self):
        store = build_store(SessionConfig())
        assert isinstance(store, CredentialsCache)
        assert isinstance(store.backend, MemoryBackend)
        assert store.namespace == "credentials"
        assert store.ttl == 30 * 60 * 1000

    def test_store_options(self):
        store = build_store(SessionConfig(session_store=("credentials_cache", {"ttl": 1000, "namespace": "x"})))
        assert store.ttl == 1000
        assert store.namespace == "x"

    def test_backend_options(self):
        store = build_store(SessionConfig(cache_store_options={"max_size": 5, "sweep_interval": 0}))
        assert store.backend._max_size == 5

    def test_redis_backend(self):
        config = SessionConfig(
            cache_store_backend="redis",
            cache_store_options={"url": "redis://cache:6379/1", "key_prefix": "app:"},
        )
        backend = build_backend(config)
        assert isinstance(backend, RedisBackend)
        assert backend.is_distributed

    def test_backend_instance(self):
        backend = MemoryBackend(sweep_interval=0)
        assert build_backend(SessionConfig(cache_store_backend=backend)) is backend

    def test_store_instance(self):
        store = DictStore()
        assert build_store(SessionConfig(session_store=store)) is store

    def test_store_factory(self):
        store = build_store(SessionConfig(session_store=(DictStore, {"prefix": "p"})))
        assert isinstance(store, DictStore)
        assert store.prefix == "p"

    def test_store_class_is_a_factory(self):
        assert isinstance(build_store(SessionConfig(session_store=DictStore)), DictStore)

    def test_unknown_store(self):
        with pytest.raises(SessionConfigFault) as exc:
            build_store(SessionConfig(session_store="mnesia"))
        assert "mnesia" in exc.value.message

    def test_unknown_backend(self):
        with pytest.raises(SessionConfigFault):
            build_store(SessionConfig(cache_store_backend="memcached"))

    def test_malformed_store_tuple(self):
        with pytest.raises(SessionConfigFault):
            build_store(SessionConfig(session_store=("credentials_cache",)))

    def test_manager_builds_store_from_config(self):
        manager = SessionManager(SessionConfig(session_store=("credentials_cache", {"namespace": "shop"})))
        assert isinstance(manager.store, CredentialsCache)
        assert manager.store.namespace == "shop"


# ============================================================================
# ConfigLoader
# ============================================================================

class TestConfigLoader:

    def test_yaml_file(self, tmp_path):
        path = tmp_path / "plumage.yaml"
        path.write_text("sessions:\n  app_name: shop\n  session_ttl_renewal: 60000\n")

        loader = ConfigLoader.load(paths=[str(path)], environ={})

        assert loader.get("sessions.app_name") == "shop"
        assert loader.get("sessions.session_ttl_renewal") == 60000

    def test_json_file(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text('{"sessions": {"app_name": "shop"}}')

        assert ConfigLoader.load(paths=[str(path)], environ={}).get("sessions.app_name") == "shop"

    def test_unreadable_yaml(self, tmp_path):
        path = tmp_path / "broken.yaml"
        path.write_text("sessions: [unclosed\n")

        with pytest.raises(ConfigError):
            ConfigLoader.load(paths=[str(path)], environ={})

    def test_env_nesting_and_parsing(self):
        loader = ConfigLoader.load(
            environ={
                "PLUMAGE_SESSIONS__APP_NAME": "shop",
                "PLUMAGE_SESSIONS__SESSION_TTL_RENEWAL": "120000",
                "PLUMAGE_SESSIONS__CACHE_STORE_OPTIONS": '{"max_size": 10}',
                "OTHER_VAR": "ignored",
            },
        )

        assert loader.get("sessions.app_name") == "shop"
        assert loader.get("sessions.session_ttl_renewal") == 120000
        assert loader.get("sessions.cache_store_options") == {"max_size": 10}
        assert loader.get("other_var") is None

    def test_digits_stay_numbers(self):
        loader = ConfigLoader.load(environ={"PLUMAGE_SESSIONS__SESSION_TTL_RENEWAL": "0"})
        assert loader.get("sessions.session_ttl_renewal") == 0

    def test_precedence(self, tmp_path):
        yaml_path = tmp_path / "plumage.yaml"
        yaml_path.write_text("sessions:\n  app_name: from_file\n  session_key: file_key\n  current_user_assigns_key: file_user\n")
        env_path = tmp_path / ".env"
        env_path.write_text("PLUMAGE_SESSIONS__SESSION_KEY=dotenv_key\nPLUMAGE_SESSIONS__APP_NAME=from_dotenv\n")

        loader = ConfigLoader.load(
            paths=[str(yaml_path)],
            env_file=str(env_path),
            environ={"PLUMAGE_SESSIONS__APP_NAME": "from_env"},
            overrides={"sessions": {"current_user_assigns_key": "override_user"}},
        )

        assert loader.get("sessions.app_name") == "from_env"
        assert loader.get("sessions.session_key") == "dotenv_key"
        assert loader.get("sessions.current_user_assigns_key") == "override_user"

    def test_missing_env_file(self, tmp_path):
        loader = ConfigLoader.load(env_file=str(tmp_path / "missing.env"), environ={})
        assert loader.to_dict() == {}

    def test_session_config_defaults(self):
        session = ConfigLoader.load(environ={}).get_session_config()
        assert session["session_ttl_renewal"] == DEFAULT_SESSION_TTL_RENEWAL
        assert session["cache_store_backend"] == "memory"
        assert session["current_user_assigns_key"] == "current_user"

    def test_session_store_string(self):
        loader = ConfigLoader.load(environ={"PLUMAGE_SESSIONS__SESSION_STORE": "credentials_cache"})
        assert loader.get_session_config()["session_store"] == {"type": "credentials_cache"}

    def test_sessions_must_be_mapping(self):
        loader = ConfigLoader.load(environ={"PLUMAGE_SESSIONS": "yes"})
        with pytest.raises(ConfigError):
            loader.get_session_config()

    def test_session_config_from_loader(self):
        loader = ConfigLoader.load(
            environ={
                "PLUMAGE_SESSIONS__APP_NAME": "shop",
                "PLUMAGE_SESSIONS__SESSION_TTL_RENEWAL": "none",
            },
        )

        config = SessionConfig.from_loader(loader)

        assert config.resolved_session_key == "shop_auth"
        assert config.session_ttl_renewal is None
