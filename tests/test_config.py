"""Tests for SolidConfig loading and store construction."""

import pytest

from solidpod.config import SolidConfig, build_store
from solidpod.exceptions import ConfigurationError
from solidpod.storage import MemoryCredentialStore, RedisCredentialStore


class TestSolidConfig:
    """Defaults and derived values."""

    def test_defaults(self):
        config = SolidConfig(server_url="http://solid:3000/")
        assert config.scopes == ["openid", "webid", "offline_access"]
        assert config.client_name == "solidpod"
        assert config.import_cap == 100
        assert config.store.backend == "memory"

    def test_issuer_defaults_to_server(self):
        assert SolidConfig(server_url="http://solid:3000/").issuer_url == "http://solid:3000"

    def test_explicit_issuer(self):
        config = SolidConfig(server_url="http://solid:3000", issuer="https://idp.test/")
        assert config.issuer_url == "https://idp.test"


class TestFromYaml:
    """YAML loading."""

    def test_load(self, tmp_path):
        path = tmp_path / "solid.yaml"
        path.write_text(
            "server_url: http://solid:3000\n"
            "redirect_uri: https://app.test/cb\n"
            "import_cap: 25\n"
            "store:\n"
            "  backend: redis\n"
            "  redis_url: redis://cache:6379/1\n"
        )
        config = SolidConfig.from_yaml(path)
        assert config.redirect_uri == "https://app.test/cb"
        assert config.import_cap == 25
        assert config.store.redis_url == "redis://cache:6379/1"

    def test_invalid(self, tmp_path):
        path = tmp_path / "solid.yaml"
        path.write_text("import_cap: 0\n")
        with pytest.raises(ConfigurationError):
            SolidConfig.from_yaml(path)


class TestFromEnv:
    """SOLID_* environment variables."""

    def test_server_url(self):
        config = SolidConfig.from_env({"SOLID_SERVER_URL": "https://pods.test", "SOLID_LOG_LEVEL": "debug"})
        assert config.server_url == "https://pods.test"
        assert config.log_level == "DEBUG"

    def test_host_port_secure(self):
        config = SolidConfig.from_env({"SOLID_HOST": "solid", "SOLID_PORT": "8443", "SOLID_SECURE": "true"})
        assert config.server_url == "https://solid:8443"

    def test_host_with_scheme(self):
        config = SolidConfig.from_env({"SOLID_HOST": "http://solid"})
        assert config.server_url == "http://solid:3000"

    def test_verify_tls_and_timeout(self):
        config = SolidConfig.from_env(
            {"SOLID_SERVER_URL": "http://x", "SOLID_VERIFY_TLS": "false", "SOLID_TIMEOUT": "5"}
        )
        assert config.verify_tls is False
        assert config.timeout_seconds == 5.0

    def test_invalid_timeout(self):
        with pytest.raises(ConfigurationError):
            SolidConfig.from_env({"SOLID_SERVER_URL": "http://x", "SOLID_TIMEOUT": "-1"})


class TestBuildStore:
    """Backend selection."""

    def test_memory(self):
        assert isinstance(build_store(SolidConfig(server_url="http://x")), MemoryCredentialStore)

    def test_redis(self):
        config = SolidConfig(server_url="http://x", store={"backend": "redis"})
        assert isinstance(build_store(config), RedisCredentialStore)

    def test_unknown(self):
        config = SolidConfig(server_url="http://x", store={"backend": "etcd"})
        with pytest.raises(ConfigurationError, match="etcd"):
            build_store(config)
