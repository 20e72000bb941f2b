"""Tests for layered configuration."""

import pytest

from agentrun import Config, ConfigurationError


class TestConfigMerge:
    """Tests for Config.with_configs and Config.update."""

    def test_disjoint_fields_are_combined(self):
        """Test that fields from different layers are all kept."""
        cfg = Config.with_configs(
            Config(region_id="cn-shanghai"), Config(timeout_ms=5000)
        )

        assert cfg.region_id == "cn-shanghai"
        assert cfg.timeout_ms == 5000

    def test_unset_field_never_erases(self):
        """Test that a later layer with the field unset keeps the earlier value."""
        cfg = Config.with_configs(Config(region_id="cn-shanghai"), Config())

        assert cfg.region_id == "cn-shanghai"

    def test_later_layer_wins(self):
        """Test that later layers override earlier ones per field."""
        cfg = Config.with_configs(
            Config(region_id="cn-shanghai", timeout_ms=1),
            Config(region_id="cn-beijing"),
        )

        assert cfg.region_id == "cn-beijing"
        assert cfg.timeout_ms == 1

    def test_none_layers_are_skipped(self):
        """Test that None entries in the layer list are ignored."""
        cfg = Config.with_configs(None, Config(account_id="42"), None)

        assert cfg.account_id == "42"

    def test_headers_merge_key_wise(self):
        """Test that header maps are merged rather than replaced."""
        cfg = Config.with_configs(
            Config(headers={"X-A": "1", "X-B": "1"}),
            Config(headers={"X-B": "2", "X-C": "2"}),
        )

        assert cfg.headers == {"X-A": "1", "X-B": "2", "X-C": "2"}

    def test_with_configs_does_not_mutate_inputs(self):
        """Test that merging returns a new config."""
        base = Config(headers={"X-A": "1"})
        Config.with_configs(base, Config(headers={"X-B": "2"}))

        assert base.headers == {"X-A": "1"}

    def test_update_in_place(self):
        """Test that update merges into the receiver and returns it."""
        cfg = Config(region_id="cn-shanghai")
        result = cfg.update(Config(timeout_ms=10))

        assert result is cfg
        assert cfg.timeout_ms == 10
        assert cfg.region_id == "cn-shanghai"


class TestConfigDefaults:
    """Tests for environment fallbacks and defaults."""

    def test_defaults(self):
        """Test default region, timeouts and endpoints."""
        cfg = Config(account_id="123")

        assert cfg.region_id == "cn-hangzhou"
        assert cfg.timeout_ms == 600_000
        assert cfg.read_timeout_ms == 100_000_000
        assert cfg.control_endpoint == "https://agentrun.cn-hangzhou.aliyuncs.com"
        assert (
            cfg.data_endpoint
            == "https://123.agentrun-data.cn-hangzhou.aliyuncs.com"
        )
        assert cfg.devs_endpoint == "https://devs.cn-hangzhou.aliyuncs.com"
        assert cfg.security_token == ""
        assert cfg.token is None

    def test_environment_fallback_chain(self, monkeypatch):
        """Test that the secondary variable is used when the first is unset."""
        monkeypatch.setenv("ALIBABA_CLOUD_ACCESS_KEY_ID", "alibaba-ak")
        monkeypatch.setenv("FC_REGION", "cn-beijing")

        cfg = Config()

        assert cfg.access_key_id == "alibaba-ak"
        assert cfg.region_id == "cn-beijing"

    def test_primary_environment_variable_wins(self, monkeypatch):
        """Test that AGENTRUN_* variables take precedence."""
        monkeypatch.setenv("AGENTRUN_ACCESS_KEY_ID", "agentrun-ak")
        monkeypatch.setenv("ALIBABA_CLOUD_ACCESS_KEY_ID", "alibaba-ak")

        assert Config().access_key_id == "agentrun-ak"

    def test_explicit_value_beats_environment(self, monkeypatch):
        """Test that code-level values override the environment."""
        monkeypatch.setenv("AGENTRUN_ACCOUNT_ID", "from-env")

        assert Config(account_id="from-code").account_id == "from-code"

    def test_endpoint_from_environment(self, monkeypatch):
        """Test that the data endpoint can come from the environment."""
        monkeypatch.setenv("AGENTRUN_DATA_ENDPOINT", "https://data.example.com")

        assert Config().data_endpoint == "https://data.example.com"


class TestConfigRequiredFields:
    """Tests for credentials that must not be empty."""

    @pytest.mark.parametrize(
        "field, env_var",
        [
            ("access_key_id", "AGENTRUN_ACCESS_KEY_ID"),
            ("access_key_secret", "AGENTRUN_ACCESS_KEY_SECRET"),
            ("account_id", "AGENTRUN_ACCOUNT_ID"),
        ],
    )
    def test_missing_value_raises(self, field, env_var):
        """Test that reading an unset credential raises ConfigurationError."""
        with pytest.raises(ConfigurationError) as exc_info:
            getattr(Config(), field)

        assert env_var in str(exc_info.value)

    def test_explicit_empty_value_is_rejected_at_use(self, monkeypatch):
        """Test that an explicit empty override fails when read, not at merge."""
        monkeypatch.setenv("AGENTRUN_ACCOUNT_ID", "from-env")
        cfg = Config.with_configs(Config(account_id="123"), Config(account_id=""))

        with pytest.raises(ConfigurationError):
            cfg.account_id

    def test_data_endpoint_requires_account_id(self):
        """Test that the derived data endpoint needs an account id."""
        with pytest.raises(ConfigurationError):
            Config().data_endpoint


class TestConfigRepr:
    """Tests for Config.__repr__."""

    def test_secrets_are_masked(self):
        """Test that secret values do not appear in the repr."""
        cfg = Config(access_key_secret="super-secret-value", region_id="cn-x")

        text = repr(cfg)

        assert "super-secret-value" not in text
        assert "supe...alue" in text
        assert "region_id='cn-x'" in text
