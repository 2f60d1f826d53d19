"""Tests for validator config loading."""

import textwrap

import pytest

from didenvelope.config import (
    CONFIG_ENV_VAR,
    DEFAULT_MAX_INPUT_BYTES,
    ValidatorConfig,
    ValidatorConfigError,
    config_from_env,
    load_validator_config,
    parse_validator_config,
    safe_yaml_load,
)
from didenvelope.suites import CryptoSuite


def _write(tmp_path, text):
    path = tmp_path / "validator.yaml"
    path.write_text(textwrap.dedent(text))
    return path


class TestDefaults:

    def test_defaults(self):
        config = ValidatorConfig()
        assert config.enabled_suites == frozenset(CryptoSuite)
        assert config.strict_json is True
        assert config.max_input_bytes == DEFAULT_MAX_INPUT_BYTES

    @pytest.mark.parametrize("data", [None, {}, {"validator": None}])
    def test_empty_config_is_default(self, data):
        assert parse_validator_config(data) == ValidatorConfig()


class TestLoadValidatorConfig:

    def test_full_config(self, tmp_path):
        path = _write(tmp_path, """\
            validator:
              enabled_suites: [Ed25519, EcdsaSecp256k1]
              strict_json: false
              max_input_bytes: 4096
        """)
        config = load_validator_config(path)
        assert config.enabled_suites == frozenset(
            {CryptoSuite.ED25519, CryptoSuite.ECDSA_SECP256K1}
        )
        assert config.strict_json is False
        assert config.max_input_bytes == 4096

    def test_missing_file(self, tmp_path):
        with pytest.raises(ValidatorConfigError, match="not found"):
            load_validator_config(tmp_path / "nope.yaml")

    def test_invalid_yaml(self, tmp_path):
        path = _write(tmp_path, "validator: [unclosed\n")
        with pytest.raises(ValidatorConfigError, match="Invalid YAML"):
            load_validator_config(path)

    def test_duplicate_yaml_key(self, tmp_path):
        path = _write(tmp_path, """\
            validator:
              strict_json: true
              strict_json: false
        """)
        with pytest.raises(ValidatorConfigError, match="Duplicate config key 'strict_json' at line 3"):
            load_validator_config(path)

    def test_unknown_key_warns(self, tmp_path, caplog):
        path = _write(tmp_path, """\
            validator:
              strict_json: true
              verbose: yes
        """)
        with caplog.at_level("WARNING", logger="didenvelope.config"):
            config = load_validator_config(path)
        assert config.strict_json is True
        assert "verbose" in caplog.text


class TestValidation:

    def test_unknown_suite(self):
        with pytest.raises(ValidatorConfigError, match="Unknown suite 'Bls'"):
            parse_validator_config({"validator": {"enabled_suites": ["Bls"]}})

    @pytest.mark.parametrize("suites", [[], "Ed25519", None])
    def test_suites_must_be_non_empty_list(self, suites):
        with pytest.raises(ValidatorConfigError, match="non-empty list"):
            parse_validator_config({"validator": {"enabled_suites": suites}})

    def test_strict_json_must_be_bool(self):
        with pytest.raises(ValidatorConfigError, match="strict_json"):
            parse_validator_config({"validator": {"strict_json": "yes please"}})

    @pytest.mark.parametrize("limit", [0, -1, True, "1MB", 1.5])
    def test_max_input_bytes_must_be_positive_int(self, limit):
        with pytest.raises(ValidatorConfigError, match="max_input_bytes"):
            parse_validator_config({"validator": {"max_input_bytes": limit}})

    def test_section_must_be_mapping(self):
        with pytest.raises(ValidatorConfigError, match="must be a mapping"):
            parse_validator_config({"validator": ["strict_json"]})

    def test_top_level_must_be_mapping(self):
        with pytest.raises(ValidatorConfigError):
            parse_validator_config(["validator"])


class TestConfigFromEnv:

    def test_unset_returns_defaults(self, monkeypatch):
        monkeypatch.delenv(CONFIG_ENV_VAR, raising=False)
        assert config_from_env() == ValidatorConfig()

    def test_env_path(self, tmp_path, monkeypatch):
        path = _write(tmp_path, """\
            validator:
              max_input_bytes: 2048
        """)
        monkeypatch.setenv(CONFIG_ENV_VAR, str(path))
        assert config_from_env().max_input_bytes == 2048


class TestSafeYamlLoad:

    def test_nested_duplicate_rejected(self):
        with pytest.raises(ValueError, match="Duplicate config key 'a' at line 3"):
            safe_yaml_load("outer:\n  a: 1\n  a: 2\n")

    def test_plain_mapping(self):
        assert safe_yaml_load("a: 1\nb: [x, y]\n") == {"a": 1, "b": ["x", "y"]}

    def test_same_key_in_sibling_mappings(self):
        data = safe_yaml_load("one:\n  a: 1\ntwo:\n  a: 2\n")
        assert data == {"one": {"a": 1}, "two": {"a": 2}}

    def test_merge_keys_still_resolve(self):
        data = safe_yaml_load("base: &b {x: 1}\nchild:\n  <<: *b\n  y: 2\n")
        assert data["child"] == {"x": 1, "y": 2}

    def test_unhashable_key_is_yaml_error(self, tmp_path):
        path = _write(tmp_path, "? [a, b]\n: 1\n")
        with pytest.raises(ValidatorConfigError, match="Invalid YAML"):
            load_validator_config(path)
