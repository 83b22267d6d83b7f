import pytest

from cdptap.config import Config, load_config, validate_host
from cdptap.errors import InvalidInput


def test_defaults(tmp_path):
    config = load_config(path=tmp_path / "missing.toml", env={})
    assert config == Config()
    assert config.cdp_port == 9222
    assert config.default_buffer_size == 10000


def test_file_then_env(tmp_path):
    path = tmp_path / "cdptap.toml"
    path.write_text('[cdptap]\ncdp_port = 9333\ndefault_ttl_sec = 120\nlog_level = "DEBUG"\n')

    config = load_config(path=path, env={"CDP_PORT": "9444", "CDP_SECURITY_LOCALONLY": "false"})
    assert config.cdp_port == 9444
    assert config.default_ttl_sec == 120
    assert config.log_level == "DEBUG"
    assert config.security_local_only is False


def test_invalid_integer(tmp_path):
    with pytest.raises(ValueError, match="DEFAULT_BUFFER_SIZE"):
        load_config(path=tmp_path / "none.toml", env={"DEFAULT_BUFFER_SIZE": "lots"})


def test_local_only_policy():
    with pytest.raises(InvalidInput):
        validate_host("0.0.0.0", Config())
    validate_host("0.0.0.0", Config(security_local_only=False))
    validate_host("localhost", Config())
