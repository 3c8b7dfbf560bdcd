import pytest
from pydantic import ValidationError

from upload_server.config.settings import Settings


def test_defaults(monkeypatch: pytest.MonkeyPatch):
    for var in ["SERVER_ADDRESS", "STORAGE_DIR", "VERBOSE", "LOG_LEVEL", "DOWNLOAD_CHUNK_SIZE"]:
        monkeypatch.delenv(var, raising=False)

    settings = Settings(_env_file=None)

    assert settings.server_address == "localhost:3000"
    assert settings.storage_dir == "./uploads"
    assert settings.verbose is False
    assert settings.log_level == "INFO"
    assert settings.host == "localhost"
    assert settings.port == 3000


def test_environment_overrides(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("SERVER_ADDRESS", "0.0.0.0:8080")
    monkeypatch.setenv("STORAGE_DIR", "/srv/uploads")
    monkeypatch.setenv("VERBOSE", "true")

    settings = Settings(_env_file=None)

    assert settings.host == "0.0.0.0"
    assert settings.port == 8080
    assert settings.storage_dir == "/srv/uploads"
    assert settings.verbose is True


def test_ipv6_address():
    settings = Settings(_env_file=None, server_address="[::1]:3000")

    assert settings.host == "::1"
    assert settings.port == 3000


@pytest.mark.parametrize("address", ["localhost", ":3000", "localhost:http", "localhost:70000"])
def test_invalid_server_address(address: str):
    with pytest.raises(ValidationError):
        Settings(_env_file=None, server_address=address)


def test_log_level_is_normalized():
    assert Settings(_env_file=None, log_level="debug").log_level == "DEBUG"

    with pytest.raises(ValidationError):
        Settings(_env_file=None, log_level="chatty")
