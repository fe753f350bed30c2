import pytest

from config import Config


def test_defaults_point_at_the_public_service(monkeypatch):
    for key in ("PERFUME_BASE_URL", "PERFUME_IDLE_TIMEOUT_SECONDS"):
        monkeypatch.delenv(key, raising=False)
    config = Config()
    assert config.upload_url == "https://api.fashtechai.com/upload"
    assert config.join_url == "https://api.fashtechai.com/queue/join"
    assert config.data_url == "https://api.fashtechai.com/queue/data"
    assert config.fn_index == 0
    assert config.trigger_id == 10


def test_file_url_uses_file_route():
    config = Config(base_url="https://queue.test/")
    assert config.base_url == "https://queue.test"
    assert config.file_url("/tmp/gradio/abc/look.jpg") == "https://queue.test/file=/tmp/gradio/abc/look.jpg"


def test_environment_overrides_are_typed(monkeypatch):
    monkeypatch.setenv("PERFUME_BASE_URL", "http://localhost:7860/")
    monkeypatch.setenv("PERFUME_IDLE_TIMEOUT_SECONDS", "12.5")
    monkeypatch.setenv("PERFUME_TRIGGER_ID", "7")
    monkeypatch.setenv("PERFUME_VERIFY_TLS", "false")

    config = Config()

    assert config.base_url == "http://localhost:7860"
    assert config.idle_timeout_seconds == 12.5
    assert config.trigger_id == 7
    assert config.verify_tls is False


@pytest.mark.parametrize("length", ["0", "33"])
def test_session_token_length_is_checked_on_load(monkeypatch, length):
    monkeypatch.setenv("PERFUME_SESSION_TOKEN_LENGTH", length)
    with pytest.raises(ValueError, match="session_token_length"):
        Config()
