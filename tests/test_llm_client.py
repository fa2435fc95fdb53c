"""Tests for complete_text() and model resolution."""

from unittest.mock import AsyncMock, MagicMock, patch

from cortex.llm.client import complete_text
from cortex.llm.models import DEFAULT_MODEL, MODEL_MAP, resolve_model


def _mock_client(text: str | None) -> MagicMock:
    mock_response = MagicMock()
    mock_response.content = [MagicMock(text=text)] if text is not None else []
    client = MagicMock()
    client.messages.create = AsyncMock(return_value=mock_response)
    return client


@patch("cortex.llm.models.settings")
async def test_complete_text_basic(mock_settings) -> None:
    mock_settings.default_memory_model = "sonnet"
    client = _mock_client("hello world")
    with patch("cortex.llm.client._get_client", return_value=client):
        result = await complete_text([{"role": "user", "content": "hi"}])

    assert result == "hello world"
    kwargs = client.messages.create.call_args.kwargs
    assert kwargs["model"] == MODEL_MAP["sonnet"]
    assert kwargs["max_tokens"] == 1024
    assert "system" not in kwargs
    assert "temperature" not in kwargs


async def test_complete_text_passes_system_and_temperature() -> None:
    client = _mock_client("ok")
    with patch("cortex.llm.client._get_client", return_value=client):
        await complete_text(
            [{"role": "user", "content": "hi"}],
            system="Extract things.",
            temperature=0.0,
            max_tokens=20,
        )

    kwargs = client.messages.create.call_args.kwargs
    assert kwargs["system"] == "Extract things."
    assert kwargs["temperature"] == 0.0
    assert kwargs["max_tokens"] == 20


async def test_complete_text_explicit_model_wins() -> None:
    client = _mock_client("ok")
    with patch("cortex.llm.client._get_client", return_value=client):
        await complete_text([{"role": "user", "content": "hi"}], model="claude-custom")

    assert client.messages.create.call_args.kwargs["model"] == "claude-custom"


async def test_complete_text_empty_content() -> None:
    client = _mock_client(None)
    with patch("cortex.llm.client._get_client", return_value=client):
        assert await complete_text([{"role": "user", "content": "hi"}]) == ""


# -- resolve_model -------------------------------------------------------------


def test_resolve_alias() -> None:
    assert resolve_model("opus") == MODEL_MAP["opus"]


def test_resolve_full_id_passes_through() -> None:
    assert resolve_model("claude-3-5-haiku-latest") == "claude-3-5-haiku-latest"


@patch("cortex.llm.models.settings")
def test_resolve_uses_configured_default(mock_settings) -> None:
    mock_settings.default_memory_model = "sonnet"
    assert resolve_model() == MODEL_MAP["sonnet"]


@patch("cortex.llm.models.settings")
def test_unknown_default_falls_back_to_haiku(mock_settings) -> None:
    mock_settings.default_memory_model = "gpt-4"
    assert resolve_model() == DEFAULT_MODEL
