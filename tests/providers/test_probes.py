"""Tests for the per-type health checks and model discovery."""

import subprocess
from unittest.mock import MagicMock, patch

import pytest
import requests

from modelctl.config.models import ProviderConfig
from modelctl.exceptions import ProbeError, ProbeFailureKind
from modelctl.providers import anthropic, claude_code, ollama, openai
from modelctl.providers.health import (
    STEP_AUTHENTICATED,
    STEP_CONFIGURED,
    STEP_WORKING,
    Deadline,
    ProbeRequest,
)


def make_request(provider_type, api_key=None, base_url=None, seconds=5.0):
    return ProbeRequest(
        name=provider_type,
        provider=ProviderConfig(type=provider_type),
        api_key=api_key,
        base_url=base_url,
        deadline=Deadline(seconds),
    )


def response(status=200, payload=None):
    mock = MagicMock()
    mock.status_code = status
    mock.json.return_value = payload if payload is not None else {}
    return mock


class TestAnthropicProbe:
    """Tests for the Anthropic API probe."""

    def test_missing_key(self):
        result = anthropic.health_check(make_request("anthropic"))
        assert not result.configured
        assert result.error_step == STEP_CONFIGURED
        assert result.short_error() == "not configured"

    @patch("requests.get")
    def test_healthy(self, mock_get):
        mock_get.return_value = response(200, {"data": []})
        result = anthropic.health_check(make_request("anthropic", api_key="sk-live-abcdefghijklmnop"))
        assert result.healthy
        url = mock_get.call_args.args[0]
        headers = mock_get.call_args.kwargs["headers"]
        assert url == "https://api.anthropic.com/v1/models"
        assert headers["x-api-key"] == "sk-live-abcdefghijklmnop"
        assert headers["anthropic-version"] == "2023-06-01"
        assert mock_get.call_args.kwargs["timeout"] <= 5.0

    @patch("requests.get")
    def test_rejected_key(self, mock_get):
        mock_get.return_value = response(401)
        result = anthropic.health_check(make_request("anthropic", api_key="sk-live-abcdefghijklmnop"))
        assert result.configured
        assert not result.authenticated
        assert result.error_step == STEP_AUTHENTICATED
        assert result.kind == ProbeFailureKind.AUTH

    @patch("requests.get", side_effect=requests.ConnectionError("refused"))
    def test_network_error(self, mock_get):
        result = anthropic.health_check(make_request("anthropic", api_key="sk-live-abcdefghijklmnop"))
        assert result.error_step == STEP_WORKING
        assert result.short_error() == "connectivity failed"

    @patch("requests.get", side_effect=requests.Timeout("slow"))
    def test_timeout(self, mock_get):
        result = anthropic.health_check(make_request("anthropic", api_key="sk-live-abcdefghijklmnop"))
        assert result.kind == ProbeFailureKind.TIMEOUT

    @patch("requests.get")
    def test_discover(self, mock_get):
        mock_get.return_value = response(
            200, {"data": [{"id": "claude-sonnet-4-20250514"}, {"id": "claude-3-5-haiku-20241022"}, {}]}
        )
        models = anthropic.discover_models(
            make_request("anthropic", api_key="sk-live-abcdefghijklmnop", base_url="https://proxy.example.com/")
        )
        assert models == ["claude-3-5-haiku-20241022", "claude-sonnet-4-20250514"]
        assert mock_get.call_args.args[0] == "https://proxy.example.com/v1/models"

    def test_discover_without_key(self):
        with pytest.raises(ProbeError) as exc_info:
            anthropic.discover_models(make_request("anthropic"))
        assert exc_info.value.kind == ProbeFailureKind.CONFIG

    @patch("requests.get")
    def test_expired_deadline_skips_request(self, mock_get):
        result = anthropic.health_check(
            make_request("anthropic", api_key="sk-live-abcdefghijklmnop", seconds=0.0)
        )
        assert result.kind == ProbeFailureKind.TIMEOUT
        mock_get.assert_not_called()


class TestOpenAIProbe:
    """Tests for the OpenAI API probe."""

    @patch("requests.get")
    def test_bearer_auth(self, mock_get):
        mock_get.return_value = response(200, {"data": [{"id": "gpt-4o"}]})
        models = openai.discover_models(make_request("openai", api_key="sk-live-abcdefghijklmnop"))
        assert models == ["gpt-4o"]
        assert mock_get.call_args.args[0] == "https://api.openai.com/v1/models"
        assert mock_get.call_args.kwargs["headers"]["Authorization"] == "Bearer sk-live-abcdefghijklmnop"


class TestOllamaProbe:
    """Tests for the Ollama probe."""

    @patch("requests.get")
    def test_healthy(self, mock_get):
        mock_get.return_value = response(200, {"models": []})
        result = ollama.health_check(make_request("ollama"))
        assert result.healthy
        assert mock_get.call_args.args[0] == "http://localhost:11434/api/tags"

    @patch("requests.get", side_effect=requests.ConnectionError("refused"))
    def test_server_down(self, mock_get):
        result = ollama.health_check(make_request("ollama", base_url="http://localhost:9999"))
        assert result.configured and result.authenticated
        assert not result.working

    @patch("requests.get")
    def test_discover(self, mock_get):
        mock_get.return_value = response(200, {"models": [{"name": "qwen2:7b"}, {"name": "llama3:8b"}]})
        assert ollama.discover_models(make_request("ollama")) == ["llama3:8b", "qwen2:7b"]

    @patch("requests.get", side_effect=requests.ConnectionError("refused"))
    def test_discover_server_down_suggests_serve(self, mock_get):
        with pytest.raises(ProbeError) as exc_info:
            ollama.discover_models(make_request("ollama"))
        assert "ollama serve" in exc_info.value.suggestions[-1]

    @patch("requests.get")
    def test_discover_garbage(self, mock_get):
        mock_get.return_value = response(200, {"models": "nope"})
        with pytest.raises(ProbeError, match="unexpected response"):
            ollama.discover_models(make_request("ollama"))

    @patch("requests.get")
    def test_server_error(self, mock_get):
        mock_get.return_value = response(500)
        result = ollama.health_check(make_request("ollama"))
        assert "HTTP 500" in result.error


class TestClaudeCodeProbe:
    """Tests for the Claude Code CLI probe."""

    @patch("shutil.which", return_value=None)
    def test_not_installed(self, mock_which):
        result = claude_code.health_check(make_request("claude-code"))
        assert not result.configured
        assert result.short_error() == "not installed"

    @patch("subprocess.run")
    @patch("shutil.which", return_value="/usr/local/bin/claude")
    def test_installed(self, mock_which, mock_run):
        mock_run.return_value = subprocess.CompletedProcess(
            args=[], returncode=0, stdout="1.0.30 (Claude Code)\n", stderr=""
        )
        result = claude_code.health_check(make_request("claude-code"))
        assert result.healthy
        assert result.version == "1.0.30 (Claude Code)"
        assert mock_run.call_args.args[0] == ["/usr/local/bin/claude", "--version"]
        assert mock_run.call_args.kwargs["timeout"] <= 5.0

    @patch("subprocess.run", side_effect=subprocess.TimeoutExpired(cmd="claude", timeout=5))
    @patch("shutil.which", return_value="/usr/local/bin/claude")
    def test_version_timeout(self, mock_which, mock_run):
        result = claude_code.health_check(make_request("claude-code"))
        assert result.configured
        assert not result.working
        assert result.kind == ProbeFailureKind.TIMEOUT

    @patch("subprocess.run")
    @patch("shutil.which", return_value="/usr/local/bin/claude")
    def test_version_fails(self, mock_which, mock_run):
        mock_run.return_value = subprocess.CompletedProcess(args=[], returncode=2, stdout="", stderr="boom")
        detection = claude_code.detect(Deadline(5.0))
        assert detection.installed
        assert detection.error == "boom"

    @patch("shutil.which", return_value="/usr/local/bin/claude")
    def test_discover_aliases(self, mock_which):
        assert claude_code.discover_models(make_request("claude-code")) == ["haiku", "sonnet", "opus"]

    @patch("shutil.which", return_value=None)
    def test_discover_not_installed(self, mock_which):
        with pytest.raises(ProbeError) as exc_info:
            claude_code.discover_models(make_request("claude-code"))
        assert exc_info.value.kind == ProbeFailureKind.NOT_INSTALLED
