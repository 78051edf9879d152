"""Tests for shared CLI rendering, prompting and the root command."""

import json
from unittest.mock import patch

import click
import pytest
from click.testing import CliRunner

from modelctl import __version__
from modelctl.__main__ import cli
from modelctl.cli import get_app
from modelctl.cli.output import emit_json, error_code, error_entry, handle_errors
from modelctl.cli.prompts import ClickPrompter
from modelctl.exceptions import (
    LockTimeoutError,
    ProviderNotFoundError,
    UserAbortedError,
)


class TestErrorEntries:
    """Tests for error_code and error_entry."""

    def test_modelctl_error(self):
        entry = error_entry(ProviderNotFoundError("ghost", ["anthropic"]))
        assert entry == {
            "code": "provider_not_found",
            "message": "provider 'ghost' not found",
            "suggestion": "Available providers: anthropic",
        }

    def test_foreign_exception_code(self):
        assert error_code(ValueError("x")) == "value"
        assert error_code(KeyboardInterrupt()) == "keyboard_interrupt"

    def test_joined_suggestions(self):
        entry = error_entry(LockTimeoutError("/tmp/settings.yaml.lock", 30))
        assert entry["suggestion"].count("; ") == 1


@click.command()
@click.option("--fail", "mode", flag_value="fail")
@click.option("--abort", "mode", flag_value="abort")
@click.pass_context
@handle_errors("sample")
def sample(ctx, mode):
    ctx.ensure_object(dict)
    if mode == "fail":
        raise ProviderNotFoundError("ghost")
    if mode == "abort":
        raise KeyboardInterrupt
    emit_json("sample", {"value": 1})


class TestHandleErrors:
    """Tests for the handle_errors decorator."""

    def test_failure_text(self):
        result = CliRunner().invoke(sample, ["--fail"])
        assert result.exit_code == 1
        assert result.stderr == (
            "Error: sample: provider 'ghost' not found\n"
            "  Run 'modelctl provider add' to configure one\n"
        )

    def test_failure_json(self):
        result = CliRunner().invoke(sample, ["--fail"], obj={"json": True})
        data = json.loads(result.stdout)
        assert data["success"] is False
        assert data["command"] == "sample"
        assert data["errors"][0]["message"] == "sample: provider 'ghost' not found"

    def test_interrupt(self):
        result = CliRunner().invoke(sample, ["--abort"])
        assert result.exit_code == 130
        assert "aborted by user" in result.stderr

    def test_success_envelope(self):
        data = json.loads(CliRunner().invoke(sample, []).stdout)
        assert data == {"@version": "1.0", "command": "sample", "success": True, "value": 1, "errors": []}


class TestClickPrompter:
    """Tests for ClickPrompter."""

    @pytest.mark.parametrize("method", ["confirm", "prompt", "choose"])
    def test_abort_becomes_user_aborted(self, method):
        prompter = ClickPrompter()
        args = {"confirm": ("Sure?",), "prompt": ("Name",), "choose": ("Type", ["a", "b"])}[method]
        with patch("click.prompt", side_effect=click.Abort), patch("click.confirm", side_effect=click.Abort):
            with pytest.raises(UserAbortedError):
                getattr(prompter, method)(*args)

    def test_choose_passes_choices(self):
        with patch("click.prompt", return_value="b") as mock_prompt:
            assert ClickPrompter().choose("Type", ["a", "b"], default="a") == "b"
        assert list(mock_prompt.call_args.kwargs["type"].choices) == ["a", "b"]


class TestRootCommand:
    """Tests for the top-level command group."""

    def test_version(self):
        result = CliRunner().invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.stdout

    def test_help_without_subcommand(self, invoke):
        result = invoke()
        assert result.exit_code == 0
        assert "provider" in result.stdout
        assert "model" in result.stdout

    def test_config_option(self, invoke, tmp_path):
        target = tmp_path / "elsewhere.yaml"
        result = invoke("--config", str(target), "provider", "add", "local", "--type", "ollama")
        assert result.exit_code == 0, result.output
        assert "local:" in target.read_text(encoding="utf-8")

    def test_config_warnings_shown(self, invoke, write_settings):
        """Test that document diagnostics reach stderr at the default log level."""
        write_settings({"version": 1, "providers": {"local": {"type": "ollama"}}})
        result = invoke("model", "list")
        assert result.exit_code == 0
        assert "Warning: no default provider is set" in result.stderr
        assert "[no_default_provider]" in result.stderr
        assert "[unmapped_tier:fast]" in result.stderr

    def test_acknowledged_warnings_hidden(self, invoke, write_settings):
        write_settings(
            {
                "version": 1,
                "providers": {"local": {"type": "ollama", "api_key": "sk-live-abcdefghijklmnop"}},
                "acknowledged_defaults": ["no_default_provider", "plaintext_api_key:local"],
                "suppress_unmapped_warnings": True,
            }
        )
        result = invoke("model", "list")
        assert "no_default_provider" not in result.stderr
        assert "unmapped_tier" not in result.stderr
        assert "[plaintext_api_key:local]" in result.stderr

    def test_log_format_case_insensitive(self, invoke, environ):
        environ["MODELCTL_LOG_FORMAT"] = "JSON"
        result = invoke("model", "list")
        assert result.exit_code == 0, result.output

    def test_invalid_log_format(self, invoke, environ):
        environ["MODELCTL_LOG_FORMAT"] = "xml"
        result = invoke("model", "list")
        assert result.exit_code == 1
        assert result.stderr.startswith("Error: modelctl: invalid environment setting (MODELCTL_LOG_FORMAT")

    def test_invalid_log_format_json(self, invoke_json, environ):
        environ["MODELCTL_LOG_FORMAT"] = "xml"
        result, data = invoke_json("provider", "list")
        assert result.exit_code == 1
        assert data["success"] is False
        assert data["errors"][0]["code"] == "invalid_input"

    def test_get_app_requires_context(self):
        with click.Context(click.Command("x"), obj={}):
            with pytest.raises(click.UsageError):
                get_app()
