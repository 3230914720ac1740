"""Tests for the modelgate CLI and its presenters."""

from io import StringIO

import pytest
from rich.console import Console
from typer.testing import CliRunner

import modelgate.core.config  # noqa: F401  (module-level config must load before env tweaks)
from modelgate.cli.main import app
from modelgate.cli.presenters.providers import ProviderSummaryPresenter
from modelgate.core.provider.provider_config_loader import ProviderLoadResult

runner = CliRunner()


@pytest.mark.unit
def test_presenter_empty_results():
    console = Console(file=StringIO())
    ProviderSummaryPresenter(console=console).present_load_results([])
    assert "No providers configured" in console.file.getvalue()


@pytest.mark.unit
def test_presenter_with_results():
    console = Console(file=StringIO(), width=200)
    results = [
        ProviderLoadResult(
            name="gemini",
            status="success",
            api_key_hash="abcd1234",
            base_url="https://generativelanguage.googleapis.com",
            key_count=2,
            strategy="failover",
        ),
        ProviderLoadResult(name="broken", status="error", message="api_key must be a non-empty array"),
    ]

    ProviderSummaryPresenter(console=console).present_load_results(results)

    output = console.file.getvalue()
    assert "gemini" in output
    assert "abcd1234" in output
    assert "failover" in output
    assert "api_key must be a non-empty array" in output
    assert "1 provider ready for requests" in output


@pytest.mark.unit
def test_presenter_models():
    console = Console(file=StringIO(), width=200)
    ProviderSummaryPresenter(console=console).present_models(
        {"object": "list", "data": [{"id": "a,m", "provider": "a"}]}
    )
    assert "a,m" in console.file.getvalue()


@pytest.mark.unit
def test_version_command():
    result = runner.invoke(app, ["version"])
    assert result.exit_code == 0
    assert "modelgate" in result.output


@pytest.mark.unit
def test_config_validate_ok():
    result = runner.invoke(app, ["config", "validate"])
    assert result.exit_code == 0
    assert "Configuration is valid" in result.output


@pytest.mark.unit
def test_config_validate_reports_errors(monkeypatch):
    monkeypatch.setenv("PORT", "99999")
    result = runner.invoke(app, ["config", "validate"])
    assert result.exit_code == 1
    assert "PORT=99999" in result.output


@pytest.mark.unit
def test_config_docs():
    result = runner.invoke(app, ["config", "docs"])
    assert result.exit_code == 0
    assert "MODELGATE_CONFIG" in result.output
