"""Shared pytest configuration and fixtures for modelgate tests."""

import os

import pytest

from modelgate.core.provider.models import ProviderSpec
from modelgate.core.provider.provider_registry import ProviderRegistry
from modelgate.transformers.base import (
    Named,
    NamedWithConfig,
    RequestConfig,
    Transformer,
    WireRequest,
)
from modelgate.transformers.chain import ProviderTransformerSpec
from modelgate.transformers.registry import create_default_registry

# Import HTTP mocking fixtures from fixtures module
pytest_plugins = ["tests.fixtures.mock_http"]

CONFIG_ENV_VARS = (
    "HOST",
    "PORT",
    "LOG_LEVEL",
    "MODELGATE_CONFIG",
    "MAX_KEY_ATTEMPTS",
    "PROXY_API_KEY",
    "REQUEST_TIMEOUT",
    "STREAMING_CONNECT_TIMEOUT_SECONDS",
)


class RecordingTransformer(Transformer):
    """Test transformer that tags bodies and records the hooks it ran."""

    name = "recording"

    def transform_request_in(self, request, provider):
        body = dict(request)
        body.setdefault("seen", []).append(self.config.get("tag", self.name))
        headers = {f"x-{self.config.get('tag', self.name)}": provider.api_keys[0]}
        return WireRequest(body=body, config=RequestConfig(headers=headers))

    def transform_response_out(self, response):
        seen = response.metadata.get("seen", [])
        return type(response)(
            status_code=response.status_code,
            headers=response.headers,
            body=response.body,
            stream=response.stream,
            metadata={**response.metadata, "seen": [*seen, self.config.get("tag", self.name)]},
        )


@pytest.fixture
def transformer_registry():
    """Built-in transformers plus the recording test transformer."""
    registry = create_default_registry()
    registry.register(RecordingTransformer.name, RecordingTransformer)
    return registry


@pytest.fixture
def registry(transformer_registry):
    """An empty provider registry."""
    return ProviderRegistry(transformer_registry)


@pytest.fixture
def gemini_spec():
    """A Gemini provider with two keys."""
    return ProviderSpec(
        name="gemini",
        base_url="https://generativelanguage.googleapis.com/v1beta/models/",
        api_keys=["g-key-1", "g-key-2"],
        api_key_strategy="round-robin",
        models=["gemini-2.5-pro", "gemini-2.5-flash"],
        transformer=ProviderTransformerSpec(use=(Named("gemini"),)),
    )


@pytest.fixture
def openai_spec():
    """An OpenAI-compatible provider without transformers."""
    return ProviderSpec(
        name="openai",
        base_url="https://api.openai.com/v1/chat/completions",
        api_keys=["o-key-1"],
        models=["gpt-4o", "gemini-2.5-pro"],
        transformer=ProviderTransformerSpec(
            per_model={"gpt-4o": (NamedWithConfig("recording", {"tag": "gpt"}),)}
        ),
    )


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line("markers", "unit: marks tests as unit tests (fast, no external deps)")
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests (requires services)"
    )


def pytest_collection_modifyitems(config, items):
    """Add markers to tests based on their location."""
    for item in items:
        if "tests/unit/" in str(item.fspath) or "tests/api/" in str(item.fspath):
            item.add_marker(pytest.mark.unit)


@pytest.fixture(scope="function", autouse=True)
def clean_config_environment():
    """Keep the developer's gateway settings out of the tests."""
    original_env = {key: os.environ.get(key) for key in CONFIG_ENV_VARS}
    for key in CONFIG_ENV_VARS:
        os.environ.pop(key, None)
    os.environ["MODELGATE_CONFIG"] = os.path.join(os.sep, "nonexistent", "modelgate.json")

    try:
        yield
    finally:
        for key, value in original_env.items():
            if value is None:
                os.environ.pop(key, None)
            else:
                os.environ[key] = value
