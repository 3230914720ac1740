"""Tests for the JSON providers file loader."""

import json

import pytest

from modelgate.core.errors import InvalidProviderConfig
from modelgate.core.provider.key_selector import KeyStrategy
from modelgate.core.provider.provider_config_loader import ProviderConfigLoader
from modelgate.transformers.base import Named, NamedWithConfig


def write_config(tmp_path, data):
    path = tmp_path / "config.json"
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


@pytest.mark.unit
class TestLoadRecords:
    def test_reads_providers_array(self, tmp_path):
        path = write_config(tmp_path, {"Providers": [{"name": "a"}], "PORT": 3456})
        assert ProviderConfigLoader(path).load_records() == [{"name": "a"}]

    def test_accepts_lowercase_key_and_bare_list(self, tmp_path):
        path = write_config(tmp_path, {"providers": [{"name": "a"}]})
        assert ProviderConfigLoader(path).load_records() == [{"name": "a"}]
        path = write_config(tmp_path, [{"name": "b"}])
        assert ProviderConfigLoader(path).load_records() == [{"name": "b"}]

    def test_missing_file_yields_no_records(self, tmp_path):
        assert ProviderConfigLoader(tmp_path / "absent.json").load_records() == []
        assert ProviderConfigLoader(None).load_records() == []

    def test_invalid_json_raises(self, tmp_path):
        path = tmp_path / "config.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(ValueError, match="Invalid JSON"):
            ProviderConfigLoader(path).load_records()

    def test_providers_must_be_array(self, tmp_path):
        path = write_config(tmp_path, {"Providers": {"name": "a"}})
        with pytest.raises(ValueError, match="must be an array"):
            ProviderConfigLoader(path).load_records()


@pytest.mark.unit
class TestParseRecord:
    def test_full_record(self, monkeypatch):
        monkeypatch.setenv("GEMINI_KEY_1", "secret-1")
        record = {
            "name": "gemini",
            "api_base_url": "https://generativelanguage.googleapis.com/v1beta/models/",
            "api_key": ["$GEMINI_KEY_1", "literal"],
            "api_key_strategy": "failover",
            "models": ["gemini-2.5-pro"],
            "transformer": {
                "use": ["gemini"],
                "gemini-2.5-pro": {"use": [["recording", {"tag": "pro"}]]},
            },
        }

        spec = ProviderConfigLoader().parse_record(record)

        assert spec.name == "gemini"
        assert spec.api_keys == ["secret-1", "literal"]
        assert spec.api_key_strategy is KeyStrategy.FAILOVER
        assert spec.models == ["gemini-2.5-pro"]
        assert spec.transformer.use == (Named("gemini"),)
        assert spec.transformer.per_model == {
            "gemini-2.5-pro": (NamedWithConfig("recording", {"tag": "pro"}),)
        }

    def test_defaults_for_optional_fields(self):
        spec = ProviderConfigLoader().parse_record(
            {"name": "a", "api_base_url": "https://a", "api_key": ["k"]}
        )
        assert spec.api_keys == ["k"]
        assert spec.models == []
        assert spec.api_key_strategy is KeyStrategy.ROUND_ROBIN

    @pytest.mark.parametrize(
        "record, reason",
        [
            ({"api_base_url": "https://a", "api_key": ["k"]}, "name"),
            ({"name": "a", "api_key": ["k"]}, "api_base_url"),
            ({"name": "a", "api_base_url": "https://a"}, "api_key"),
            ({"name": "a", "api_base_url": "https://a", "api_key": []}, "api_key"),
            ({"name": "a", "api_base_url": "https://a", "api_key": "single"}, "api_key"),
            (
                {"name": "a", "api_base_url": "https://a", "api_key": ["k"], "api_key_strategy": "x"},
                "api_key_strategy",
            ),
            ({"name": "a", "api_base_url": "https://a", "api_key": ["k"], "models": "m"}, "models"),
        ],
    )
    def test_invalid_records(self, record, reason):
        with pytest.raises(InvalidProviderConfig) as exc_info:
            ProviderConfigLoader().parse_record(record)
        assert reason in exc_info.value.reason

    def test_unset_variable_left_unexpanded(self):
        spec = ProviderConfigLoader().parse_record(
            {"name": "a", "api_base_url": "https://a", "api_key": ["$UNSET_MODELGATE_KEY_X"]}
        )
        assert spec.api_keys == ["$UNSET_MODELGATE_KEY_X"]

    def test_non_object_record(self):
        with pytest.raises(InvalidProviderConfig):
            ProviderConfigLoader().parse_record(["not", "a", "dict"])

    def test_malformed_transformer_entries_skipped(self, caplog):
        spec = ProviderConfigLoader().parse_record(
            {
                "name": "a",
                "api_base_url": "https://a",
                "api_key": ["k"],
                "transformer": {"use": ["gemini", 42, ["x", "not-a-map"]]},
            }
        )
        assert spec.transformer.use == (Named("gemini"),)
        assert "skipping malformed transformer entry" in caplog.text

    def test_api_key_hash(self):
        assert len(ProviderConfigLoader.get_api_key_hash("secret")) == 8
        assert ProviderConfigLoader.get_api_key_hash("a") != ProviderConfigLoader.get_api_key_hash("b")
