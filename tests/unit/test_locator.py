"""Tests for definition classification."""
from pathlib import Path

import pytest

from openapi_testing import DefinitionFormat, SourceKind, Strategy, classify
from openapi_testing.locator import detect_kind, is_local_file, is_remote_url


class TestRemoteDetection:
    """URL classification."""

    @pytest.mark.parametrize("url", [
        "http://api.example.com/openapi.yaml",
        "https://api.example.com/openapi.yaml",
        "https://localhost:8080/docs/openapi.json?version=2",
    ])
    def test_http_urls_are_remote(self, url: str) -> None:
        assert is_remote_url(url) is True

    @pytest.mark.parametrize("candidate", [
        "ftp://files.example.com/openapi.yaml",
        "file:///etc/specs/openapi.yaml",
        "api.example.com/openapi.yaml",
        "http://",
        "https:// api.example.com/openapi.yaml",
        "openapi: 3.0.0\ninfo:\n  url: https://example.com",
        "",
    ])
    def test_other_strings_are_not_remote(self, candidate: str) -> None:
        assert is_remote_url(candidate) is False


class TestFileDetection:
    """Local file classification."""

    def test_existing_file(self, yaml_path: Path) -> None:
        assert is_local_file(str(yaml_path)) is True

    def test_directory_is_not_a_file(self, tmp_path: Path) -> None:
        assert is_local_file(str(tmp_path)) is False

    def test_missing_file(self, tmp_path: Path) -> None:
        assert is_local_file(str(tmp_path / "missing.yaml")) is False

    def test_overlong_text_does_not_raise(self) -> None:
        assert is_local_file("x" * 10000) is False

    def test_nul_byte_does_not_raise(self) -> None:
        assert is_local_file("openapi\x00.yaml") is False


class TestClassify:
    """Strategy selection, first match wins."""

    def test_scenario_remote_yaml(self) -> None:
        strategy = classify("https://api.example.com/openapi.yaml", "yaml")
        assert strategy is Strategy.REMOTE_YAML

    def test_scenario_file_json(self, tmp_path: Path) -> None:
        spec = tmp_path / "openapi.json"
        spec.write_text("{}", encoding="utf-8")
        assert classify(str(spec), DefinitionFormat.JSON) is Strategy.FILE_JSON

    def test_scenario_inline_yaml(self) -> None:
        strategy = classify("openapi: 3.0.0\ninfo: {title: t, version: '1'}", "yaml")
        assert strategy is Strategy.INLINE_YAML

    def test_ftp_url_falls_through_to_inline(self) -> None:
        assert classify("ftp://example.com/openapi.yaml", "yaml") is Strategy.INLINE_YAML

    def test_ftp_url_naming_existing_file_is_file(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        target = tmp_path / "ftp:" / "example.com"
        target.mkdir(parents=True)
        (target / "openapi.yaml").write_text("openapi: 3.0.0", encoding="utf-8")
        monkeypatch.chdir(tmp_path)
        assert classify("ftp://example.com/openapi.yaml", "yaml") is Strategy.FILE_YAML

    def test_url_check_precedes_file_check(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        target = tmp_path / "http:" / "example.com"
        target.mkdir(parents=True)
        (target / "openapi.json").write_text("{}", encoding="utf-8")
        monkeypatch.chdir(tmp_path)
        definition = "http://example.com/openapi.json"
        assert is_local_file(definition) is True
        assert classify(definition, "json") is Strategy.REMOTE_JSON

    def test_not_memoized(self, tmp_path: Path) -> None:
        spec = tmp_path / "openapi.yaml"
        assert classify(str(spec), "yaml") is Strategy.INLINE_YAML
        spec.write_text("openapi: 3.0.0", encoding="utf-8")
        assert classify(str(spec), "yaml") is Strategy.FILE_YAML

    def test_unknown_format_rejected(self) -> None:
        with pytest.raises(ValueError):
            classify("openapi: 3.0.0", "toml")

    def test_detect_kind(self, json_path: Path) -> None:
        assert detect_kind("https://example.com/a.json") is SourceKind.REMOTE
        assert detect_kind(str(json_path)) is SourceKind.FILE
        assert detect_kind('{"openapi": "3.1.0"}') is SourceKind.INLINE


class TestStrategy:
    """Strategy enum helpers."""

    @pytest.mark.parametrize("kind", list(SourceKind))
    @pytest.mark.parametrize("fmt", list(DefinitionFormat))
    def test_of_round_trips_parts(self, kind: SourceKind, fmt: DefinitionFormat) -> None:
        strategy = Strategy.of(kind, fmt)
        assert strategy.kind is kind
        assert strategy.format is fmt

    def test_six_strategies(self) -> None:
        assert len(Strategy) == 6
