"""
Tests for catalog loading, configuration and the question-set schema.

Remote fetching is tested with requests mocked out; no network needed.
"""

import json
import logging
import sys
from pathlib import Path
from unittest.mock import patch, MagicMock

import pytest
import requests

sys.path.insert(0, str(Path(__file__).parent.parent))

from estimate_flow.catalog import (
    default_catalog,
    fetch_catalog,
    load_catalog,
    load_catalog_file,
    parse_catalog,
)
from estimate_flow.config import FlowConfig
from estimate_flow.errors import CatalogError, EstimateFlowError
from estimate_flow.schemas.questions import (
    NextTarget,
    Question,
    QuestionOption,
    QuestionType,
    TargetKind,
)


def _entry(category, keywords=None):
    return {
        "category": category,
        "keywords": keywords or [category.lower()],
        "questions": [{
            "id": "Q1",
            "order": 1,
            "question": "Scope?",
            "type": "single_choice",
            "options": [{"label": "Small", "value": "small"}],
        }],
    }


# ═══════════════════════════════════════════════════════════════
# PARSING
# ═══════════════════════════════════════════════════════════════

class TestParseCatalog:

    def test_list_of_entries(self):
        catalog = parse_catalog([_entry("Painting"), _entry("Roofing")])
        assert [qs.category for qs in catalog] == ["Painting", "Roofing"]
        assert catalog[0].questions[0].id == "Q1"

    def test_categories_key(self):
        catalog = parse_catalog({"categories": [_entry("Painting")]})
        assert [qs.category for qs in catalog] == ["Painting"]

    def test_column_per_category_row(self):
        row = {
            "id": 7,
            "updated_at": "2026-01-01",
            "Painting": {"keywords": ["paint"], "questions": []},
            "Roofing": {"keywords": ["roof"], "questions": []},
        }
        catalog = parse_catalog(row)
        assert [qs.category for qs in catalog] == ["Painting", "Roofing"]
        assert catalog[1].keywords == ["roof"]

    def test_single_row_list(self):
        rows = [{"id": 1, "Painting": {"keywords": ["paint"]}}]
        assert [qs.category for qs in parse_catalog(rows)] == ["Painting"]

    def test_single_entry_list_is_not_a_row(self):
        assert [qs.category for qs in parse_catalog([_entry("Painting")])] == ["Painting"]

    def test_malformed_entries_skipped(self, caplog):
        entries = [
            {"keywords": ["x"]},
            {"category": "Bad Keywords", "keywords": "paint"},
            {"category": "No Options", "questions": [{"id": "Q1", "options": []}]},
            _entry("Painting"),
        ]
        with caplog.at_level(logging.WARNING):
            catalog = parse_catalog(entries)
        assert [qs.category for qs in catalog] == ["Painting"]
        assert "Skipping catalog entry" in caplog.text

    def test_non_list_questions_skipped(self):
        entries = [
            {"category": "Broken", "keywords": ["paint"], "questions": 5},
            _entry("Painting"),
        ]
        assert [qs.category for qs in parse_catalog(entries)] == ["Painting"]

    @pytest.mark.parametrize("data", ["painting", 42, None])
    def test_unsupported_shape(self, data):
        with pytest.raises(CatalogError):
            parse_catalog(data)

    def test_default_catalog_is_fresh(self):
        first = default_catalog()
        first[0].keywords.append("mutated")
        assert "mutated" not in default_catalog()[0].keywords

    def test_default_catalog_contents(self):
        categories = [qs.category for qs in default_catalog()]
        assert "Interior Painting" in categories
        assert "Roofing" in categories


# ═══════════════════════════════════════════════════════════════
# FILE AND REMOTE SOURCES
# ═══════════════════════════════════════════════════════════════

class TestCatalogFile:

    def test_load_file(self, tmp_path):
        path = tmp_path / "catalog.json"
        path.write_text(json.dumps([_entry("Painting")]))
        assert [qs.category for qs in load_catalog_file(path)] == ["Painting"]

    def test_missing_file(self, tmp_path):
        with pytest.raises(CatalogError):
            load_catalog_file(tmp_path / "missing.json")

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "catalog.json"
        path.write_text("{not json")
        with pytest.raises(CatalogError):
            load_catalog_file(path)


class TestFetchCatalog:

    def test_success_sends_key(self):
        response = MagicMock()
        response.json.return_value = [_entry("Painting")]

        with patch("estimate_flow.catalog.requests.get", return_value=response) as mock_get:
            catalog = fetch_catalog("https://example.test/catalog", api_key="secret", timeout=5)

        assert [qs.category for qs in catalog] == ["Painting"]
        _, kwargs = mock_get.call_args
        assert kwargs["headers"]["apikey"] == "secret"
        assert kwargs["headers"]["Authorization"] == "Bearer secret"
        assert kwargs["timeout"] == 5
        response.raise_for_status.assert_called_once()

    def test_no_key_no_auth_header(self):
        response = MagicMock()
        response.json.return_value = []

        with patch("estimate_flow.catalog.requests.get", return_value=response) as mock_get:
            fetch_catalog("https://example.test/catalog")

        assert "Authorization" not in mock_get.call_args[1]["headers"]

    def test_connection_error(self):
        with patch(
            "estimate_flow.catalog.requests.get",
            side_effect=requests.ConnectionError("refused"),
        ):
            with pytest.raises(CatalogError, match="Could not fetch"):
                fetch_catalog("https://example.test/catalog")

    def test_http_error(self):
        response = MagicMock()
        response.raise_for_status.side_effect = requests.HTTPError("500 Server Error")

        with patch("estimate_flow.catalog.requests.get", return_value=response):
            with pytest.raises(CatalogError):
                fetch_catalog("https://example.test/catalog")

    def test_invalid_json_body(self):
        response = MagicMock()
        response.json.side_effect = ValueError("Expecting value")

        with patch("estimate_flow.catalog.requests.get", return_value=response):
            with pytest.raises(CatalogError, match="not valid JSON"):
                fetch_catalog("https://example.test/catalog")


class TestLoadCatalog:

    def test_default_when_unconfigured(self):
        catalog = load_catalog(FlowConfig())
        assert [qs.category for qs in catalog] == [qs.category for qs in default_catalog()]

    def test_path_from_env(self, tmp_path, monkeypatch):
        path = tmp_path / "catalog.json"
        path.write_text(json.dumps({"categories": [_entry("Fencing")]}))
        monkeypatch.setenv("ESTIMATE_FLOW_CATALOG_PATH", str(path))
        monkeypatch.delenv("ESTIMATE_FLOW_CATALOG_URL", raising=False)

        assert [qs.category for qs in load_catalog()] == ["Fencing"]

    def test_url_takes_precedence(self, tmp_path):
        config = FlowConfig(catalog_path=str(tmp_path / "unused.json"), catalog_url="https://example.test/c")
        with patch("estimate_flow.catalog.fetch_catalog", return_value=[]) as mock_fetch:
            assert load_catalog(config) == []
        mock_fetch.assert_called_once_with("https://example.test/c", None, 10)


# ═══════════════════════════════════════════════════════════════
# CONFIGURATION
# ═══════════════════════════════════════════════════════════════

class TestFlowConfig:

    def test_defaults(self):
        config = FlowConfig()
        assert config.keyword_weight == 3
        assert config.smoothing_factor == 0.1
        assert config.snap_threshold == 0.5
        assert config.fill_default_questions

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("ESTIMATE_FLOW_CATALOG_URL", "https://example.test/c")
        monkeypatch.setenv("ESTIMATE_FLOW_CATALOG_KEY", "secret")
        monkeypatch.setenv("ESTIMATE_FLOW_FILL_DEFAULTS", "false")
        monkeypatch.delenv("ESTIMATE_FLOW_CATALOG_PATH", raising=False)

        config = FlowConfig.from_env()

        assert config.catalog_url == "https://example.test/c"
        assert config.catalog_api_key == "secret"
        assert config.catalog_path is None
        assert not config.fill_default_questions

    def test_empty_env_values_ignored(self, monkeypatch):
        monkeypatch.setenv("ESTIMATE_FLOW_CATALOG_PATH", "")
        monkeypatch.delenv("ESTIMATE_FLOW_FILL_DEFAULTS", raising=False)
        config = FlowConfig.from_env()
        assert config.catalog_path is None
        assert config.fill_default_questions


# ═══════════════════════════════════════════════════════════════
# SCHEMA
# ═══════════════════════════════════════════════════════════════

class TestNextTarget:

    @pytest.mark.parametrize("raw, kind, question_id", [
        (None, TargetKind.FALLTHROUGH, ""),
        ("", TargetKind.FALLTHROUGH, ""),
        ("END", TargetKind.END_SET, ""),
        ("NEXT_BRANCH", TargetKind.NEXT_BRANCH, ""),
        ("Q2", TargetKind.GOTO, "Q2"),
        (" Q2 ", TargetKind.GOTO, "Q2"),
    ])
    def test_parse(self, raw, kind, question_id):
        target = NextTarget.parse(raw)
        assert target.kind == kind
        assert target.question_id == question_id

    def test_to_raw(self):
        assert NextTarget.parse("END").to_raw() == "END"
        assert NextTarget.parse("Q2").to_raw() == "Q2"
        assert NextTarget.parse(None).to_raw() is None


class TestQuestionSchema:

    def test_option_from_bare_string(self):
        option = QuestionOption.from_dict("Attic")
        assert option.label == option.value == "Attic"
        assert option.target.kind == TargetKind.FALLTHROUGH

    def test_option_target_resolved_once(self):
        option = QuestionOption("Yes", "yes", next="Q2")
        assert option.target == NextTarget(TargetKind.GOTO, "Q2")

    def test_question_requires_options(self):
        with pytest.raises(CatalogError, match="no options"):
            Question.from_dict({"id": "Q1", "type": "yes_no", "options": []})

    def test_question_options_must_be_a_list(self):
        with pytest.raises(CatalogError, match="must be a list"):
            Question.from_dict({"id": "Q1", "type": "yes_no", "options": 7})

    def test_question_rejects_unknown_type(self):
        with pytest.raises(CatalogError):
            Question.from_dict({"id": "Q1", "type": "free_text", "options": ["a"]})

    def test_question_requires_id(self):
        with pytest.raises(CatalogError):
            Question.from_dict({"type": "yes_no", "options": ["yes"]})

    def test_question_round_trip_keeps_next(self):
        data = {
            "id": "Q1",
            "order": 1,
            "question": "Scope?",
            "type": "multiple_choice",
            "options": [{"label": "A", "value": "a", "next": "Q2"}],
            "next": "END",
        }
        question = Question.from_dict(data)
        assert question.type == QuestionType.MULTIPLE_CHOICE
        assert question.to_dict() == data

    def test_catalog_error_is_estimate_flow_error(self):
        assert issubclass(CatalogError, EstimateFlowError)
