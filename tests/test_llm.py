import json
from types import SimpleNamespace
from unittest.mock import patch

from ideahub.llm import SuggestionGenerator
from ideahub.models import Suggestion, SuggestionBatch


def create_generator(api_key="test-key"):
    with patch("ideahub.llm.genai.Client") as client_cls:
        generator = SuggestionGenerator(api_key=api_key)
    return generator, client_cls


def test_missing_key_returns_error_result():
    generator = SuggestionGenerator(api_key=None)

    result = generator.generate_suggestions("travel", "Vlog")

    assert not generator.is_enabled()
    assert result.error
    assert result.suggestions == []


def test_empty_keywords_returns_error_result():
    generator, _ = create_generator()
    result = generator.generate_suggestions("   ", "Vlog")
    assert result.error
    generator.client.models.generate_content.assert_not_called()


def test_parsed_schema_response():
    generator, _ = create_generator()
    batch = SuggestionBatch(suggestions=[Suggestion(title="T", concept="C")])
    generator.client.models.generate_content.return_value = SimpleNamespace(
        parsed=batch, text=None, usage_metadata=None)

    result = generator.generate_suggestions("cats", "Pets")

    assert result.ok
    assert [s.title for s in result.suggestions] == ["T"]
    _, kwargs = generator.client.models.generate_content.call_args
    assert kwargs["model"] == generator.model_name
    assert "cats" in kwargs["contents"]
    assert "Pets" in kwargs["contents"]
    assert kwargs["config"].response_mime_type == "application/json"


def test_falls_back_to_json_text():
    generator, _ = create_generator()
    payload = {"suggestions": [{"title": "A", "concept": "B"}, {"title": "C", "concept": "D"}]}
    generator.client.models.generate_content.return_value = SimpleNamespace(
        parsed=None, text=json.dumps(payload), usage_metadata=SimpleNamespace(total_token_count=12))

    result = generator.generate_suggestions("cats")

    assert result.error is None
    assert len(result.suggestions) == 2
    assert generator.total_token_count == 12


def test_unparseable_response_returns_error_result():
    generator, _ = create_generator()
    generator.client.models.generate_content.return_value = SimpleNamespace(
        parsed=None, text="not json", usage_metadata=None)

    result = generator.generate_suggestions("cats")
    assert result.error
    assert result.suggestions == []


def test_api_failure_returns_error_result():
    generator, _ = create_generator()
    generator.client.models.generate_content.side_effect = RuntimeError("quota")

    result = generator.generate_suggestions("cats")
    assert result.error
    assert not result.ok


def test_prompt_defaults_category():
    generator = SuggestionGenerator(api_key=None)
    prompt = generator.build_prompt("budget travel", None)
    assert '"General"' in prompt
    assert "budget travel" in prompt
