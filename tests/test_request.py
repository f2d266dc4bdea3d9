"""Tests for generation request building and prompt templates."""

import pytest
import yaml

from auto_anki.core.exceptions import ConfigError, EmptyInputError
from auto_anki.core.models import SamplingOptions
from auto_anki.generation.prompts import PromptTemplate, load_prompt, output_contract
from auto_anki.generation.request import build_request


class TestBuildRequest:
    """Tests for build_request."""

    def test_counts_in_prompt(self, snapshot):
        """Test that question and alternative counts reach the model."""
        request = build_request("Paris is the capital of France.", snapshot)
        system = request.messages[0]["content"]

        assert request.messages[0]["role"] == "system"
        assert "exactly 1 question(s)" in system
        assert "exactly 3 wrong but plausible" in system
        assert "array of exactly 3 string(s)" in system

    def test_source_text_in_user_message(self, snapshot):
        request = build_request("Paris is the capital of France.", snapshot)
        assert request.messages[1]["role"] == "user"
        assert "Paris is the capital of France." in request.messages[1]["content"]

    def test_answer_only_prompt(self, snapshot_factory):
        request = build_request("Notes", snapshot_factory(num_alternatives=0))
        system = request.messages[0]["content"]
        assert "Do not write any alternatives" in system
        assert '"alternatives": []' in system

    def test_sampling_passthrough(self, snapshot_factory):
        """Test that sampling options are sent unmodified."""
        sampling = SamplingOptions(
            temperature=0.2,
            top_p=0.9,
            frequency_penalty=-1.5,
            presence_penalty=1.5,
            max_tokens_per_question=50,
        )
        snapshot = snapshot_factory(num_questions=4, sampling=sampling, model="gpt-4o-mini")
        payload = build_request("Notes", snapshot).to_payload()

        assert payload["model"] == "gpt-4o-mini"
        assert payload["temperature"] == 0.2
        assert payload["top_p"] == 0.9
        assert payload["frequency_penalty"] == -1.5
        assert payload["presence_penalty"] == 1.5
        assert payload["max_tokens"] == 200

    def test_payload_keys(self, snapshot):
        payload = build_request("Notes", snapshot).to_payload()
        assert set(payload) == {
            "model", "messages", "temperature", "top_p",
            "frequency_penalty", "presence_penalty", "max_tokens",
        }

    def test_zero_questions(self, snapshot_factory):
        with pytest.raises(EmptyInputError):
            build_request("Notes", snapshot_factory(num_questions=0))

    @pytest.mark.parametrize("text", ["", "   \n\t"])
    def test_empty_text(self, snapshot, text):
        with pytest.raises(EmptyInputError):
            build_request(text, snapshot)


class TestCustomTemplate:
    """Tests for user-supplied prompt templates."""

    @pytest.fixture
    def template(self):
        return PromptTemplate(
            name="terse",
            description="Very short questions",
            system_prompt="Ask {num_questions} very short questions. {alternatives_instruction}",
            user_prompt_template="TEXT:\n{text}",
        )

    def test_custom_wording(self, snapshot, template):
        request = build_request("Notes here", snapshot, template)
        assert request.messages[0]["content"].startswith("Ask 1 very short questions.")
        assert request.messages[1]["content"] == "TEXT:\nNotes here"

    def test_contract_always_appended(self, snapshot, template):
        """Test that a custom template cannot drop the output format rules."""
        request = build_request("Notes here", snapshot, template)
        assert request.messages[0]["content"].endswith(output_contract(3))

    def test_load_prompt(self, tmp_path):
        path = tmp_path / "history.yaml"
        path.write_text(yaml.safe_dump({
            "name": "history",
            "system_prompt": "You teach history. Write {num_questions} questions.",
            "user_prompt_template": "{text}",
        }))
        template = load_prompt(str(path))
        assert template.name == "history"
        assert template.format_system(num_questions=2) == "You teach history. Write 2 questions."

    def test_load_prompt_name_from_file(self, tmp_path):
        path = tmp_path / "biology.yaml"
        path.write_text("system_prompt: Biology\n")
        template = load_prompt(str(path))
        assert template.name == "biology"
        assert template.format_user("cells") == "cells"

    def test_load_prompt_not_a_mapping(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- system_prompt\n- user_prompt_template\n")
        with pytest.raises(ConfigError) as exc_info:
            load_prompt(str(path))
        assert exc_info.value.config_key == "prompt_file"

    @pytest.mark.parametrize("system_prompt", [
        'Return objects like {"q": "...", "a": "..."}',
        "Write {count} questions.",
        "Write {0} questions.",
        "Write {num_questions questions.",
    ])
    def test_unfillable_template(self, snapshot, system_prompt):
        """Test that stray braces and unknown placeholders are reported as config errors."""
        template = PromptTemplate(
            name="broken",
            description="",
            system_prompt=system_prompt,
            user_prompt_template="{text}",
        )
        with pytest.raises(ConfigError) as exc_info:
            build_request("Notes", snapshot, template)
        assert exc_info.value.config_key == "prompt_file"
        assert "broken" in str(exc_info.value)

    def test_unfillable_user_template(self, snapshot):
        template = PromptTemplate(
            name="broken-user",
            description="",
            system_prompt="Ask {num_questions} questions.",
            user_prompt_template="{notes}",
        )
        with pytest.raises(ConfigError):
            build_request("Notes", snapshot, template)

    def test_doubled_braces(self, snapshot):
        template = PromptTemplate(
            name="json-example",
            description="",
            system_prompt='Ask {num_questions} questions like {{"question": "..."}}.',
            user_prompt_template="{text}",
        )
        request = build_request("Notes", snapshot, template)
        assert request.messages[0]["content"].startswith('Ask 1 questions like {"question": "..."}.')
