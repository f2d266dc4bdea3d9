"""Prompt template management."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional
import yaml
import logging

from ...core.exceptions import ConfigError

logger = logging.getLogger(__name__)


@dataclass
class PromptTemplate:
    """A prompt template for question generation.

    The system prompt may use {num_questions}, {num_alternatives} and
    {alternatives_instruction}. The user prompt must contain {text}.
    """
    name: str
    description: str
    system_prompt: str
    user_prompt_template: str

    # Optional metadata
    version: str = "1.0"
    author: Optional[str] = None

    # Placeholder variables
    variables: list[str] = field(default_factory=list)

    def format_system(self, **kwargs) -> str:
        """Format system prompt with variables."""
        return self.system_prompt.format(**kwargs)

    def format_user(self, text: str, **kwargs) -> str:
        """Format user prompt with the note text and variables."""
        return self.user_prompt_template.format(text=text, **kwargs)


def load_prompt(path: str) -> PromptTemplate:
    """Load a prompt template from YAML file."""
    with open(path) as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ConfigError(f"Prompt file {path} must contain a mapping", config_key="prompt_file")

    return PromptTemplate(
        name=data.get("name", Path(path).stem),
        description=data.get("description", ""),
        system_prompt=data.get("system_prompt", ""),
        user_prompt_template=data.get("user_prompt_template", "{text}"),
        version=data.get("version", "1.0"),
        author=data.get("author"),
        variables=data.get("variables", []),
    )


def get_default_prompt() -> PromptTemplate:
    """Get the default prompt template."""
    return PromptTemplate(
        name="default",
        description="Study questions with optional multiple-choice distractors",
        system_prompt="""You are a teacher writing study flashcards from a student's notes.

Write exactly {num_questions} question(s) that test the most important facts and ideas in the notes.
{alternatives_instruction}

Guidelines:
- Each question must be answerable from the notes alone
- Keep answers short: a word, a name, a number or a single sentence
- Do not repeat a question""",
        user_prompt_template="""Notes:

{text}""",
        variables=["num_questions", "num_alternatives", "alternatives_instruction"],
    )


def alternatives_instruction(num_alternatives: int) -> str:
    """Describe the distractors wanted per question."""
    if num_alternatives == 0:
        return "Do not write any alternatives: each question has only its correct answer."
    return (
        f"For every question also write exactly {num_alternatives} wrong but plausible "
        f"alternative answer(s). Alternatives must differ from the correct answer and "
        f"from each other."
    )


def output_contract(num_alternatives: int) -> str:
    """The output-shape rules the response parser relies on."""
    if num_alternatives == 0:
        example_alternatives = "[]"
    else:
        example_alternatives = "[" + ", ".join(
            f'"wrong answer {i + 1}"' for i in range(num_alternatives)
        ) + "]"
    return f"""Output format (mandatory):
- Output ONLY a JSON array, no prose, no markdown code fences
- Each element is an object with exactly these keys:
  "question": string, "answer": string, "alternatives": array of exactly {num_alternatives} string(s)
- Example element: {{"question": "...?", "answer": "...", "alternatives": {example_alternatives}}}"""
