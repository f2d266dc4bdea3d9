"""Building provider requests from note text and a run snapshot."""

from dataclasses import dataclass, field
from typing import Optional

from ..core.models import ConfigSnapshot
from ..core.exceptions import ConfigError, EmptyInputError
from .prompts import PromptTemplate, get_default_prompt, alternatives_instruction, output_contract


@dataclass(frozen=True)
class GenerationRequest:
    """A chat-completion request, ready to send."""
    model: str
    messages: list[dict] = field(default_factory=list)
    temperature: float = 1.0
    top_p: float = 1.0
    frequency_penalty: float = 0.0
    presence_penalty: float = 0.0
    max_tokens: int = 100

    def to_payload(self) -> dict:
        """JSON body for the chat completions endpoint."""
        return {
            "model": self.model,
            "messages": [dict(m) for m in self.messages],
            "temperature": self.temperature,
            "top_p": self.top_p,
            "frequency_penalty": self.frequency_penalty,
            "presence_penalty": self.presence_penalty,
            "max_tokens": self.max_tokens,
        }


def build_request(
    source_text: str,
    snapshot: ConfigSnapshot,
    template: Optional[PromptTemplate] = None,
) -> GenerationRequest:
    """Build the generation request for one export run.

    Args:
        source_text: Note text the questions are drawn from
        snapshot: Frozen run configuration
        template: Prompt wording; the built-in default when omitted

    Returns:
        GenerationRequest

    Raises:
        EmptyInputError: If there is no text or no questions are requested
        ConfigError: If the template cannot be filled in
    """
    if not source_text or not source_text.strip():
        raise EmptyInputError("There is nothing to generate questions from")
    if snapshot.num_questions == 0:
        raise EmptyInputError("Number of questions is 0; nothing to generate")

    template = template or get_default_prompt()
    variables = {
        "num_questions": snapshot.num_questions,
        "num_alternatives": snapshot.num_alternatives,
        "alternatives_instruction": alternatives_instruction(snapshot.num_alternatives),
    }

    try:
        system_prompt = template.format_system(**variables).rstrip()
        user_prompt = template.format_user(source_text, **variables)
    except (KeyError, IndexError, ValueError) as e:
        # Literal braces or unknown placeholders in a custom template
        raise ConfigError(
            f"Prompt template '{template.name}' could not be filled in ({type(e).__name__}: {e}); "
            f"available placeholders are {{text}}, {{num_questions}}, {{num_alternatives}} "
            f"and {{alternatives_instruction}}, literal braces must be doubled",
            config_key="prompt_file",
        )

    # The output contract is always appended so custom wording can't loosen it
    system_prompt = f"{system_prompt}\n\n{output_contract(snapshot.num_alternatives)}"

    sampling = snapshot.sampling
    return GenerationRequest(
        model=snapshot.model,
        messages=[
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_prompt},
        ],
        temperature=sampling.temperature,
        top_p=sampling.top_p,
        frequency_penalty=sampling.frequency_penalty,
        presence_penalty=sampling.presence_penalty,
        max_tokens=sampling.max_tokens_per_question * snapshot.num_questions,
    )
