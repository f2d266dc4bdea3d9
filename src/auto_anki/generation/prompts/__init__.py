"""Prompt templates for question generation."""

from .templates import (
    PromptTemplate,
    load_prompt,
    get_default_prompt,
    alternatives_instruction,
    output_contract,
)

__all__ = [
    "PromptTemplate",
    "load_prompt",
    "get_default_prompt",
    "alternatives_instruction",
    "output_contract",
]
