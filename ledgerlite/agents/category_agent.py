"""
Category Suggestion Agent

One prompt, one call: the entry description goes in, a single
category string comes out. The model is asked for JSON matching
SuggestCategoryOutput so the answer never needs free-text parsing.

BOUNDARIES:
- CAN: propose a category for a description
- CANNOT: write to the ledger
- The suggestion is never enforced; the user types the category
"""

import json
from dataclasses import dataclass
from typing import Any, Optional, TypedDict

import google.generativeai as genai

from ledgerlite.config import GeminiSettings, get_settings
from ledgerlite.models.entry import SuggestCategoryInput, SuggestCategoryOutput


class CategorySuggestionError(Exception):
    """The model call failed or returned something unusable."""
    pass


class _CategoryResponseSchema(TypedDict):
    category: str


@dataclass(frozen=True)
class PromptTemplate:
    """A named prompt with a single {description} slot."""

    name: str
    template: str

    def render(self, prompt_input: SuggestCategoryInput) -> str:
        return self.template.format(description=prompt_input.description)


SUGGEST_CATEGORY_PROMPT = PromptTemplate(
    name="suggest_category_prompt",
    template=(
        "You are an expert financial assistant. Based on the description of "
        "a ledger entry, suggest the most appropriate category.\n"
        "\n"
        "Description: {description}\n"
        "\n"
        "Suggest a category:"
    ),
)


class CategorySuggestionAgent:
    """
    Asks Gemini for a category.

    Errors are raised, not swallowed: the caller decides how a failed
    suggestion is shown.
    """

    def __init__(
        self,
        model: Optional[Any] = None,
        settings: Optional[GeminiSettings] = None,
        prompt: PromptTemplate = SUGGEST_CATEGORY_PROMPT,
    ):
        self._prompt = prompt
        self._model = model
        self._settings = settings

    def _get_model(self):
        """Configure Google Generative AI on first use."""
        if self._model is None:
            settings = self._settings or get_settings().gemini
            genai.configure(api_key=settings.api_key)
            self._model = genai.GenerativeModel(
                model_name=settings.model_name,
                generation_config={
                    "temperature": settings.temperature,
                    "max_output_tokens": settings.max_tokens,
                    "response_mime_type": "application/json",
                    "response_schema": _CategoryResponseSchema,
                },
            )
        return self._model

    async def suggest_category(
        self,
        prompt_input: SuggestCategoryInput,
    ) -> SuggestCategoryOutput:
        """Run the prompt once and return the structured output."""
        prompt = self._prompt.render(prompt_input)

        try:
            response = await self._get_model().generate_content_async(prompt)
            text = response.text.strip()
        except Exception as e:
            raise CategorySuggestionError(f"Model call failed: {e}") from e

        return self._parse_output(text)

    @staticmethod
    def _parse_output(text: str) -> SuggestCategoryOutput:
        # JSON mode normally returns the bare object; tolerate fenced output
        start = text.find("{")
        end = text.rfind("}") + 1
        if start < 0 or end <= start:
            raise CategorySuggestionError(f"No JSON object in model output: {text[:200]!r}")

        try:
            data = json.loads(text[start:end])
            output = SuggestCategoryOutput(**data)
        except (ValueError, TypeError) as e:
            raise CategorySuggestionError(f"Malformed model output: {e}") from e

        if not output.category:
            raise CategorySuggestionError("Model returned an empty category")
        return output
