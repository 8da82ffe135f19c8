"""AI Agents package."""

from ledgerlite.agents.category_agent import (
    SUGGEST_CATEGORY_PROMPT,
    CategorySuggestionAgent,
    CategorySuggestionError,
    PromptTemplate,
)

__all__ = [
    "SUGGEST_CATEGORY_PROMPT",
    "CategorySuggestionAgent",
    "CategorySuggestionError",
    "PromptTemplate",
]
