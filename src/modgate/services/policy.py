"""Loadable moderation policy used by the local heuristic scorer.

Keyword lists and thresholds live in a :class:`PolicyTable` rather than in
module globals, so deployments can ship their own JSON policy file and tests
can build small tables inline.
"""

from __future__ import annotations

import json
import logging
import re
from functools import lru_cache
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator

logger = logging.getLogger(__name__)


class CategoryRule(BaseModel):
    """A named keyword category and what a match contributes to the score."""

    name: str = Field(..., min_length=1)
    reason: str = Field(..., min_length=1, description="Human-readable reason on match")
    terms: list[str] = Field(default_factory=list)
    weight: float = Field(default=0.7, ge=0.0, le=1.0)

    model_config = ConfigDict(frozen=True)

    @field_validator("terms")
    @classmethod
    def _normalise_terms(cls, terms: list[str]) -> list[str]:
        cleaned: list[str] = []
        for term in terms:
            term = term.strip().lower()
            if term and term not in cleaned:
                cleaned.append(term)
        return cleaned

    @property
    def pattern(self) -> re.Pattern[str] | None:
        """Whole-word, case-insensitive alternation over all terms."""
        return _compile_terms(tuple(self.terms))


@lru_cache(maxsize=256)
def _compile_terms(terms: tuple[str, ...]) -> re.Pattern[str] | None:
    if not terms:
        return None
    alternation = "|".join(re.escape(term) for term in terms)
    # Whole words only: "die" must not match "diet".
    return re.compile(rf"\b(?:{alternation})\b", re.IGNORECASE)


class PolicyTable(BaseModel):
    """Complete heuristic policy: categories plus text-shape thresholds."""

    version: str = "default"
    categories: list[CategoryRule] = Field(default_factory=list)
    caps_ratio_threshold: float = Field(default=0.5, ge=0.0, le=1.0)
    caps_confidence: float = Field(default=0.6, ge=0.0, le=1.0)
    caps_reason: str = "Excessive capitalization"
    special_ratio_threshold: float = Field(default=0.3, ge=0.0, le=1.0)
    special_confidence: float = Field(default=0.5, ge=0.0, le=1.0)
    special_reason: str = "Excessive special characters"
    # When set, spaces and line breaks do not count towards the special ratio.
    special_ignores_whitespace: bool = False
    # Heuristic scores never claim more certainty than this.
    confidence_cap: float = Field(default=0.95, ge=0.0, le=1.0)

    model_config = ConfigDict(frozen=True)

    @field_validator("categories")
    @classmethod
    def _unique_names(cls, categories: list[CategoryRule]) -> list[CategoryRule]:
        names = [category.name for category in categories]
        if len(names) != len(set(names)):
            raise ValueError("category names must be unique")
        return categories

    def category(self, name: str) -> CategoryRule | None:
        """Return the category called ``name`` if the table defines it."""
        for category in self.categories:
            if category.name == name:
                return category
        return None


DEFAULT_POLICY = PolicyTable(
    version="default-1",
    categories=[
        CategoryRule(
            name="hateSpeech",
            reason="Potential hate speech detected",
            terms=["hate", "hate you", "racist", "bigot", "subhuman", "vermin", "go back to"],
        ),
        CategoryRule(
            name="harassment",
            reason="Harassing or insulting language detected",
            terms=["idiot", "stupid", "dumb", "moron", "loser", "pathetic", "shut up", "worthless"],
        ),
        CategoryRule(
            name="threats",
            reason="Threatening language detected",
            terms=["kill", "die", "hurt you", "beat you", "destroy you", "watch your back"],
        ),
        CategoryRule(
            name="sexualHarassment",
            reason="Sexual harassment detected",
            terms=["send nudes", "nudes", "sexy body", "sleep with me"],
        ),
    ],
)


def load_policy(path: str | Path | None) -> PolicyTable:
    """Load a policy table from a JSON file, or return the default table.

    Raises:
        FileNotFoundError: If ``path`` is given but does not exist.
        pydantic.ValidationError: If the file does not describe a valid table.
    """
    if not path:
        return DEFAULT_POLICY

    policy_path = Path(path)
    data = json.loads(policy_path.read_text(encoding="utf-8"))
    policy = PolicyTable.model_validate(data)
    logger.info(
        "Loaded moderation policy %s from %s (%d categories)",
        policy.version,
        policy_path,
        len(policy.categories),
    )
    return policy
