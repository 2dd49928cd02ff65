"""Curation scoring parameters.

Allow-lists and point values used by the quality scorer. The defaults are
the production values; tests and tooling may pass a custom instance to
``score_submission`` to experiment without touching the scorer.
"""

from __future__ import annotations

from functools import lru_cache

from pydantic import BaseModel, ConfigDict, Field


class DescriptionPoints(BaseModel):
    """Point values for the description text analysis sub-score."""

    model_config = ConfigDict(frozen=True)

    min_length: int = 50
    max_length: int = 1000
    length_ok: int = 10
    too_short: int = -10
    too_long: int = -5

    min_words: int = 10
    max_words: int = 200
    words_ok: int = 5
    too_few_words: int = -10

    min_sentences: int = 2
    sentences_ok: int = 5
    too_few_sentences: int = -5

    placeholder_penalty: int = -20
    incomplete_notes_penalty: int = -10
    keyword_bonus: int = 10


class CurationParams(BaseModel):
    """Scoring configuration for submission metadata."""

    model_config = ConfigDict(frozen=True)

    min_title_length: int = 5
    title_points: int = 10

    min_description_length: int = 20
    description_points: int = 15

    data_types: frozenset[str] = frozenset({"text", "image", "tabular", "audio", "video"})
    data_type_points: int = 10

    max_tags: int = 10
    points_per_tag: int = 2
    max_tag_points: int = 10
    tag_penalty: int = -5

    licenses: tuple[str, ...] = (
        "CC0",
        "CC-BY",
        "CC-BY-SA",
        "CC-BY-NC",
        "MIT",
        "Apache-2.0",
        "GPL-3.0",
    )
    license_points: int = 10

    contribution_types: frozenset[str] = frozenset({"submit", "label", "validate"})
    contribution_type_points: int = 5

    reputation_bonus_threshold: int = 100
    reputation_bonus: int = 5

    placeholder_markers: tuple[str, ...] = ("lorem ipsum",)
    incomplete_markers: tuple[str, ...] = ("TODO", "FIXME")
    domain_keywords: tuple[str, ...] = (
        "dataset",
        "data",
        "analysis",
        "research",
        "study",
        "survey",
        "collection",
    )

    description: DescriptionPoints = Field(default_factory=DescriptionPoints)

    recommendation_threshold: int = 70
    min_score: int = 0
    max_score: int = 100


@lru_cache(maxsize=1)
def get_curation_params() -> CurationParams:
    """Return the process-wide default curation parameters."""
    return CurationParams()


__all__ = ["CurationParams", "DescriptionPoints", "get_curation_params"]
