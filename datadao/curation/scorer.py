"""Deterministic quality scoring for submission metadata.

Pure computation: no I/O, no clock, no randomness. The score is an additive
point budget over metadata completeness plus a description text analysis
sub-score, clamped to [0, 100]. Scoring identical (metadata, reputation)
inputs always yields an identical assessment.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any

from datadao.config.curation_params import CurationParams, get_curation_params

from .models import QualityAssessment, SubmissionMetadata

_WHITESPACE = re.compile(r"\s+")
_SENTENCE_BREAK = re.compile(r"[.!?]+")

LOW_SCORE_RECOMMENDATIONS = (
    "Consider adding more detailed description",
    "Add relevant tags to improve discoverability",
    "Ensure data follows community guidelines",
)


@dataclass
class TextAnalysis:
    """Sub-score produced by the description text analysis."""

    score: int = 0
    issues: list[str] = field(default_factory=list)
    recommendations: list[str] = field(default_factory=list)


def _clamp(value: int, lo: int, hi: int) -> int:
    return max(lo, min(hi, value))


def count_words(text: str) -> int:
    """Number of whitespace-separated pieces, counting a leading gap as one."""
    return len(_WHITESPACE.split(text))


def count_sentences(text: str) -> int:
    """Number of pieces between runs of sentence terminators."""
    return len(_SENTENCE_BREAK.split(text))


def analyze_text(text: str, params: CurationParams | None = None) -> TextAnalysis:
    """Score free text for length, structure, placeholders and domain terms."""
    params = params or get_curation_params()
    p = params.description
    result = TextAnalysis()

    if len(text) < p.min_length:
        result.issues.append("Content is too short for meaningful analysis")
        result.score += p.too_short
    elif len(text) > p.max_length:
        result.issues.append("Content is very long, consider summarizing")
        result.score += p.too_long
    else:
        result.score += p.length_ok

    words = count_words(text)
    if words < p.min_words:
        result.issues.append("Very few words, consider adding more detail")
        result.score += p.too_few_words
    elif words > p.max_words:
        result.recommendations.append("Consider breaking down into smaller sections")
    else:
        result.score += p.words_ok

    if count_sentences(text) < p.min_sentences:
        result.issues.append("Content lacks proper sentence structure")
        result.score += p.too_few_sentences
    else:
        result.score += p.sentences_ok

    lowered = text.lower()
    if any(marker in lowered for marker in params.placeholder_markers):
        result.issues.append("Contains placeholder text")
        result.score += p.placeholder_penalty

    if any(marker in text for marker in params.incomplete_markers):
        result.issues.append("Contains incomplete notes")
        result.score += p.incomplete_notes_penalty

    if any(word in lowered for word in params.domain_keywords):
        result.score += p.keyword_bonus
    else:
        result.recommendations.append("Consider using more data-specific terminology")

    return result


def score_submission(
    metadata: SubmissionMetadata | dict[str, Any] | None,
    submitter_reputation: int = 0,
    params: CurationParams | None = None,
) -> QualityAssessment:
    """Score submission metadata.

    Args:
        metadata: Parsed metadata or a raw mapping (snake_case or camelCase).
        submitter_reputation: Submitter's reputation at scoring time.
        params: Override the default point budget.

    Returns:
        QualityAssessment with clamped score, ordered issues and
        recommendations. ``assessment.valid`` is ``score >= 50``.

    Raises:
        ValidationError: metadata is not a mapping or has mistyped fields.
    """
    params = params or get_curation_params()
    meta = SubmissionMetadata.from_mapping(metadata)

    issues: list[str] = []
    recommendations: list[str] = []
    score = 0

    # Basic completeness
    if not meta.title or len(meta.title) < params.min_title_length:
        issues.append("Title is too short or missing")
        score -= params.title_points
    else:
        score += params.title_points

    if not meta.description or len(meta.description) < params.min_description_length:
        issues.append("Description is too short or missing")
        score -= params.description_points
    else:
        score += params.description_points

    if not meta.data_type or meta.data_type not in params.data_types:
        issues.append("Invalid or missing data type")
        score -= params.data_type_points
    else:
        score += params.data_type_points

    # Description content
    if meta.description:
        analysis = analyze_text(meta.description, params)
        score += analysis.score
        issues.extend(analysis.issues)
        recommendations.extend(analysis.recommendations)

    # Tags
    tags = meta.tags or []
    if not tags:
        issues.append("No tags provided")
        score += params.tag_penalty
    elif len(tags) > params.max_tags:
        issues.append(f"Too many tags (max {params.max_tags} recommended)")
        score += params.tag_penalty
    else:
        score += min(len(tags) * params.points_per_tag, params.max_tag_points)

    if not meta.license or meta.license not in params.licenses:
        issues.append("Invalid or missing license")
        score -= params.license_points
    else:
        score += params.license_points

    if not meta.contribution_type or meta.contribution_type not in params.contribution_types:
        issues.append("Invalid contribution type")
        score -= params.contribution_type_points
    else:
        score += params.contribution_type_points

    if submitter_reputation > params.reputation_bonus_threshold:
        score += params.reputation_bonus

    score = _clamp(score, params.min_score, params.max_score)

    if score < params.recommendation_threshold:
        recommendations.extend(LOW_SCORE_RECOMMENDATIONS)

    if meta.data_type == "text" and not meta.file_info:
        recommendations.append("Consider uploading the actual text file for better validation")

    return QualityAssessment(score=score, issues=issues, recommendations=recommendations)


__all__ = [
    "LOW_SCORE_RECOMMENDATIONS",
    "TextAnalysis",
    "analyze_text",
    "count_sentences",
    "count_words",
    "score_submission",
]
