"""Tests for the deterministic quality scorer."""

import pytest

from datadao.config.curation_params import CurationParams, DescriptionPoints
from datadao.curation.errors import ValidationError
from datadao.curation.scorer import (
    LOW_SCORE_RECOMMENDATIONS,
    analyze_text,
    count_sentences,
    count_words,
    score_submission,
)

AGRI_DESCRIPTION = (
    "This dataset contains weekly crop yield and rainfall measurements "
    "collected from farms in northern Nigeria. It supports agricultural research."
)


def _good_metadata(**overrides) -> dict:
    meta = {
        "title": "Test Dataset for Agriculture",
        "description": AGRI_DESCRIPTION,
        "dataType": "text",
        "tags": ["agriculture", "nigeria", "crops", "weather"],
        "license": "CC0",
        "contributionType": "submit",
    }
    meta.update(overrides)
    return meta


class TestScenarios:

    def test_complete_agricultural_metadata_scores_high(self):
        result = score_submission(_good_metadata(), submitter_reputation=0)

        assert result.score >= 70
        assert result.valid is True
        for issue in result.issues:
            assert "Title" not in issue
            assert "Description" not in issue
            assert "license" not in issue
            assert "tags" not in issue.lower()

    def test_full_point_budget(self):
        # 10 + 15 + 10 (fields) + 10 + 5 + 5 + 10 (text) + 8 (tags) + 10 + 5
        result = score_submission(_good_metadata())
        assert result.score == 88
        assert result.issues == []

    def test_empty_metadata_clamps_to_zero(self):
        result = score_submission({
            "title": "",
            "description": "",
            "dataType": "bogus",
            "tags": [],
            "license": "",
            "contributionType": "x",
        })

        assert result.score == 0
        assert result.valid is False
        assert len(result.issues) >= 6
        assert result.issues == [
            "Title is too short or missing",
            "Description is too short or missing",
            "Invalid or missing data type",
            "No tags provided",
            "Invalid or missing license",
            "Invalid contribution type",
        ]
        assert list(LOW_SCORE_RECOMMENDATIONS) == result.recommendations


class TestProperties:

    @pytest.mark.parametrize("metadata", [
        {},
        None,
        _good_metadata(),
        _good_metadata(tags=[f"t{i}" for i in range(20)]),
        _good_metadata(description="lorem ipsum TODO " * 200),
        {"title": "x" * 500, "dataType": "image"},
    ])
    def test_score_bounds_and_validity(self, metadata):
        result = score_submission(metadata)
        assert 0 <= result.score <= 100
        assert result.valid == (result.score >= 50)

    def test_deterministic(self):
        a = score_submission(_good_metadata(), submitter_reputation=150)
        b = score_submission(_good_metadata(), submitter_reputation=150)
        assert a == b

    def test_snake_and_camel_case_equivalent(self):
        camel = score_submission(_good_metadata())
        snake = score_submission({
            "title": "Test Dataset for Agriculture",
            "description": AGRI_DESCRIPTION,
            "data_type": "text",
            "tags": ["agriculture", "nigeria", "crops", "weather"],
            "license": "CC0",
            "contribution_type": "submit",
        })
        assert camel == snake


class TestRules:

    def test_reputation_bonus_above_threshold(self):
        base = score_submission(_good_metadata(), submitter_reputation=100)
        bonus = score_submission(_good_metadata(), submitter_reputation=101)
        assert bonus.score == base.score + 5

    def test_too_many_tags(self):
        result = score_submission(_good_metadata(tags=[f"t{i}" for i in range(11)]))
        assert "Too many tags (max 10 recommended)" in result.issues

    def test_tag_points_capped(self):
        five = score_submission(_good_metadata(tags=["a", "b", "c", "d", "e"]))
        ten = score_submission(_good_metadata(tags=[f"t{i}" for i in range(10)]))
        assert five.score == ten.score

    def test_text_without_file_recommends_upload(self):
        result = score_submission(_good_metadata())
        assert "Consider uploading the actual text file for better validation" in result.recommendations

        with_file = score_submission(_good_metadata(fileInfo={"name": "yields.csv"}))
        assert "Consider uploading the actual text file for better validation" not in with_file.recommendations

    def test_file_name_string_counts_as_uploaded(self):
        result = score_submission(_good_metadata(fileInfo="yields.csv"))
        assert "Consider uploading the actual text file for better validation" not in result.recommendations
        assert result.score == score_submission(_good_metadata()).score

    def test_unknown_license_penalized(self):
        result = score_submission(_good_metadata(license="Proprietary"))
        assert "Invalid or missing license" in result.issues
        assert result.score == 88 - 20

    def test_custom_params(self):
        params = CurationParams(licenses=("Proprietary",))
        result = score_submission(_good_metadata(license="Proprietary"), params=params)
        assert "Invalid or missing license" not in result.issues

    def test_malformed_tags_raise(self):
        with pytest.raises(ValidationError):
            score_submission(_good_metadata(tags="agriculture"))

    def test_non_mapping_raises(self):
        with pytest.raises(ValidationError):
            score_submission(["not", "a", "mapping"])


class TestTextAnalysis:

    def test_counts(self):
        assert count_words("one two  three") == 3
        assert count_sentences("One. Two! Three?") == 4
        assert count_sentences("no terminator") == 1

    def test_placeholder_and_notes(self):
        text = "Lorem ipsum dolor sit amet for this data. TODO fill in the rest of it later."
        result = analyze_text(text)
        assert "Contains placeholder text" in result.issues
        assert "Contains incomplete notes" in result.issues

    def test_short_text(self):
        result = analyze_text("Tiny.")
        assert "Content is too short for meaningful analysis" in result.issues
        assert "Very few words, consider adding more detail" in result.issues

    def test_missing_domain_terms(self):
        text = "A long walk through the quiet hills at dawn. Birds sang and the wind was calm today."
        result = analyze_text(text)
        assert "Consider using more data-specific terminology" in result.recommendations

    def test_custom_description_points(self):
        params = CurationParams(description=DescriptionPoints(keyword_bonus=0))
        assert analyze_text(AGRI_DESCRIPTION, params).score == analyze_text(AGRI_DESCRIPTION).score - 10
