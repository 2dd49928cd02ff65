"""Tests for curation models and metadata parsing."""

import pydantic
import pytest

from datadao.curation.errors import InvalidState, SubmissionNotFound, ValidationError
from datadao.curation.models import (
    QualityAssessment,
    Submission,
    SubmissionMetadata,
    SubmissionStatus,
)


class TestQualityAssessment:

    def test_valid_threshold(self):
        assert QualityAssessment(score=50).valid is True
        assert QualityAssessment(score=49).valid is False

    def test_valid_serialized(self):
        dumped = QualityAssessment(score=80, issues=["x"]).model_dump()
        assert dumped["valid"] is True
        assert dumped["issues"] == ["x"]

    def test_score_range_enforced(self):
        with pytest.raises(pydantic.ValidationError):
            QualityAssessment(score=101)


class TestSubmissionMetadata:

    def test_camel_case_keys(self):
        meta = SubmissionMetadata.from_mapping({
            "dataType": "text",
            "contributionType": "label",
            "fileInfo": {"size": 10},
        })
        assert meta.data_type == "text"
        assert meta.contribution_type == "label"
        assert meta.file_info == {"size": 10}

    def test_file_info_as_plain_name(self):
        meta = SubmissionMetadata.from_mapping({"dataType": "text", "fileInfo": "yields.csv"})
        assert meta.file_info == "yields.csv"
        assert meta.to_json()["file_info"] == "yields.csv"

    def test_unknown_keys_preserved(self):
        meta = SubmissionMetadata.from_mapping({"title": "T", "source": "survey-app"})
        assert meta.to_json()["source"] == "survey-app"

    def test_to_json_omits_missing(self):
        assert SubmissionMetadata.from_mapping({"title": "T"}).to_json() == {"title": "T"}

    def test_none_is_empty(self):
        assert SubmissionMetadata.from_mapping(None).to_json() == {}

    def test_malformed_field_named(self):
        with pytest.raises(ValidationError, match="tags"):
            SubmissionMetadata.from_mapping({"tags": 5})

    def test_not_a_mapping(self):
        with pytest.raises(ValidationError, match="mapping"):
            SubmissionMetadata.from_mapping("title")


class TestSubmission:

    def _submission(self, **kw) -> Submission:
        base = dict(
            id="s1", user_id="u1", task_id="t1",
            result_hash="h", storage_uri="ipfs://h",
        )
        base.update(kw)
        return Submission(**base)

    def test_defaults(self):
        s = self._submission()
        assert s.status == SubmissionStatus.PENDING
        assert s.quality_score is None
        assert s.metadata == {}

    def test_relay_eligible(self):
        assert not self._submission().relay_eligible
        assert self._submission(status=SubmissionStatus.APPROVED).relay_eligible
        assert not self._submission(
            status=SubmissionStatus.APPROVED, relay_tx_ref="tx",
        ).relay_eligible

    def test_embedded_assessment(self):
        s = self._submission(metadata={"quality_assessment": {"score": 72, "issues": ["a"]}})
        assert s.quality_assessment.score == 72
        assert s.quality_assessment.issues == ["a"]

        camel = self._submission(metadata={"qualityAssessment": {"score": 10}})
        assert camel.quality_assessment.valid is False

        assert self._submission().quality_assessment is None


class TestErrors:

    def test_not_found_is_invalid_state(self):
        err = SubmissionNotFound("abc")
        assert isinstance(err, InvalidState)
        assert err.submission_id == "abc"
