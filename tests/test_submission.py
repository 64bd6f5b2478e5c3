import pytest
from pms.core.exceptions import ReviewLockedError, SubmissionIncompleteError
from pms.models.review import OverallStatus, ReviewStage
from pms.schemas.review import CommentsChanged, KRAInReview, RatingChanged
from pms.services import review_mutations as m
from pms.services.permissions import stage_index
from pms.services.submission import advance, ensure_submittable, validate_submission


def test_blank_self_assessment_lists_every_missing_field(review):
    errors = validate_submission(review)
    # 3 KRAs x 2 fields + 3 goals x 2 fields
    assert len(errors) == 12
    assert errors[0] == "KRA 1 (Technical Excellence): Self-assessment rating is required"
    assert errors[1] == "KRA 1 (Technical Excellence): Self-assessment comments are required"
    assert errors[2] == "KRA 1, Goal 1 (Ship the billing migration): Achievement level is required"


def test_single_missing_comment_gives_one_message(make_review):
    review = make_review(kras=[KRAInReview(id="k1", name="Quality", weightage=100)])
    review = m.update_kra_self_assessment(review, "k1", RatingChanged(value=7))

    assert validate_submission(review) == ["KRA 1 (Quality): Self-assessment comments are required"]


def test_whitespace_comments_do_not_count(make_review):
    review = make_review(kras=[KRAInReview(id="k1", name="Quality", weightage=100)])
    review = m.update_kra_self_assessment(review, "k1", RatingChanged(value=7))
    review = m.update_kra_self_assessment(review, "k1", CommentsChanged(value="   "))

    with pytest.raises(SubmissionIncompleteError) as exc:
        ensure_submittable(review)
    assert exc.value.messages == ["KRA 1 (Quality): Self-assessment comments are required"]
    assert exc.value.status_code == 422


def test_complete_self_assessment_passes(review, fill_self_assessment):
    assert validate_submission(fill_self_assessment(review)) == []


def test_r1_stage_requires_r1_rating_and_comments(review):
    at_r1 = review.model_copy(update={"current_stage": ReviewStage.R1})
    errors = validate_submission(at_r1)
    assert "KRA 2 (Delivery): R1 review rating is required" in errors
    assert len(errors) == 6


def test_hr_stage_has_no_field_checks(review):
    assert validate_submission(review.model_copy(update={"current_stage": ReviewStage.HR})) == []


def test_advance_walks_every_stage_forward(review):
    expected = [
        (ReviewStage.R1, OverallStatus.SUBMITTED),
        (ReviewStage.R2, OverallStatus.IN_REVIEW),
        (ReviewStage.HR, OverallStatus.IN_REVIEW),
        (ReviewStage.COMPLETED, OverallStatus.APPROVED),
    ]
    current = review
    for stage, status in expected:
        nxt = advance(current)
        assert stage_index(nxt.current_stage) == stage_index(current.current_stage) + 1
        assert (nxt.current_stage, nxt.overall_status) == (stage, status)
        assert nxt.last_saved is not None
        current = nxt

    with pytest.raises(ReviewLockedError):
        advance(current)
