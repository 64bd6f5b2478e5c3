import pytest
from datetime import datetime, timezone
from pms.models.review import AchievementLevel, GoalStatus
from pms.schemas.review import (
    AchievementLevelChanged,
    AgreementChanged,
    CommentsChanged,
    EvidenceFile,
    FinalApprovalChanged,
    GoalProgressUpdate,
    ImpactAssessmentChanged,
    RatingChanged,
    ValidationNoteChanged,
)
from pms.services import review_mutations as m


def _file(evidence_id="evidence_1", name="report.pdf"):
    return EvidenceFile(
        id=evidence_id,
        name=name,
        size_label="1.5 KB",
        mime_type="application/pdf",
        uploaded_at=datetime(2026, 5, 1, tzinfo=timezone.utc),
    )


def test_update_replaces_only_the_target_field(review):
    updated = m.update_kra_self_assessment(review, "kra-1", RatingChanged(value=7))

    assert updated is not review
    assert updated.kra("kra-1").self_assessment.rating == 7
    # original snapshot untouched
    assert review.kra("kra-1").self_assessment.rating == 0
    # siblings are the same objects
    assert updated.kra("kra-2") is review.kra("kra-2")
    assert updated.kra("kra-1").r1_review is review.kra("kra-1").r1_review


def test_reviewer_blocks(review):
    r = m.update_kra_r1_review(review, "kra-2", ValidationNoteChanged(value="Checked JIRA"))
    r = m.update_kra_r1_review(r, "kra-2", AgreementChanged(value=True))
    r = m.update_kra_r2_review(r, "kra-2", FinalApprovalChanged(value=True))

    kra = r.kra("kra-2")
    assert kra.r1_review.validation_note == "Checked JIRA"
    assert kra.r1_review.agrees is True
    assert kra.r2_review.final_approval is True


def test_goal_blocks(review):
    r = m.update_goal_self_assessment(review, "kra-1", "goal-2", AchievementLevelChanged(value=AchievementLevel.EXCEEDED))
    r = m.update_goal_r1_validation(r, "kra-1", "goal-2", CommentsChanged(value="Verified"))
    r = m.update_goal_r2_validation(r, "kra-1", "goal-2", ImpactAssessmentChanged(value="High"))

    goal = r.kra("kra-1").goal("goal-2")
    assert goal.self_assessment.achievement_level == AchievementLevel.EXCEEDED
    assert goal.r1_validation.comments == "Verified"
    assert goal.r2_validation.impact_assessment == "High"
    assert r.kra("kra-1").goal("goal-1") is review.kra("kra-1").goal("goal-1")


def test_goal_progress(review):
    r = m.update_goal_progress(review, "kra-2", "goal-3", GoalProgressUpdate(current_progress=60, status=GoalStatus.IN_PROGRESS))
    goal = r.kra("kra-2").goal("goal-3")
    assert goal.current_progress == 60
    assert goal.status == GoalStatus.IN_PROGRESS


@pytest.mark.parametrize("call", [
    lambda r: m.update_kra_self_assessment(r, "missing", RatingChanged(value=5)),
    lambda r: m.update_kra_r2_review(r, "missing", CommentsChanged(value="x")),
    lambda r: m.update_goal_self_assessment(r, "kra-1", "missing", CommentsChanged(value="x")),
    lambda r: m.update_goal_r1_validation(r, "missing", "goal-1", AgreementChanged(value=True)),
    lambda r: m.add_evidence(r, "missing", None, _file()),
    lambda r: m.add_evidence(r, "kra-1", "missing", _file()),
    lambda r: m.remove_evidence(r, "kra-1", None, "missing"),
])
def test_unknown_ids_are_no_ops(review, call):
    assert call(review) is review


def test_edit_variant_must_match_section(review):
    with pytest.raises(TypeError):
        m.update_kra_self_assessment(review, "kra-1", FinalApprovalChanged(value=True))


def test_add_evidence_to_kra_or_goal(review):
    r = m.add_evidence(review, "kra-1", None, _file("evidence_kra"))
    r = m.add_evidence(r, "kra-1", "goal-1", _file("evidence_goal"))

    kra = r.kra("kra-1")
    assert [f.id for f in kra.self_assessment.evidence] == ["evidence_kra"]
    assert [f.id for f in kra.goal("goal-1").evidence] == ["evidence_goal"]
    assert kra.goal("goal-2").evidence == []


def test_add_same_evidence_twice_keeps_one(review):
    r = m.add_evidence(review, "kra-1", None, _file())
    assert m.add_evidence(r, "kra-1", None, _file()) is r


def test_remove_evidence_is_idempotent(review):
    r = m.add_evidence(review, "kra-1", "goal-1", _file("evidence_a"))
    r = m.add_evidence(r, "kra-1", "goal-1", _file("evidence_b"))

    once = m.remove_evidence(r, "kra-1", "goal-1", "evidence_a")
    twice = m.remove_evidence(once, "kra-1", "goal-1", "evidence_a")

    assert [f.id for f in once.kra("kra-1").goal("goal-1").evidence] == ["evidence_b"]
    assert twice is once


def test_evidence_is_not_shared_across_owners(review):
    r = m.add_evidence(review, "kra-1", None, _file())
    # same id attached to the KRA is not found on the goal
    assert m.find_evidence(r, "kra-1", "goal-1", "evidence_1") is None
    assert m.remove_evidence(r, "kra-1", "goal-1", "evidence_1") is r
