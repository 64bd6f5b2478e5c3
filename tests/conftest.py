import pytest
import os
from datetime import date
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Set env before importing app components
os.environ["APP_ENV"] = "testing"
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["PMS_STRICT_PERMISSIONS"] = "true"

from pms.database import Base, get_db
from pms.dependencies import get_evidence_service
from pms.main import app
from pms.core.exceptions import ExternalServiceError
from pms.models.review import AchievementLevel
from pms.models.user import UserRole
from pms.schemas.auth import ReviewerContext
from pms.schemas.review import (
    AchievementLevelChanged,
    CommentsChanged,
    GoalInReview,
    KRAInReview,
    RatingChanged,
    ReviewData,
    ReviewPeriod,
)
from pms.services import review_mutations as mutations
from pms.services.evidence import EvidenceService
from pms.services.evidence_storage import LocalEvidenceStorage
from pms.services.review_repository import ReviewPersistence
from fastapi.testclient import TestClient

# SQLite in-memory database configuration
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture(scope="session", autouse=True)
def setup_database():
    """Create tables once for the whole test session."""
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def db_session():
    """Get a clean database session for each test function with rollback safety."""
    connection = engine.connect()
    transaction = connection.begin()
    session = TestingSessionLocal(bind=connection)

    yield session

    session.close()
    transaction.rollback()
    connection.close()


@pytest.fixture(scope="function")
def evidence_service(tmp_path):
    """Evidence service writing into a per-test temporary directory."""
    return EvidenceService(LocalEvidenceStorage(str(tmp_path / "evidence")))


@pytest.fixture(scope="function")
def client(db_session, evidence_service):
    """Get a TestClient that uses the test database session via dependency override."""
    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_evidence_service] = lambda: evidence_service
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


# ============================================================================
# ACTORS
# ============================================================================
EMPLOYEE_ID = "emp-1"


@pytest.fixture
def employee():
    return ReviewerContext(user_id=EMPLOYEE_ID, role=UserRole.EMPLOYEE)


@pytest.fixture
def teamlead():
    return ReviewerContext(user_id="lead-1", role=UserRole.TEAMLEAD)


@pytest.fixture
def manager():
    return ReviewerContext(user_id="mgr-1", role=UserRole.MANAGER)


@pytest.fixture
def hr():
    return ReviewerContext(user_id="hr-1", role=UserRole.HR)


@pytest.fixture
def headers():
    """Build the identity headers the gateway forwards for a user."""
    def _headers(user_id: str, role: UserRole):
        return {"X-User-Id": user_id, "X-User-Role": role.value}
    return _headers


# ============================================================================
# REVIEWS
# ============================================================================
@pytest.fixture
def make_review():
    """Three KRAs (30/40/30) with three goals between them, in the self stage."""
    def _make(**overrides) -> ReviewData:
        data = dict(
            id="review-1",
            employee_id=EMPLOYEE_ID,
            employee_name="Asha Rao",
            review_cycle="FY2026 H1",
            review_period=ReviewPeriod(start_date=date(2026, 4, 1), end_date=date(2026, 9, 30)),
            kras=[
                KRAInReview(
                    id="kra-1",
                    name="Technical Excellence",
                    weightage=30,
                    category="Technical",
                    related_goals=[
                        GoalInReview(id="goal-1", title="Ship the billing migration"),
                        GoalInReview(id="goal-2", title="Get cloud certified"),
                    ],
                ),
                KRAInReview(
                    id="kra-2",
                    name="Delivery",
                    weightage=40,
                    category="Execution",
                    related_goals=[GoalInReview(id="goal-3", title="Hit sprint commitments")],
                ),
                KRAInReview(id="kra-3", name="Collaboration", weightage=30, category="Behavioral"),
            ],
        )
        data.update(overrides)
        return ReviewData(**data)
    return _make


@pytest.fixture
def review(make_review):
    return make_review()


@pytest.fixture
def fill_self_assessment():
    """Complete every self-assessment field the submit check requires."""
    def _fill(review: ReviewData, rating: int = 8) -> ReviewData:
        for kra in review.kras:
            review = mutations.update_kra_self_assessment(review, kra.id, RatingChanged(value=rating))
            review = mutations.update_kra_self_assessment(review, kra.id, CommentsChanged(value=f"Self notes on {kra.name}"))
            for goal in kra.related_goals:
                review = mutations.update_goal_self_assessment(
                    review, kra.id, goal.id, AchievementLevelChanged(value=AchievementLevel.ACHIEVED)
                )
                review = mutations.update_goal_self_assessment(
                    review, kra.id, goal.id, CommentsChanged(value="Done")
                )
        return review
    return _fill


class FakePersistence(ReviewPersistence):
    """In-memory save/submit collaborator that can be told to fail."""

    def __init__(self):
        self.saved = []
        self.submitted = []
        self.fail = False

    def save(self, review):
        if self.fail:
            raise ExternalServiceError("Failed to save review. Please try again.")
        self.saved.append(review)

    def submit(self, review):
        if self.fail:
            raise ExternalServiceError("Failed to submit review. Please try again.")
        self.submitted.append(review)


@pytest.fixture
def persistence():
    return FakePersistence()
