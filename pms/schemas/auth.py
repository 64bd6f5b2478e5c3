from pydantic import BaseModel, ConfigDict
from pms.models.user import UserRole


class ReviewerContext(BaseModel):
    """
    The acting user for one request or editing session. Passed explicitly to
    every permission check; nothing reads the caller from ambient state.
    """
    model_config = ConfigDict(frozen=True)

    user_id: str
    role: UserRole
