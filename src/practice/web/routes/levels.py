"""Level endpoints."""

from fastapi import APIRouter

from practice.web.engine import get_selector
from practice.web.schemas import SkillLevelsResponse, UserLevelsResponse

router = APIRouter(prefix="/api/levels", tags=["levels"])


@router.get("/{user_id}", response_model=UserLevelsResponse)
def get_user_levels(user_id: str) -> UserLevelsResponse:
    """Levels for every skill area; untouched skills show the default level."""
    summaries = get_selector().levels_for_user(user_id)
    return UserLevelsResponse(
        user_id=user_id,
        skills=[SkillLevelsResponse.from_summary(s) for s in summaries],
    )
