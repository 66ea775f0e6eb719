"""Practice endpoints: pick the next exercise, report a score.

Handlers are plain functions so FastAPI runs the blocking store calls in
its threadpool.
"""

import structlog
from fastapi import APIRouter, HTTPException, status

from practice.core.catalog import UnknownExerciseTypeError
from practice.core.leveling import InvalidScoreError
from practice.core.selector import NoContentAvailableError
from practice.core.stores import ConcurrencyConflictError
from practice.web.engine import get_selector
from practice.web.schemas import ScoreRequest, ScoreResponse, SelectRequest, SelectResponse

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/practice", tags=["practice"])


@router.post("/select", response_model=SelectResponse)
def select_content(request: SelectRequest) -> SelectResponse:
    """Choose the next exercise for a learner."""
    selector = get_selector()

    try:
        result = selector.select_for(request.user_id, request.skill_area, request.exercise_type)
    except UnknownExerciseTypeError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e
    except NoContentAvailableError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from e

    return SelectResponse.from_result(result)


@router.post("/score", response_model=ScoreResponse)
def report_score(request: ScoreRequest) -> ScoreResponse:
    """Apply a graded attempt to the learner's level."""
    selector = get_selector()

    try:
        adjustment = selector.report_score(
            request.user_id,
            request.skill_area,
            request.exercise_type,
            request.score,
            content_item_id=request.content_item_id,
        )
    except InvalidScoreError as e:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e)
        ) from e
    except UnknownExerciseTypeError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from e
    except ConcurrencyConflictError as e:
        logger.warning("score_conflict", user_id=request.user_id, error=str(e))
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e)) from e

    return ScoreResponse.from_adjustment(adjustment)
