"""Settings API — supplier recommendation weights."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ..database import get_db
from ..dependencies import require_admin, require_staff
from ..models import User
from ..schemas.settings import ScoringWeightsIn
from ..services import settings_service

router = APIRouter(tags=["settings"])


@router.get("/api/settings/scoring-weights")
def get_scoring_weights(
    user: User = Depends(require_staff),
    db: Session = Depends(get_db),
):
    weights = settings_service.get_scoring_weights(db)
    return {**weights.to_dict(), "total": weights.total}


@router.put("/api/settings/scoring-weights")
def update_scoring_weights(
    body: ScoringWeightsIn,
    user: User = Depends(require_admin),
    db: Session = Depends(get_db),
):
    weights = settings_service.update_scoring_weights(db, body.model_dump(), updated_by=user.email)
    return {**weights.to_dict(), "total": weights.total}
