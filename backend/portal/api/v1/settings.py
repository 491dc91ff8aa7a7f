"""
Public settings endpoints.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from portal.core.system_config import get_passing_percentage
from portal.models import get_db
from portal.schemas.settings import PassingPercentageResponse

router = APIRouter()


@router.get("/passing-percentage", response_model=PassingPercentageResponse)
def passing_percentage(db: Session = Depends(get_db)):
    """
    Get the current assessment passing threshold.

    Always succeeds: falls back to the configured default when the
    settings store is unavailable.
    """
    return PassingPercentageResponse(passing_percentage=get_passing_percentage(db))
