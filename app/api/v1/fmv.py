from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from app.api.errors import http_error
from app.core.exceptions import AppError
from app.dependencies import get_db
from app.schemas.fmv import FmvRequest, FmvResult
from app.services.fmv_service import FmvService

router = APIRouter()

@router.post("/percentile-rank", response_model=FmvResult)
def get_percentile_rank(request: FmvRequest, db: Session = Depends(get_db)):
    """
    Rank a compensation value against the market percentiles for a specialty
    """
    try:
        return FmvService(db).calculate(request)
    except AppError as e:
        raise http_error(e)
