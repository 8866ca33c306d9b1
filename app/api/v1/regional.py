from typing import List, Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from app.api.errors import http_error
from app.core.exceptions import AppError
from app.dependencies import get_db
from app.schemas.regional import RegionalComparison
from app.services.regional_service import RegionalService

router = APIRouter()

@router.get("/comparison", response_model=RegionalComparison)
def get_regional_comparison(
    variable: str = "tcc",
    specialty: Optional[str] = None,
    provider_type: Optional[str] = None,
    survey_source: Optional[str] = None,
    year: Optional[str] = None,
    regions: List[str] = Query([]),
    db: Session = Depends(get_db),
):
    """
    Compare one variable across regions, National first
    """
    try:
        return RegionalService(db).compare(
            variable=variable,
            specialty=specialty,
            provider_type=provider_type,
            survey_source=survey_source,
            year=year,
            regions=regions or None,
        )
    except AppError as e:
        raise http_error(e)
