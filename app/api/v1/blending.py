from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from app.api.errors import http_error
from app.core.exceptions import AppError
from app.dependencies import get_db
from app.schemas.blending import (
    MultiYearBlendRequest,
    MultiYearBlendResult,
    SpecialtyBlendRequest,
    SpecialtyBlendResult,
)
from app.services.aggregation_service import AggregationService, selected_variables
from app.services.blending_service import calculate_multi_year_blend, calculate_specialty_blend

router = APIRouter()

@router.post("/multi-year", response_model=MultiYearBlendResult)
def blend_years(request: MultiYearBlendRequest, db: Session = Depends(get_db)):
    """
    Blend each specialty across the requested survey years
    """
    # The year list replaces any single-year filter
    filters = request.filters.model_copy(update={"year": None})
    try:
        rows = AggregationService(db).get_aggregated_rows(filters)
        return calculate_multi_year_blend(rows, request)
    except AppError as e:
        raise http_error(e)

@router.post("/specialties", response_model=SpecialtyBlendResult)
def blend_specialties(request: SpecialtyBlendRequest, db: Session = Depends(get_db)):
    """
    Mix several specialties into one weighted benchmark
    """
    filters = request.filters.model_copy(update={"specialty": None})
    try:
        variables = selected_variables(request.variables)
        rows = AggregationService(db).get_aggregated_rows(filters)
        return calculate_specialty_blend(request.items, rows, variables or None)
    except AppError as e:
        raise http_error(e)
