from typing import Dict, List, Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from app.api.errors import http_error
from app.core.exceptions import AppError
from app.dependencies import get_db
from app.schemas.analytics import AggregatedRow, AnalyticsFilters, FilterOptions, SpecialtySummary
from app.schemas.variable import DiscoveredVariable, VariableDiscoveryStats
from app.services.aggregation_service import AggregationService
from app.services.variable_discovery_service import VariableDiscoveryService

router = APIRouter()

def analytics_filters(
    specialty: Optional[str] = None,
    survey_source: Optional[str] = None,
    region: Optional[str] = None,
    provider_type: Optional[str] = None,
    year: Optional[str] = None,
    variables: List[str] = Query([]),
) -> AnalyticsFilters:
    return AnalyticsFilters(
        specialty=specialty,
        survey_source=survey_source,
        region=region,
        provider_type=provider_type,
        year=year,
        variables=variables,
    )

@router.get("/benchmarks", response_model=List[AggregatedRow])
def get_benchmarks(filters: AnalyticsFilters = Depends(analytics_filters), db: Session = Depends(get_db)):
    """
    Aggregated benchmark rows, one per specialty/region/source/provider type/year
    """
    try:
        return AggregationService(db).get_aggregated_rows(filters)
    except AppError as e:
        raise http_error(e)

@router.get("/summary", response_model=List[SpecialtySummary])
def get_summary(filters: AnalyticsFilters = Depends(analytics_filters), db: Session = Depends(get_db)):
    try:
        return AggregationService(db).get_summary(filters)
    except AppError as e:
        raise http_error(e)

@router.get("/filter-options", response_model=FilterOptions)
def get_filter_options(db: Session = Depends(get_db)):
    return AggregationService(db).get_filter_options()

@router.get("/variables", response_model=List[DiscoveredVariable])
def get_variables(data_category: Optional[str] = None, db: Session = Depends(get_db)):
    return VariableDiscoveryService(db).discover(data_category)

@router.get("/variables/by-category", response_model=Dict[str, List[DiscoveredVariable]])
def get_variables_by_category(data_category: Optional[str] = None, db: Session = Depends(get_db)):
    return VariableDiscoveryService(db).get_variables_by_category(data_category)

@router.get("/variables/stats", response_model=VariableDiscoveryStats)
def get_variable_stats(data_category: Optional[str] = None, db: Session = Depends(get_db)):
    return VariableDiscoveryService(db).get_discovery_stats(data_category)

@router.post("/variables/refresh", response_model=List[DiscoveredVariable])
def refresh_variables(db: Session = Depends(get_db)):
    return VariableDiscoveryService(db).refresh()
