import logging
from typing import Any, Optional

from sqlalchemy.orm import Session

from app.core.exceptions import NotFoundError
from app.schemas.analytics import AnalyticsFilters, VariableMetrics
from app.schemas.fmv import FmvRequest, FmvResult
from app.services.aggregation_service import AggregationService
from app.services.blending_service import calculate_summary
from app.services.normalization_service import parse_number, resolve_metric

logger = logging.getLogger(__name__)

def get_percentile_rank(
    market: VariableMetrics,
    value: Any,
    p0: Optional[float] = None,
    p100: Optional[float] = None,
) -> Optional[float]:
    """
    Where a value falls within the market distribution, as a percentile.

    Interpolates linearly between the published percentiles, skipping any
    that are missing. The 100th percentile is extrapolated from the spread of
    the two highest published percentiles when not given.
    """
    number = parse_number(value)
    if number is None:
        return None
    published = [
        (pct, val)
        for pct, val in ((25.0, market.p25), (50.0, market.p50), (75.0, market.p75), (90.0, market.p90))
        if val > 0
    ]
    if not published:
        return None
    if not p100:
        top = published[-1][1]
        p100 = top + (top - published[-2][1]) if len(published) > 1 else top
    points = [(0.0, p0 or 0.0)] + published + [(100.0, p100)]
    if number <= points[0][1]:
        return 0.0
    for (low_pct, low_val), (high_pct, high_val) in zip(points, points[1:]):
        if low_val <= number <= high_val:
            if high_val == low_val:
                return low_pct
            return round(low_pct + (number - low_val) / (high_val - low_val) * (high_pct - low_pct), 1)
    return 100.0

class FmvService:
    def __init__(self, db: Session):
        self.db = db

    def calculate(self, request: FmvRequest) -> FmvResult:
        variable = resolve_metric(request.variable)
        filters = AnalyticsFilters(
            specialty=request.specialty,
            provider_type=request.provider_type,
            region=request.region,
            survey_source=request.survey_source,
            year=request.year,
        )
        rows = AggregationService(self.db).get_aggregated_rows(filters)
        market = calculate_summary(rows, [variable]).weighted.get(variable)
        if market is None:
            raise NotFoundError(f"No market data for {variable} in {request.specialty}")

        matched = sum(1 for row in rows if variable in row.variables and row.variables[variable].p50 > 0)
        logger.info(f"FMV lookup for {request.specialty}/{variable} matched {matched} rows")
        return FmvResult(
            variable=variable,
            value=request.value,
            market=market,
            percentile_rank=get_percentile_rank(market, request.value),
            matched_rows=matched,
        )
