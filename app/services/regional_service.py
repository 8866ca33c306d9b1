import logging
from typing import List, Optional

import numpy as np
from sqlalchemy.orm import Session

from app.schemas.analytics import AggregatedRow, AnalyticsFilters
from app.schemas.regional import RegionalComparison, RegionalData, RegionalSummary
from app.services.aggregation_service import AggregationService
from app.services.constants import CANONICAL_REGIONS, PERCENTILES
from app.services.normalization_service import resolve_metric

logger = logging.getLogger(__name__)

def _rows_for_region(rows: List[AggregatedRow], region: str) -> List[AggregatedRow]:
    matching = [row for row in rows if row.region.lower() == region.lower()]
    if region.lower() == "national" and not matching:
        # Without national rows the national view covers every region
        return list(rows)
    return matching

def calculate_regional_data(
    rows: List[AggregatedRow], variable: str, regions: Optional[List[str]] = None
) -> List[RegionalData]:
    """
    Mean percentiles of one variable per region, over rows with a positive p50
    """
    result = []
    for region in regions or CANONICAL_REGIONS:
        metrics = [
            row.variables[variable] for row in _rows_for_region(rows, region)
            if variable in row.variables and row.variables[variable].p50 > 0
        ]
        means = {}
        for p in PERCENTILES:
            values = np.array([getattr(m, p) for m in metrics if getattr(m, p) > 0], dtype=float)
            means[p] = round(float(values.mean()), 2) if values.size else 0.0
        result.append(RegionalData(
            region=region,
            record_count=len(metrics),
            n_incumbents=sum(m.n_incumbents for m in metrics),
            **means,
        ))
    return result

def calculate_regional_summary(data: List[RegionalData]) -> RegionalSummary:
    with_data = [d for d in data if d.p50 > 0]
    if not with_data:
        return RegionalSummary(total_regions=len(data))

    p50s = np.array([d.p50 for d in with_data], dtype=float)
    mean = float(p50s.mean())
    # Population standard deviation
    cv = float(p50s.std()) / mean if mean else 0.0
    highest = max(with_data, key=lambda d: d.p50)
    lowest = min(with_data, key=lambda d: d.p50)
    return RegionalSummary(
        total_regions=len(data),
        total_records=sum(d.record_count for d in data),
        average_p50=round(mean, 2),
        region_with_highest_p50=highest.region,
        region_with_lowest_p50=lowest.region,
        data_diversity=round(min(cv / 0.5, 1.0), 4),
    )

class RegionalService:
    def __init__(self, db: Session):
        self.db = db

    def compare(
        self,
        variable: str = "tcc",
        specialty: Optional[str] = None,
        provider_type: Optional[str] = None,
        survey_source: Optional[str] = None,
        year: Optional[str] = None,
        regions: Optional[List[str]] = None,
    ) -> RegionalComparison:
        key = resolve_metric(variable)
        filters = AnalyticsFilters(
            specialty=specialty,
            provider_type=provider_type,
            survey_source=survey_source,
            year=year,
        )
        rows = AggregationService(self.db).get_aggregated_rows(filters)
        data = calculate_regional_data(rows, key, regions)
        logger.info(f"Regional comparison of {key} over {len(rows)} rows")
        return RegionalComparison(
            variable=key,
            regional_data=data,
            summary=calculate_regional_summary(data),
        )
