import math
import logging
from collections import defaultdict
from typing import Dict, Iterable, List, Optional

from sqlalchemy.orm import Session, selectinload

from app.core.config import settings
from app.core.exceptions import ValidationError
from app.models.mapping import Mapping
from app.models.survey import Survey
from app.schemas.analytics import (
    AggregatedRow,
    AnalyticsFilters,
    FilterOptions,
    NormalizedRecord,
    SpecialtySummary,
    VariableMetrics,
)
from app.services.blending_service import calculate_summary
from app.services.constants import ALL_SENTINELS
from app.services.normalization_service import (
    MappingIndex,
    fuzzy_name,
    normalize_survey,
    normalize_variable_name,
)

logger = logging.getLogger(__name__)

def percentile_of(values: Iterable[Optional[float]], p: float) -> float:
    """Floor-index percentile over the positive values; 0.0 when there are none."""
    positives = sorted(v for v in values if v is not None and v > 0)
    if not positives:
        return 0.0
    index = min(int(math.floor(p / 100 * len(positives))), len(positives) - 1)
    return positives[index]

def _metrics_for(records: List[NormalizedRecord]) -> VariableMetrics:
    with_data = [r for r in records if r.p50 is not None and r.p50 > 0]
    return VariableMetrics(
        p25=percentile_of((r.p25 for r in records), 25),
        p50=percentile_of((r.p50 for r in records), 50),
        p75=percentile_of((r.p75 for r in records), 75),
        p90=percentile_of((r.p90 for r in records), 90),
        n_orgs=sum(r.n_orgs for r in with_data),
        n_incumbents=sum(r.n_incumbents for r in with_data),
    )

def aggregate_records(records: Iterable[NormalizedRecord]) -> List[AggregatedRow]:
    """
    Group normalized records by (specialty, region, source, provider type, year).

    Each group holds one VariableMetrics per variable. Output is sorted by key
    so the result does not depend on the order of the input records.
    """
    groups: Dict[tuple, Dict[str, List[NormalizedRecord]]] = defaultdict(lambda: defaultdict(list))
    for record in records:
        key = (record.specialty, record.region, record.survey_source, record.provider_type, record.year)
        groups[key][record.variable].append(record)

    rows = []
    for key in sorted(groups):
        by_variable = groups[key]
        specialty, region, source, provider_type, year = key
        rows.append(
            AggregatedRow(
                standardized_name=specialty,
                region=region,
                survey_source=source,
                provider_type=provider_type,
                year=year,
                variables={name: _metrics_for(by_variable[name]) for name in sorted(by_variable)},
                record_count=sum(len(items) for items in by_variable.values()),
            )
        )
    return rows

def _active(value: Optional[str]) -> bool:
    return bool(value and value.strip() and value.strip().lower() not in ALL_SENTINELS)

def _same(left: str, right: str) -> bool:
    return str(left).strip().lower() == str(right).strip().lower()

def selected_variables(variables: List[str], limit: Optional[int] = None) -> List[str]:
    limit = settings.MAX_SELECTED_VARIABLES if limit is None else limit
    keys = []
    for name in variables:
        key = normalize_variable_name(name)
        if key and key not in keys:
            keys.append(key)
    if len(keys) > limit:
        raise ValidationError(f"At most {limit} variables can be selected, got {len(keys)}")
    return keys

def filter_rows(rows: List[AggregatedRow], filters: Optional[AnalyticsFilters]) -> List[AggregatedRow]:
    """
    Apply the analytics filters to aggregated rows.

    Empty values and "All ..." sentinels disable a filter. A variable selection
    keeps only the selected variables and drops rows left without any.
    """
    if filters is None:
        return list(rows)

    variables = selected_variables(filters.variables)
    result = []
    for row in rows:
        if _active(filters.specialty) and fuzzy_name(row.standardized_name) != fuzzy_name(filters.specialty):
            continue
        if _active(filters.survey_source) and not _same(row.survey_source, filters.survey_source):
            continue
        if _active(filters.region) and not _same(row.region, filters.region):
            continue
        if _active(filters.provider_type) and not _same(row.provider_type, filters.provider_type):
            continue
        if _active(filters.year) and not _same(row.year, filters.year):
            continue
        if variables:
            kept = {name: row.variables[name] for name in variables if name in row.variables}
            if not kept:
                continue
            row = row.model_copy(update={"variables": kept})
        result.append(row)
    return result

def available_filter_options(rows: Iterable[AggregatedRow]) -> FilterOptions:
    rows = list(rows)
    return FilterOptions(
        specialties=sorted({r.standardized_name for r in rows}),
        survey_sources=sorted({r.survey_source for r in rows}),
        regions=sorted({r.region for r in rows}),
        provider_types=sorted({r.provider_type for r in rows}),
        years=sorted({r.year for r in rows}),
        variables=sorted({name for r in rows for name in r.variables}),
    )

class AggregationService:
    def __init__(self, db: Session):
        self.db = db

    def load_index(self) -> MappingIndex:
        mappings = self.db.query(Mapping).options(selectinload(Mapping.sources)).all()
        return MappingIndex.from_mappings(mappings)

    def load_records(self, survey_ids: Optional[List[int]] = None) -> List[NormalizedRecord]:
        """
        Normalize the rows of every stored survey, or of the given surveys
        """
        query = self.db.query(Survey).options(selectinload(Survey.rows))
        if survey_ids is not None:
            query = query.filter(Survey.id.in_(survey_ids))
        surveys = query.order_by(Survey.id).all()
        index = self.load_index()

        records = []
        for survey in surveys:
            records.extend(normalize_survey(survey, index))
        logger.info(f"Normalized {len(records)} records from {len(surveys)} surveys")
        return records

    def get_aggregated_rows(self, filters: Optional[AnalyticsFilters] = None) -> List[AggregatedRow]:
        rows = aggregate_records(self.load_records())
        filtered = filter_rows(rows, filters)
        logger.info(f"Aggregated {len(rows)} groups, {len(filtered)} after filtering")
        return filtered

    def get_filter_options(self) -> FilterOptions:
        return available_filter_options(self.get_aggregated_rows())

    def get_summary(self, filters: Optional[AnalyticsFilters] = None) -> List[SpecialtySummary]:
        """
        Simple and incumbent-weighted summaries per standardized specialty
        """
        rows = self.get_aggregated_rows(filters)
        variables = selected_variables(filters.variables) if filters else []
        by_specialty: Dict[str, List[AggregatedRow]] = defaultdict(list)
        for row in rows:
            by_specialty[row.standardized_name].append(row)

        summaries = []
        for specialty in sorted(by_specialty):
            group = by_specialty[specialty]
            summary = calculate_summary(group, variables or None)
            summaries.append(
                SpecialtySummary(
                    standardized_name=specialty,
                    row_count=len(group),
                    simple=summary.simple,
                    weighted=summary.weighted,
                )
            )
        return summaries
