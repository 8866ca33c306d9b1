"""
Benchmark report generation.

Rows are filtered by the report configuration and grouped by specialty,
region, provider type, source and year. Blending across sources drops the
source from the key; blending across years drops the year.
"""
import logging
from collections import defaultdict
from datetime import datetime
from typing import Dict, List, Optional
from zoneinfo import ZoneInfo

from sqlalchemy.orm import Session

from app.schemas.analytics import AggregatedRow
from app.schemas.report import ReportConfig, ReportData, ReportMetadata, ReportRow
from app.services.aggregation_service import AggregationService
from app.services.blending_service import blend_rows
from app.services.constants import BLEND_SOURCE_LABEL, PERCENTILES
from app.services.normalization_service import fuzzy_name, resolve_metric

logger = logging.getLogger(__name__)

def _in(value: str, allowed: List[str]) -> bool:
    if not allowed:
        return True
    return value.strip().lower() in {a.strip().lower() for a in allowed}

def _matches(row: AggregatedRow, config: ReportConfig, variable: str) -> bool:
    if config.specialties and fuzzy_name(row.standardized_name) not in {fuzzy_name(s) for s in config.specialties}:
        return False
    metrics = row.variables.get(variable)
    return (
        metrics is not None
        and metrics.p50 > 0
        and _in(row.provider_type, config.provider_types)
        and _in(row.region, config.regions)
        and _in(row.survey_source, config.survey_sources)
        and _in(row.year, config.years)
    )

def _value(value: float, percentile: str, selected: List[str]) -> Optional[float]:
    if percentile not in selected or not value or value <= 0:
        return None
    return round(value, 2)

def _year_label(years: List[str]) -> str:
    distinct = sorted(set(years))
    return distinct[0] if len(distinct) == 1 else f"{distinct[0]}-{distinct[-1]}"

def generate_report(rows: List[AggregatedRow], config: ReportConfig) -> ReportData:
    variable = resolve_metric(config.metric)
    selected = list(config.percentiles)
    filtered = [row for row in rows if _matches(row, config, variable)]

    blend_years = config.blend_years and len({row.year for row in filtered}) >= 2
    method = config.blending_method
    if blend_years and method == "none":
        method = "weighted"
    drop_source = config.enable_blending and method != "none"

    groups: Dict[tuple, List[AggregatedRow]] = defaultdict(list)
    for row in filtered:
        key = (
            row.standardized_name,
            row.region,
            row.provider_type,
            None if drop_source else row.survey_source,
            None if blend_years else row.year,
        )
        groups[key].append(row)

    report_rows = []
    for members in groups.values():
        if (drop_source or blend_years) and len(members) > 1:
            blended = blend_rows(members, method, variable, selected)
            if blended is None:
                continue
            sources = {m.survey_source for m in members}
            report_rows.append(ReportRow(
                specialty=members[0].standardized_name,
                region=members[0].region,
                provider_type=members[0].provider_type,
                survey_source=BLEND_SOURCE_LABEL if len(sources) > 1 else sources.pop(),
                year=_year_label([m.year for m in members]),
                n_orgs=blended.n_orgs,
                n_incumbents=blended.n_incumbents,
                is_blended=True,
                blend_method=method,
                blend_breakdown=blended.breakdown,
                **{p: _value(getattr(blended, p, 0.0), p, selected) for p in PERCENTILES},
            ))
            continue
        for row in members:
            metrics = row.variables[variable]
            report_rows.append(ReportRow(
                specialty=row.standardized_name,
                region=row.region,
                provider_type=row.provider_type,
                survey_source=row.survey_source,
                year=row.year,
                n_orgs=metrics.n_orgs,
                n_incumbents=metrics.n_incumbents,
                **{p: _value(getattr(metrics, p), p, selected) for p in PERCENTILES},
            ))

    report_rows.sort(key=lambda r: (r.specialty, r.region, r.provider_type, r.survey_source, r.year))
    blended_count = sum(1 for r in report_rows if r.is_blended)
    logger.info(f"Generated {variable} report with {len(report_rows)} rows ({blended_count} blended)")
    return ReportData(
        config=config,
        rows=report_rows,
        metadata=ReportMetadata(
            generated_at=datetime.now(ZoneInfo("UTC")),
            variable=variable,
            total_rows=len(report_rows),
            blended_rows=blended_count,
            unblended_rows=len(report_rows) - blended_count,
        ),
    )

class ReportService:
    def __init__(self, db: Session):
        self.db = db

    def generate(self, config: ReportConfig) -> ReportData:
        rows = AggregationService(self.db).get_aggregated_rows()
        return generate_report(rows, config)
