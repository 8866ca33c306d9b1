"""
Blending of aggregated rows across sources, years and specialties.

Weights are always re-normalized over the inputs that actually carry a value
for a percentile, so a missing value never drags a blend towards zero.
"""
import logging
from collections import defaultdict
from typing import Dict, Iterable, List, Optional, Sequence

from app.core.exceptions import BlendingConfigError
from app.schemas.analytics import AggregatedRow, SummaryCalculation, VariableMetrics
from app.schemas.blending import (
    BlendBreakdownItem,
    BlendedResult,
    BlendValidation,
    MultiYearBlendRequest,
    MultiYearBlendResult,
    SpecialtyBlendItem,
    SpecialtyBlendResult,
    YearBreakdown,
)
from app.services.constants import BLEND_SOURCE_LABEL, PERCENTILES
from app.services.normalization_service import fuzzy_name, round_half_up

logger = logging.getLogger(__name__)

def _weighted_mean(pairs: Iterable[tuple]) -> float:
    """Mean of (value, weight) pairs, ignoring values that are not positive."""
    total = 0.0
    weight_sum = 0.0
    for value, weight in pairs:
        if value is not None and value > 0 and weight > 0:
            total += value * weight
            weight_sum += weight
    return total / weight_sum if weight_sum else 0.0

def _simple_metrics(metrics: List[VariableMetrics]) -> VariableMetrics:
    result = {p: _weighted_mean((getattr(m, p), 1.0) for m in metrics) for p in PERCENTILES}
    return VariableMetrics(
        **result,
        n_orgs=round_half_up(sum(m.n_orgs for m in metrics) / len(metrics)),
        n_incumbents=round_half_up(sum(m.n_incumbents for m in metrics) / len(metrics)),
    )

def _weighted_metrics(metrics: List[VariableMetrics]) -> VariableMetrics:
    if sum(m.n_incumbents for m in metrics) == 0:
        return _simple_metrics(metrics)
    result = {p: _weighted_mean((getattr(m, p), m.n_incumbents) for m in metrics) for p in PERCENTILES}
    return VariableMetrics(
        **result,
        n_orgs=sum(m.n_orgs for m in metrics),
        n_incumbents=sum(m.n_incumbents for m in metrics),
    )

def _variables_of(rows: Iterable[AggregatedRow]) -> List[str]:
    return sorted({name for row in rows for name in row.variables})

def calculate_summary(rows: List[AggregatedRow], variables: Optional[List[str]] = None) -> SummaryCalculation:
    """
    Simple and incumbent-weighted summary per variable.

    Only rows whose variable has a positive p50 take part. A variable without
    such rows summarizes to None.
    """
    variables = variables or _variables_of(rows)
    summary = SummaryCalculation()
    for name in variables:
        metrics = [
            row.variables[name] for row in rows
            if name in row.variables and row.variables[name].p50 > 0
        ]
        if not metrics:
            summary.simple[name] = None
            summary.weighted[name] = None
            continue
        summary.simple[name] = _simple_metrics(metrics)
        summary.weighted[name] = _weighted_metrics(metrics)
    return summary

def blend_rows(
    rows: List[AggregatedRow],
    method: str,
    variable: str,
    percentiles: Sequence[str] = PERCENTILES,
) -> Optional[BlendedResult]:
    """
    Blend one report group across its source rows.

    `weighted` uses incumbent counts (equal weights when there are none),
    `simple` uses equal weights and `none` disables blending.
    """
    if method == "none":
        return None
    candidates = [
        row for row in rows
        if variable in row.variables and row.variables[variable].p50 > 0
    ]
    if not candidates:
        return None

    raw_weights = [1.0] * len(candidates)
    if method == "weighted":
        incumbents = [float(row.variables[variable].n_incumbents) for row in candidates]
        if sum(incumbents) > 0:
            raw_weights = incumbents
    total = sum(raw_weights)
    weights = [w / total for w in raw_weights]

    metrics = [row.variables[variable] for row in candidates]
    blended = {
        p: _weighted_mean((getattr(m, p), w) for m, w in zip(metrics, weights))
        for p in percentiles
    }
    breakdown = [
        BlendBreakdownItem(
            year=row.year,
            survey_source=row.survey_source,
            n_orgs=m.n_orgs,
            n_incumbents=m.n_incumbents,
            weight=round(w, 4),
            **{p: getattr(m, p) for p in PERCENTILES},
        )
        for row, m, w in zip(candidates, metrics, weights)
    ]
    return BlendedResult(
        specialty=candidates[0].standardized_name,
        n_orgs=sum(m.n_orgs for m in metrics),
        n_incumbents=sum(m.n_incumbents for m in metrics),
        source_rows=len(candidates),
        breakdown=breakdown,
        **blended,
    )

def _sample_size(row: AggregatedRow) -> int:
    if "tcc" in row.variables:
        return row.variables["tcc"].n_incumbents
    return max((m.n_incumbents for m in row.variables.values()), default=0)

def _label(values: Iterable[str], mixed: str) -> str:
    distinct = sorted(set(values))
    return distinct[0] if len(distinct) == 1 else mixed

def _validate_multi_year(config: MultiYearBlendRequest):
    if not config.years:
        raise BlendingConfigError("At least one year is required for blending")
    seen = [str(y.year) for y in config.years]
    duplicates = sorted({year for year in seen if seen.count(year) > 1})
    if duplicates:
        raise BlendingConfigError(f"Duplicate years: {', '.join(duplicates)}")
    if config.method == "percentage":
        total = sum(y.percentage for y in config.years)
        if abs(total - 100) > 0.1:
            raise BlendingConfigError(f"Total percentage must equal 100%, got {total:g}%")

def calculate_multi_year_blend(rows: List[AggregatedRow], config: MultiYearBlendRequest) -> MultiYearBlendResult:
    """
    Blend specialties across survey years.

    Stage one summarizes each year per specialty with incumbent weighting.
    Stage two blends each specialty across the years it appears in, using the
    configured percentage, the year's sample size, or equal weights.
    """
    _validate_multi_year(config)
    years = [str(y.year) for y in config.years]
    percentages = {str(y.year): y.percentage for y in config.years}

    year_rows: Dict[str, List[AggregatedRow]] = {
        year: [row for row in rows if row.year == year] for year in years
    }
    breakdown: Dict[str, YearBreakdown] = {}
    summaries: Dict[str, Dict[str, Dict[str, VariableMetrics]]] = {}
    for year in years:
        members = year_rows[year]
        by_specialty: Dict[str, List[AggregatedRow]] = defaultdict(list)
        for row in members:
            by_specialty[row.standardized_name].append(row)
        summaries[year] = {}
        for specialty, group in by_specialty.items():
            weighted = calculate_summary(group).weighted
            summaries[year][specialty] = {k: v for k, v in weighted.items() if v is not None}
        breakdown[year] = YearBreakdown(
            sample_size=sum(_sample_size(row) for row in members),
            survey_count=len({row.survey_source for row in members}),
            specialty_count=len(by_specialty),
        )

    years_included = [year for year in years if year_rows[year]]
    total_sample = sum(breakdown[year].sample_size for year in years)

    def year_weight(year: str) -> float:
        if config.method == "percentage":
            return percentages[year]
        if config.method == "weighted":
            return float(breakdown[year].sample_size)
        return 1.0

    for year in years:
        if year not in years_included:
            continue
        if config.method == "percentage":
            contribution = percentages[year]
        elif config.method == "weighted":
            contribution = breakdown[year].sample_size / total_sample * 100 if total_sample else 0.0
        else:
            contribution = 100 / len(years_included)
        breakdown[year].contribution = round(contribution, 2)

    blended = []
    specialties = sorted({s for year in years_included for s in summaries[year]})
    for specialty in specialties:
        present = [year for year in years_included if specialty in summaries[year]]
        raw = {year: year_weight(year) for year in present}
        if sum(raw.values()) <= 0:
            raw = {year: 1.0 for year in present}
        total = sum(raw.values())
        weights = {year: w / total for year, w in raw.items()}

        variables = {}
        for name in sorted({n for year in present for n in summaries[year][specialty]}):
            contributing = [
                (summaries[year][specialty][name], weights[year])
                for year in present if name in summaries[year][specialty]
            ]
            share = sum(w for _, w in contributing)
            if share <= 0:
                continue
            variables[name] = VariableMetrics(
                **{p: _weighted_mean((getattr(m, p), w) for m, w in contributing) for p in PERCENTILES},
                n_orgs=round_half_up(sum(m.n_orgs * w for m, w in contributing) / share),
                n_incumbents=round_half_up(sum(m.n_incumbents * w for m, w in contributing) / share),
            )

        members = [row for year in present for row in year_rows[year] if row.standardized_name == specialty]
        blended.append(
            AggregatedRow(
                standardized_name=specialty,
                region=_label((r.region for r in members), "All Regions"),
                survey_source=_label((r.survey_source for r in members), BLEND_SOURCE_LABEL),
                provider_type=_label((r.provider_type for r in members), "All Types"),
                year=present[0] if len(present) == 1 else f"{min(present)}-{max(present)}",
                variables=variables,
                record_count=sum(r.record_count for r in members),
            )
        )

    k = len(years_included)
    confidence = 0.0
    if k:
        confidence = min(total_sample / 1000, 1) * (1 - (k - 1) * 0.05)
    confidence = round(max(0.0, min(confidence, 1.0)), 2)

    warnings = []
    if confidence < 0.5:
        warnings.append("Low confidence: Limited sample size across years")
    for year in years:
        if year not in years_included:
            warnings.append(f"No data available for year {year}")
    sizes = [breakdown[year].sample_size for year in years_included]
    if len(sizes) > 1 and max(sizes) > 0 and min(sizes) / max(sizes) < 0.3:
        warnings.append("Imbalanced sample sizes across years - consider using weighted blending")

    logger.info(f"Blended {len(blended)} specialties across {k} years ({config.method})")
    return MultiYearBlendResult(
        blended_data=blended,
        year_breakdown=breakdown,
        confidence=confidence,
        quality_warnings=warnings,
        total_sample_size=total_sample,
        total_survey_count=sum(breakdown[year].survey_count for year in years),
        years_included=years_included,
        blending_method=config.method,
    )

def validate_blend(items: List[SpecialtyBlendItem], available: Optional[Iterable[str]] = None) -> BlendValidation:
    errors = []
    warnings = []
    if not items:
        errors.append("At least one specialty must be selected for blending")

    seen = set()
    duplicates = []
    for item in items:
        key = fuzzy_name(item.specialty)
        if key in seen and item.specialty not in duplicates:
            duplicates.append(item.specialty)
        seen.add(key)
    if duplicates:
        errors.append(f"Duplicate specialties: {', '.join(duplicates)}")

    total = sum(item.weight for item in items)
    if any(item.weight < 0 for item in items):
        errors.append("Weights cannot be negative")
    if items and total == 0:
        errors.append("Total weight cannot be zero")
    if items and total != 0 and abs(total - 100) > 0.01:
        warnings.append(f"Total weight is {total:g}%, weights will be normalized to 100%")
    zero = [item.specialty for item in items if item.weight == 0]
    if zero:
        warnings.append(f"Specialties with zero weight will be ignored: {', '.join(zero)}")

    missing = []
    if available is not None:
        known = {fuzzy_name(name) for name in available}
        missing = [item.specialty for item in items if fuzzy_name(item.specialty) not in known]
        if missing:
            warnings.append(f"No data found for: {', '.join(missing)}")

    return BlendValidation(
        is_valid=not errors,
        errors=errors,
        warnings=warnings,
        total_weight=total,
        missing_specialties=missing,
        duplicate_specialties=duplicates,
    )

def normalize_weights(items: List[SpecialtyBlendItem]) -> List[SpecialtyBlendItem]:
    total = sum(item.weight for item in items)
    if total <= 0:
        return [item.model_copy() for item in items]
    return [
        SpecialtyBlendItem(specialty=item.specialty, weight=round(item.weight / total * 100, 2))
        for item in items
    ]

def calculate_specialty_blend(
    items: List[SpecialtyBlendItem],
    rows: List[AggregatedRow],
    variables: Optional[List[str]] = None,
) -> SpecialtyBlendResult:
    """
    Mix several specialties into one synthetic benchmark using user weights.
    """
    validation = validate_blend(items, (row.standardized_name for row in rows))
    if not validation.is_valid:
        raise BlendingConfigError("; ".join(validation.errors))

    normalized = normalize_weights([item for item in items if item.weight > 0])
    per_specialty: Dict[str, Dict[str, VariableMetrics]] = {}
    for item in normalized:
        group = [row for row in rows if fuzzy_name(row.standardized_name) == fuzzy_name(item.specialty)]
        if group:
            weighted = calculate_summary(group, variables).weighted
            per_specialty[item.specialty] = {k: v for k, v in weighted.items() if v is not None}

    names = variables or sorted({n for metrics in per_specialty.values() for n in metrics})
    blended = {}
    for name in names:
        contributing = [
            (per_specialty[item.specialty][name], item.weight)
            for item in normalized
            if item.specialty in per_specialty and name in per_specialty[item.specialty]
        ]
        if not contributing:
            continue
        blended[name] = VariableMetrics(
            **{p: _weighted_mean((getattr(m, p), w) for m, w in contributing) for p in PERCENTILES},
            n_orgs=round_half_up(sum(w / 100 * m.n_orgs for m, w in contributing)),
            n_incumbents=round_half_up(sum(w / 100 * m.n_incumbents for m, w in contributing)),
        )

    confidence = 0.0
    if per_specialty:
        sizes = [max((m.n_incumbents for m in metrics.values()), default=0) for metrics in per_specialty.values()]
        avg_n = sum(sizes) / len(sizes)
        confidence = round(min(avg_n / 1000, 1) * 0.7 + min(len(per_specialty) / 5, 1) * 0.3, 2)

    return SpecialtyBlendResult(
        validation=validation,
        items=normalized,
        variables=blended,
        confidence=confidence,
    )
