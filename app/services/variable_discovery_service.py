import re
import time
import logging
from typing import Dict, List, Optional

from sqlalchemy.orm import Session, selectinload

from app.core.config import settings
from app.models.mapping import Mapping
from app.models.survey import Survey, SurveyRow
from app.schemas.variable import DiscoveredVariable, VariableDiscoveryStats
from app.services.constants import (
    CATEGORY_ORDER,
    DATA_CATEGORIES,
    DISPLAY_ABBREVIATIONS,
    VARIABLE_DISPLAY_NAMES,
)
from app.services.format_detection_service import find_wide_families, get_column_mapping
from app.services.normalization_service import (
    MappingIndex,
    collapse_whitespace,
    normalize_variable,
    normalize_variable_name,
    parse_number,
    rename_columns,
)

logger = logging.getLogger(__name__)

_ON_CALL = re.compile(r"on.?call")
_COMPENSATION = re.compile(r"compensation|salary|tcc|cash|bonus|pay|base|on.?call|oncall")
_PRODUCTIVITY = re.compile(r"rvu|units|volume|encounters|panel|visits|asa")

def detect_variable_category(name: str) -> str:
    """Classify a variable as ratio, compensation, productivity or other."""
    lower = str(name).lower().replace("_", " ")
    if "per " in lower or "/" in lower or ("rate" in lower and not _ON_CALL.search(lower)):
        return "ratio"
    if _COMPENSATION.search(lower):
        return "compensation"
    if _PRODUCTIVITY.search(lower):
        return "productivity"
    return "other"

def format_variable_display_name(name: str) -> str:
    key = normalize_variable_name(name)
    if key in VARIABLE_DISPLAY_NAMES:
        return VARIABLE_DISPLAY_NAMES[key]
    words = [w for w in key.split("_") if w]
    formatted = [DISPLAY_ABBREVIATIONS.get(w, w.capitalize()) for w in words]
    if formatted:
        formatted[0] = formatted[0][:1].upper() + formatted[0][1:]
    return " ".join(formatted)

def normalize_data_category(value: str) -> str:
    """Accept display labels ("Call Pay") as well as internal codes ("CALL_PAY")."""
    cleaned = collapse_whitespace(value)
    return DATA_CATEGORIES.get(cleaned.lower(), cleaned.upper())

class VariableDiscoveryService:
    """
    Finds the variables present in stored surveys.

    Unfiltered results are kept in a process-wide TTL cache that survey and
    mapping changes clear.
    """
    _cache: Optional[List[DiscoveredVariable]] = None
    _cache_timestamp: float = 0.0

    def __init__(self, db: Session):
        self.db = db

    @classmethod
    def clear_cache(cls):
        cls._cache = None
        cls._cache_timestamp = 0.0

    def _cache_valid(self) -> bool:
        age = time.monotonic() - self._cache_timestamp
        return self._cache is not None and age < settings.VARIABLE_CACHE_TTL_SECONDS

    def _surveys(self, data_category: Optional[str]) -> List[Survey]:
        surveys = self.db.query(Survey).order_by(Survey.id).all()
        if not data_category:
            return surveys
        category = normalize_data_category(data_category)
        return [
            s for s in surveys
            if s.data_category == category
            or (category == "CALL_PAY" and s.provider_type == "CALL" and not s.data_category)
        ]

    def _sample_rows(self, survey: Survey) -> List[dict]:
        rows = (
            self.db.query(SurveyRow)
            .filter(SurveyRow.survey_id == survey.id)
            .order_by(SurveyRow.row_index)
            .limit(settings.DISCOVERY_SAMPLE_SIZE)
            .all()
        )
        return [row.data or {} for row in rows]

    def _merge(self, found: Dict[str, DiscoveredVariable], variable: DiscoveredVariable):
        existing = found.get(variable.normalized_name)
        if existing is None:
            found[variable.normalized_name] = variable
            return
        total = existing.record_count + variable.record_count
        if total:
            existing.data_quality = round(
                (existing.data_quality * existing.record_count + variable.data_quality * variable.record_count) / total,
                4,
            )
        existing.record_count = total
        for source in variable.available_sources:
            if source not in existing.available_sources:
                existing.available_sources.append(source)

    def _scan_survey(self, survey: Survey, found: Dict[str, DiscoveredVariable], index: MappingIndex):
        source = survey.source or survey.name
        rows = [rename_columns(row, source, index) for row in self._sample_rows(survey)]
        if not rows:
            return
        columns = get_column_mapping(rows[0].keys())

        if "variable" in columns:
            variable_col = columns["variable"]
            p50_col = columns.get("p50")
            by_name: Dict[str, List[dict]] = {}
            for row in rows:
                raw = collapse_whitespace(row.get(variable_col))
                if raw:
                    by_name.setdefault(raw, []).append(row)
            for raw, members in by_name.items():
                normalized = normalize_variable(raw, source, index)
                with_data = [r for r in members if (parse_number(r.get(p50_col)) or 0) > 0] if p50_col else []
                self._merge(found, DiscoveredVariable(
                    name=raw,
                    normalized_name=normalized,
                    category=detect_variable_category(normalized),
                    available_sources=[source],
                    record_count=len(members),
                    data_quality=round(len(with_data) / len(members), 4),
                    format="long",
                ))
            return

        for base, headers in find_wide_families(rows[0].keys()).items():
            normalized = normalize_variable(base, source, index)
            p50_col = headers.get("p50")
            with_data = [r for r in rows if p50_col and (parse_number(r.get(p50_col)) or 0) > 0]
            self._merge(found, DiscoveredVariable(
                name=format_variable_display_name(normalized),
                normalized_name=normalized,
                category=detect_variable_category(normalized),
                available_sources=[source],
                record_count=len(rows),
                data_quality=round(len(with_data) / len(rows), 4),
                format="wide",
            ))

    def discover(self, data_category: Optional[str] = None) -> List[DiscoveredVariable]:
        if not data_category and self._cache_valid():
            return self._cache

        surveys = self._surveys(data_category)
        mappings = self.db.query(Mapping).options(selectinload(Mapping.sources)).all()
        index = MappingIndex.from_mappings(mappings)
        found: Dict[str, DiscoveredVariable] = {}
        for survey in surveys:
            self._scan_survey(survey, found, index)

        variables = sorted(
            found.values(),
            key=lambda v: (CATEGORY_ORDER.get(v.category, len(CATEGORY_ORDER)), v.normalized_name),
        )
        logger.info(f"Discovered {len(variables)} variables in {len(surveys)} surveys")

        if not data_category:
            type(self)._cache = variables
            type(self)._cache_timestamp = time.monotonic()
        return variables

    def refresh(self) -> List[DiscoveredVariable]:
        self.clear_cache()
        return self.discover()

    def get_variables_by_category(self, data_category: Optional[str] = None) -> Dict[str, List[DiscoveredVariable]]:
        grouped: Dict[str, List[DiscoveredVariable]] = {category: [] for category in CATEGORY_ORDER}
        for variable in self.discover(data_category):
            grouped[variable.category].append(variable)
        return grouped

    def get_discovery_stats(self, data_category: Optional[str] = None) -> VariableDiscoveryStats:
        start = time.perf_counter()
        variables = self.discover(data_category)
        elapsed = (time.perf_counter() - start) * 1000
        surveys = self._surveys(data_category)
        return VariableDiscoveryStats(
            variables=variables,
            total_surveys=len(surveys),
            total_records=sum(v.record_count for v in variables),
            discovery_time_ms=round(elapsed, 2),
        )
