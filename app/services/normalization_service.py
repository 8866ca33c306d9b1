"""
Turns raw survey rows into normalized records.

Everything here is a pure function of the raw value, a MappingIndex snapshot
and the survey metadata. Nothing touches the database.
"""
import math
import numbers
import re
import logging
from typing import Any, Dict, Iterable, List, Optional, Tuple

from app.schemas.analytics import NormalizedRecord
from app.services.constants import (
    METRIC_KEYS,
    ON_CALL_KEYWORDS,
    PERCENTILES,
    PROVIDER_TYPE_PHRASES,
    PROVIDER_TYPE_TOKENS,
    REGION_PHRASES,
    REGION_TOKENS,
    SUPPRESSED_VALUES,
    VARIABLE_ALIASES,
)
from app.services.format_detection_service import find_wide_families, get_column_mapping

logger = logging.getLogger(__name__)

def collapse_whitespace(value: Any) -> str:
    if value is None:
        return ""
    return " ".join(str(value).split())

def mapping_key(value: Any) -> str:
    """Key used to store and look up raw values: case-folded, whitespace collapsed."""
    return collapse_whitespace(value).casefold()

def fuzzy_name(value: Any) -> str:
    """Loose specialty comparison form: "Obstetrics and Gynecology" == "obstetrics  gynecology"."""
    text = f" {str(value or '').lower()} ".replace(" and ", " ")
    return collapse_whitespace(text)

def title_case(value: str) -> str:
    words = collapse_whitespace(value).split(" ")
    return " ".join(w[:1].upper() + w[1:].lower() for w in words if w)

def _tokens(value: str) -> List[str]:
    return re.findall(r"[a-z0-9]+", str(value).lower())

def _match_phrase(tokens: List[str], phrases) -> Optional[str]:
    padded = f" {' '.join(tokens)} "
    for phrase, label in phrases:
        if f" {phrase} " in padded:
            return label
    return None

def _match_token(tokens: List[str], table: Dict[str, str]) -> Optional[str]:
    for token in tokens:
        if token in table:
            return table[token]
    return None

class MappingIndex:
    """
    In-memory snapshot of the mapping tables.

    Entries are keyed by (kind, source key, raw key). A source-specific entry
    wins over a global one stored under the empty source key.
    """

    def __init__(self):
        self._entries: Dict[Tuple[str, str, str], str] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def add(self, kind: str, survey_source: Optional[str], raw_value: str, standardized_name: str):
        self._entries[(kind, mapping_key(survey_source), mapping_key(raw_value))] = standardized_name

    def lookup(self, kind: str, survey_source: Optional[str], raw: Any) -> Optional[str]:
        raw_key = mapping_key(raw)
        if not raw_key:
            return None
        source_key = mapping_key(survey_source)
        if source_key:
            hit = self._entries.get((kind, source_key, raw_key))
            if hit is not None:
                return hit
        return self._entries.get((kind, "", raw_key))

    def has(self, kind: str, survey_source: Optional[str], raw: Any) -> bool:
        return self.lookup(kind, survey_source, raw) is not None

    @classmethod
    def from_mappings(cls, mappings: Iterable) -> "MappingIndex":
        index = cls()
        for mapping in mappings:
            for source in mapping.sources:
                index.add(mapping.kind, source.survey_source, source.raw_value, mapping.standardized_name)
        return index

def normalize_specialty(raw: Any, survey_source: Optional[str], index: MappingIndex) -> str:
    hit = index.lookup("specialty", survey_source, raw)
    if hit:
        return hit
    cleaned = collapse_whitespace(raw)
    return title_case(cleaned) if cleaned else "Unknown"

def normalize_region(raw: Any, survey_source: Optional[str], index: MappingIndex) -> str:
    cleaned = collapse_whitespace(raw)
    if not cleaned:
        return "National"
    hit = index.lookup("region", survey_source, cleaned)
    if hit:
        return hit
    tokens = _tokens(cleaned)
    return (
        _match_phrase(tokens, REGION_PHRASES)
        or _match_token(tokens, REGION_TOKENS)
        or title_case(cleaned)
    )

def normalize_provider_type(
    raw: Any,
    survey_source: Optional[str],
    index: MappingIndex,
    survey_provider_type: Optional[str] = None,
) -> str:
    cleaned = collapse_whitespace(raw)
    if not cleaned:
        if survey_provider_type:
            return normalize_provider_type(survey_provider_type, survey_source, index)
        return "Physician"
    hit = index.lookup("provider_type", survey_source, cleaned)
    if hit:
        return hit
    tokens = _tokens(cleaned)
    return (
        _match_phrase(tokens, PROVIDER_TYPE_PHRASES)
        or _match_token(tokens, PROVIDER_TYPE_TOKENS)
        or title_case(cleaned)
    )

def normalize_variable_name(raw: Any) -> str:
    """
    Reduce a free-text variable label to its standard key.

    "Total Cash Compensation ($)" -> "tcc", "TCC per wRVU" -> "tcc_per_work_rvu".
    Unknown labels come back lower-cased and underscore separated.
    """
    key = re.sub(r"[^a-z0-9]+", "_", str(raw or "").lower()).strip("_")
    if not key:
        return ""
    if key in VARIABLE_ALIASES:
        return VARIABLE_ALIASES[key]
    if re.search(r"(^|_)on_?call(_|$)", key) and any(word in key for word in ON_CALL_KEYWORDS):
        return "on_call_compensation"
    return key

def normalize_variable(raw: Any, survey_source: Optional[str], index: MappingIndex) -> str:
    return index.lookup("variable", survey_source, raw) or normalize_variable_name(raw)

def parse_number(value: Any) -> Optional[float]:
    """
    Parse a survey cell into a float.

    Currency symbols, thousands separators, percent signs and whitespace are
    stripped. Suppressed markers such as "***" or "n/a" give None.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, numbers.Real):
        number = float(value)
    else:
        text = str(value).strip()
        if text.lower() in SUPPRESSED_VALUES:
            return None
        try:
            number = float(re.sub(r"[$,%\s]", "", text))
        except ValueError:
            return None
    if math.isnan(number) or math.isinf(number):
        return None
    return number

def round_half_up(value: float) -> int:
    """Round halves upwards, so a mean count of 2.5 reports as 3."""
    return int(math.floor(value + 0.5))

def parse_count(value: Any) -> int:
    number = parse_number(value)
    return round_half_up(number) if number is not None and number > 0 else 0

def _year_of(value: Any, fallback: Any) -> str:
    number = parse_number(value)
    if number is not None:
        return str(int(number))
    text = collapse_whitespace(value)
    return text or collapse_whitespace(fallback)

def rename_columns(row: Dict[str, Any], survey_source: Optional[str], index: MappingIndex) -> Dict[str, Any]:
    """Apply `column` mappings to a raw row so alias detection sees the mapped headers."""
    return {index.lookup("column", survey_source, key) or key: value for key, value in row.items()}

def extract_records(row: Dict[str, Any], survey, index: MappingIndex) -> List[NormalizedRecord]:
    """
    Convert one raw row payload into zero or more normalized records.

    A LONG row (it has a variable column) yields a single record. A WIDE row
    yields one record per `<base>_pNN` column family that carries data.
    """
    source = survey.source or survey.name
    renamed = rename_columns(row, source, index)

    columns = get_column_mapping(renamed.keys())

    def field(name: str) -> Any:
        column = columns.get(name)
        return renamed.get(column) if column is not None else None

    raw_specialty = collapse_whitespace(field("specialty"))
    base = dict(
        survey_id=getattr(survey, "id", None),
        specialty=normalize_specialty(raw_specialty, source, index),
        raw_specialty=raw_specialty,
        region=normalize_region(field("geographic_region"), source, index),
        provider_type=normalize_provider_type(
            field("provider_type"), source, index, survey.provider_type
        ),
        survey_source=source,
        year=_year_of(field("year"), survey.year),
    )

    if "variable" in columns:
        raw_variable = field("variable")
        variable = normalize_variable(raw_variable, source, index)
        if not variable:
            return []
        return [
            NormalizedRecord(
                **base,
                variable=variable,
                n_orgs=parse_count(field("n_orgs")),
                n_incumbents=parse_count(field("n_incumbents")),
                **{p: parse_number(field(p)) for p in PERCENTILES},
            )
        ]

    lower_keys = {str(k).strip().lower(): k for k in renamed}
    records = []
    for family, headers in sorted(find_wide_families(renamed.keys()).items()):
        values = {p: parse_number(renamed.get(headers[p])) if p in headers else None for p in PERCENTILES}
        if not any(v is not None and v > 0 for v in values.values()):
            continue
        orgs_key = lower_keys.get(f"{family}_n_orgs")
        incumbents_key = lower_keys.get(f"{family}_n_incumbents")
        records.append(
            NormalizedRecord(
                **base,
                variable=normalize_variable(family, source, index),
                n_orgs=parse_count(renamed[orgs_key] if orgs_key else field("n_orgs")),
                n_incumbents=parse_count(
                    renamed[incumbents_key] if incumbents_key else field("n_incumbents")
                ),
                **values,
            )
        )
    return records

def normalize_survey(survey, index: MappingIndex, rows: Optional[Iterable] = None) -> List[NormalizedRecord]:
    """Normalize every row of a survey, or the given subset of its rows."""
    records = []
    skipped = 0
    for row in (rows if rows is not None else survey.rows):
        extracted = extract_records(row.data or {}, survey, index)
        if not extracted:
            skipped += 1
        records.extend(extracted)
    if skipped:
        logger.warning(f"Survey {survey.id}: {skipped} rows produced no records")
    return records

def resolve_metric(metric: str) -> str:
    """Report metric shorthand (tcc, wrvu, cf) or any variable label -> variable key."""
    key = normalize_variable_name(metric)
    return METRIC_KEYS.get(key, key)
