import re
from typing import Dict, Iterable, List

from app.schemas.survey import FormatDetectionResult
from app.services.constants import (
    COLUMN_ALIASES,
    LONG_REQUIRED_COLUMNS,
    OPTIONAL_COLUMNS,
    PERCENTILES,
    WIDE_COLUMN_PATTERN,
)

_WIDE_RE = re.compile(WIDE_COLUMN_PATTERN, re.IGNORECASE)
_ORDINALS = {"25th": "p25", "50th": "p50", "75th": "p75", "90th": "p90"}

def _clean(header) -> str:
    return str(header).strip().lower()

def get_column_mapping(headers: Iterable[str]) -> Dict[str, str]:
    """
    Map each canonical field to the first header that spells one of its aliases.
    """
    headers = list(headers)
    cleaned = [_clean(h) for h in headers]
    mapping = {}
    for field, aliases in COLUMN_ALIASES.items():
        for header, lower in zip(headers, cleaned):
            if lower in aliases:
                mapping[field] = header
                break
    return mapping

def find_wide_families(headers: Iterable[str]) -> Dict[str, Dict[str, str]]:
    """
    Group `<base>_pNN` headers by base name.

    Returns {base: {"p25": header, ...}} with bases lower-cased.
    """
    families: Dict[str, Dict[str, str]] = {}
    for header in headers:
        match = _WIDE_RE.match(_clean(header))
        if not match:
            continue
        base, suffix = match.group(1), match.group(2).lower()
        percentile = _ORDINALS.get(suffix, suffix)
        families.setdefault(base, {})[percentile] = header
    return families

def detect_format(headers: List[str]) -> FormatDetectionResult:
    """
    Decide whether a header row describes a LONG or a WIDE survey file.

    LONG files carry one variable per row and need the specialty, variable and
    four percentile columns. WIDE files carry one entity per row with a column
    family per variable, e.g. tcc_p25 ... tcc_p90.
    """
    headers = [str(h) for h in headers]
    mapping = get_column_mapping(headers)
    families = find_wide_families(headers)

    found = [col for col in LONG_REQUIRED_COLUMNS if col in mapping]
    missing = [col for col in LONG_REQUIRED_COLUMNS if col not in mapping]
    suggestions: List[str] = []

    if "variable" in mapping:
        fmt = "long" if not missing else None
        confidence = round(len(found) / len(LONG_REQUIRED_COLUMNS) * 100)
        detected_variables: List[str] = []
        if missing:
            suggestions.append(f"Add missing columns: {', '.join(missing)}")
    elif "specialty" in mapping and families:
        fmt = "wide"
        complete = any(len(cols) == len(PERCENTILES) for cols in families.values())
        confidence = 100 if complete else 70
        missing = []
        detected_variables = sorted(families)
        suggestions.append(
            "Wide format detected: one column per variable percentile (e.g. tcc_p25, tcc_p50)"
        )
        if not complete:
            suggestions.append("Some variables are missing percentile columns; absent values are treated as no data")
    else:
        fmt = None
        confidence = round(len(found) / len(LONG_REQUIRED_COLUMNS) * 100)
        detected_variables = sorted(families)
        suggestions.append(f"Add missing columns: {', '.join(missing)}")
        if "specialty" not in mapping:
            suggestions.append("A specialty column is required in both long and wide layouts")
        else:
            suggestions.append("Or provide wide columns such as tcc_p25, tcc_p50, tcc_p75, tcc_p90")

    if not any(col in mapping for col in OPTIONAL_COLUMNS):
        suggestions.append(
            "Consider adding optional columns for better data quality: "
            + ", ".join(OPTIONAL_COLUMNS)
        )

    return FormatDetectionResult(
        format=fmt,
        confidence=confidence,
        detected_columns=headers,
        missing_required=missing,
        detected_variables=detected_variables,
        suggestions=suggestions,
    )
