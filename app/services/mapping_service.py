import re
import logging
from collections import Counter
from typing import Dict, List, Optional, Tuple

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from app.core.exceptions import AppError, MappingConflictError, NotFoundError, ValidationError
from app.models.mapping import MAPPING_KINDS, Mapping, MappingSource
from app.models.survey import Survey
from app.schemas.mapping import (
    AutoMapResult,
    MappingCreate,
    MappingRead,
    MappingSourceCreate,
    MappingUpdate,
    SpecialtySuggestion,
    UnmappedValue,
)
from app.schemas.survey import CoverageStats, MappingCoverage
from app.services.constants import (
    MEDICAL_TERMS,
    SIMILARITY_THRESHOLD,
    SPECIALTY_STANDARD_NAMES,
    WIDE_COLUMN_PATTERN,
)
from app.services.format_detection_service import find_wide_families, get_column_mapping
from app.services.normalization_service import (
    MappingIndex,
    collapse_whitespace,
    mapping_key,
    rename_columns,
    title_case,
)
from app.services.variable_discovery_service import VariableDiscoveryService

logger = logging.getLogger(__name__)

# Raw field each mapping kind reads from a survey row
_KIND_FIELDS = {
    "specialty": "specialty",
    "region": "geographic_region",
    "provider_type": "provider_type",
    "variable": "variable",
}

def normalize_text(value: str) -> str:
    return " ".join(re.sub(r"[^a-z0-9]+", " ", str(value or "").lower()).split())

def calculate_similarity(left: str, right: str) -> float:
    """
    Similarity of two specialty names in [0, 1].

    Exact match scores 1.0 and containment 0.9. Otherwise the Jaccard index of
    words longer than two characters, plus 0.2 when a shared word is a
    medical term.
    """
    a, b = normalize_text(left), normalize_text(right)
    if not a or not b:
        return 0.0
    if a == b:
        return 1.0
    if a in b or b in a:
        return 0.9
    words_a = {w for w in a.split() if len(w) > 2}
    words_b = {w for w in b.split() if len(w) > 2}
    if not words_a or not words_b:
        return 0.0
    shared = words_a & words_b
    score = len(shared) / len(words_a | words_b)
    if shared & MEDICAL_TERMS:
        score += 0.2
    return min(score, 1.0)

def find_best_match(
    name: str, candidates: List[str], threshold: float = SIMILARITY_THRESHOLD
) -> Optional[Tuple[str, float]]:
    best = None
    best_score = 0.0
    for candidate in candidates:
        score = calculate_similarity(name, candidate)
        if score > best_score:
            best, best_score = candidate, score
    if best is None or best_score < threshold:
        return None
    return best, best_score

def standardize_specialty(name: str) -> str:
    return SPECIALTY_STANDARD_NAMES.get(normalize_text(name), title_case(name))

def collect_raw_values(survey: Survey, index: MappingIndex) -> Dict[str, Counter]:
    """
    Count the raw vocabulary of a survey per mapping kind.

    Column renames from the index are applied first, as normalization does.
    """
    source = survey.source or survey.name
    values: Dict[str, Counter] = {kind: Counter() for kind in MAPPING_KINDS}
    wide_re = re.compile(WIDE_COLUMN_PATTERN, re.IGNORECASE)
    for row in survey.rows:
        data = row.data or {}
        renamed = rename_columns(data, source, index)
        columns = get_column_mapping(renamed.keys())
        recognized = set(columns.values())
        for header in data:
            target = index.lookup("column", source, header) or header
            if target not in recognized and not wide_re.match(str(target).strip()):
                values["column"][collapse_whitespace(header)] += 1
        for kind, field in _KIND_FIELDS.items():
            column = columns.get(field)
            raw = collapse_whitespace(renamed.get(column)) if column is not None else ""
            if raw:
                values[kind][raw] += 1
        if "variable" not in columns:
            for base in find_wide_families(renamed.keys()):
                values["variable"][base] += 1
    return values

class MappingService:
    def __init__(self, db: Session):
        self.db = db

    @staticmethod
    def _check_kind(kind: str):
        if kind not in MAPPING_KINDS:
            raise ValidationError(f"Unknown mapping kind '{kind}', expected one of: {', '.join(MAPPING_KINDS)}")

    def load_index(self) -> MappingIndex:
        mappings = self.db.query(Mapping).options(selectinload(Mapping.sources)).all()
        return MappingIndex.from_mappings(mappings)

    def _commit(self, action: str):
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            raise MappingConflictError(f"Could not {action}: mapping already exists", e)
        except SQLAlchemyError as e:
            logger.error(f"Error trying to {action}: {e}")
            self.db.rollback()
            raise AppError(f"Could not {action}", e)
        VariableDiscoveryService.clear_cache()

    def list_mappings(self, kind: str) -> List[Mapping]:
        self._check_kind(kind)
        return (
            self.db.query(Mapping)
            .options(selectinload(Mapping.sources))
            .filter(Mapping.kind == kind)
            .order_by(Mapping.standardized_name)
            .all()
        )

    def get_mapping(self, kind: str, mapping_id: int) -> Mapping:
        self._check_kind(kind)
        mapping = self.db.query(Mapping).filter(Mapping.id == mapping_id, Mapping.kind == kind).first()
        if not mapping:
            raise NotFoundError(f"{kind} mapping {mapping_id} not found")
        return mapping

    def find_by_name(self, kind: str, standardized_name: str) -> Optional[Mapping]:
        target = mapping_key(standardized_name)
        for mapping in self.db.query(Mapping).filter(Mapping.kind == kind).all():
            if mapping_key(mapping.standardized_name) == target:
                return mapping
        return None

    def _ensure_source_free(self, kind: str, source: MappingSourceCreate, mapping_id: Optional[int] = None):
        query = self.db.query(MappingSource).filter(
            MappingSource.kind == kind,
            MappingSource.source_key == mapping_key(source.survey_source),
            MappingSource.raw_key == mapping_key(source.raw_value),
        )
        if mapping_id is not None:
            query = query.filter(MappingSource.mapping_id != mapping_id)
        existing = query.first()
        if existing:
            raise MappingConflictError(
                f"'{source.raw_value}' from {source.survey_source or 'all sources'} is already mapped "
                f"to '{existing.mapping.standardized_name}'"
            )

    def _new_source(self, kind: str, source: MappingSourceCreate) -> MappingSource:
        survey_source = collapse_whitespace(source.survey_source) or None
        return MappingSource(
            kind=kind,
            survey_source=survey_source,
            raw_value=collapse_whitespace(source.raw_value),
            source_key=mapping_key(survey_source),
            raw_key=mapping_key(source.raw_value),
        )

    def _unique_sources(self, sources: List[MappingSourceCreate]) -> List[MappingSourceCreate]:
        seen = set()
        unique = []
        for source in sources:
            key = (mapping_key(source.survey_source), mapping_key(source.raw_value))
            if key not in seen:
                seen.add(key)
                unique.append(source)
        return unique

    def create_mapping(self, kind: str, data: MappingCreate) -> Mapping:
        """
        Create a standardized name with its raw source values
        """
        self._check_kind(kind)
        name = collapse_whitespace(data.standardized_name)
        if self.find_by_name(kind, name):
            raise MappingConflictError(f"{kind} mapping '{name}' already exists")
        sources = self._unique_sources(data.sources)
        for source in sources:
            self._ensure_source_free(kind, source)

        mapping = Mapping(kind=kind, standardized_name=name, description=data.description)
        mapping.sources = [self._new_source(kind, source) for source in sources]
        self.db.add(mapping)
        self._commit(f"create {kind} mapping '{name}'")
        self.db.refresh(mapping)
        logger.info(f"Created {kind} mapping '{name}' with {len(sources)} sources")
        return mapping

    def update_mapping(self, kind: str, mapping_id: int, data: MappingUpdate) -> Mapping:
        """
        Replace the name, description and sources of a mapping
        """
        mapping = self.get_mapping(kind, mapping_id)
        name = collapse_whitespace(data.standardized_name)
        other = self.find_by_name(kind, name)
        if other and other.id != mapping.id:
            raise MappingConflictError(f"{kind} mapping '{name}' already exists")
        sources = self._unique_sources(data.sources)
        for source in sources:
            self._ensure_source_free(kind, source, mapping.id)

        mapping.standardized_name = name
        mapping.description = data.description
        mapping.sources.clear()
        # Flush the removals so re-added keys do not trip the unique constraint
        self.db.flush()
        mapping.sources.extend(self._new_source(kind, source) for source in sources)
        self._commit(f"update {kind} mapping {mapping_id}")
        self.db.refresh(mapping)
        return mapping

    def delete_mapping(self, kind: str, mapping_id: int):
        mapping = self.get_mapping(kind, mapping_id)
        self.db.delete(mapping)
        self._commit(f"delete {kind} mapping {mapping_id}")
        logger.info(f"Deleted {kind} mapping {mapping_id}")

    def add_source(self, kind: str, mapping_id: int, source: MappingSourceCreate) -> Mapping:
        mapping = self.get_mapping(kind, mapping_id)
        self._ensure_source_free(kind, source)
        mapping.sources.append(self._new_source(kind, source))
        self._commit(f"add source to {kind} mapping {mapping_id}")
        self.db.refresh(mapping)
        return mapping

    def remove_source(self, kind: str, mapping_id: int, source_id: int) -> Mapping:
        mapping = self.get_mapping(kind, mapping_id)
        source = next((s for s in mapping.sources if s.id == source_id), None)
        if source is None:
            raise NotFoundError(f"Source {source_id} not found on {kind} mapping {mapping_id}")
        mapping.sources.remove(source)
        self._commit(f"remove source {source_id} from {kind} mapping {mapping_id}")
        self.db.refresh(mapping)
        return mapping

    def calculate_coverage(self, survey_id: int) -> MappingCoverage:
        """
        Share of a survey's unique raw values that have an explicit mapping
        """
        survey = self.db.query(Survey).filter(Survey.id == survey_id).first()
        if not survey:
            raise NotFoundError(f"Survey {survey_id} not found")
        index = self.load_index()
        source = survey.source or survey.name
        raw = collect_raw_values(survey, index)

        def stats(kind: str) -> CoverageStats:
            values = sorted(raw[kind])
            unmapped = [v for v in values if not index.has(kind, source, v)]
            mapped = len(values) - len(unmapped)
            return CoverageStats(
                mapped=mapped,
                unmapped=len(unmapped),
                coverage=round(mapped / len(values) * 100, 2) if values else 0.0,
                unmapped_values=unmapped,
            )

        return MappingCoverage(
            specialties=stats("specialty"),
            provider_types=stats("provider_type"),
            regions=stats("region"),
            variables=stats("variable"),
        )

    def list_unmapped(self, kind: str, survey_source: Optional[str] = None) -> List[UnmappedValue]:
        self._check_kind(kind)
        index = self.load_index()
        counts: Counter = Counter()
        labels: Dict[Tuple[str, str], Tuple[str, str]] = {}
        surveys = self.db.query(Survey).options(selectinload(Survey.rows)).order_by(Survey.id).all()
        for survey in surveys:
            source = survey.source or survey.name
            if survey_source and mapping_key(source) != mapping_key(survey_source):
                continue
            for value, count in collect_raw_values(survey, index)[kind].items():
                if index.has(kind, source, value):
                    continue
                key = (mapping_key(source), mapping_key(value))
                labels.setdefault(key, (value, source))
                counts[key] += count

        result = [
            UnmappedValue(raw_value=labels[key][0], survey_source=labels[key][1], count=count)
            for key, count in counts.items()
        ]
        return sorted(result, key=lambda v: (-v.count, v.raw_value.lower(), v.survey_source.lower()))

    def suggest_specialty_mappings(self, survey_source: Optional[str] = None) -> List[SpecialtySuggestion]:
        existing = self.list_mappings("specialty")
        names = [m.standardized_name for m in existing]
        by_name = {m.standardized_name: m for m in existing}

        suggestions = []
        for value in self.list_unmapped("specialty", survey_source):
            match = find_best_match(value.raw_value, names)
            if match:
                name, score = match
                suggestions.append(SpecialtySuggestion(
                    raw_value=value.raw_value,
                    survey_source=value.survey_source,
                    suggested_name=name,
                    mapping_id=by_name[name].id,
                    score=round(score, 4),
                ))
            else:
                suggestions.append(SpecialtySuggestion(
                    raw_value=value.raw_value,
                    survey_source=value.survey_source,
                    suggested_name=standardize_specialty(value.raw_value),
                ))
        return suggestions

    def auto_map_specialties(
        self, threshold: float = SIMILARITY_THRESHOLD, survey_source: Optional[str] = None
    ) -> AutoMapResult:
        """
        Map every unmapped specialty, either onto the closest existing name
        or onto a new standardized name.
        """
        mappings = {m.standardized_name: m for m in self.list_mappings("specialty")}
        unmapped = self.list_unmapped("specialty", survey_source)
        created = 0
        attached = 0
        touched: Dict[int, Mapping] = {}

        try:
            for value in unmapped:
                source = MappingSourceCreate(survey_source=value.survey_source, raw_value=value.raw_value)
                match = find_best_match(value.raw_value, list(mappings), threshold)
                if match:
                    mapping = mappings[match[0]]
                    attached += 1
                else:
                    name = standardize_specialty(value.raw_value)
                    mapping = mappings.get(name) or self.find_by_name("specialty", name)
                    if mapping is None:
                        mapping = Mapping(kind="specialty", standardized_name=name)
                        self.db.add(mapping)
                        mappings[name] = mapping
                        created += 1
                    else:
                        attached += 1
                mapping.sources.append(self._new_source("specialty", source))
                self.db.flush()
                touched[mapping.id] = mapping
        except SQLAlchemyError as e:
            logger.error(f"Error auto-mapping specialties: {e}")
            self.db.rollback()
            raise AppError("Could not auto-map specialties", e)

        self._commit("auto-map specialties")
        for mapping in touched.values():
            self.db.refresh(mapping)
        logger.info(f"Auto-mapped {len(unmapped)} specialties: {created} created, {attached} attached")
        return AutoMapResult(
            created=created,
            attached=attached,
            mappings=[MappingRead.model_validate(m) for m in sorted(touched.values(), key=lambda m: m.standardized_name)],
        )
