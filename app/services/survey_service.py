import io
import logging
from typing import List, Optional, Tuple

import pandas as pd
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from app.core.exceptions import AppError, InvalidSurveyFormatError, NotFoundError, ValidationError
from app.models.mapping import Mapping
from app.models.survey import Survey, SurveyRow
from app.schemas.analytics import NormalizedRecord
from app.schemas.survey import FormatDetectionResult, SurveyCreate
from app.services.constants import DATA_CATEGORIES, SURVEY_PROVIDER_TYPES
from app.services.format_detection_service import detect_format
from app.services.normalization_service import MappingIndex, collapse_whitespace, normalize_survey
from app.services.variable_discovery_service import VariableDiscoveryService, normalize_data_category

logger = logging.getLogger(__name__)

def read_survey_csv(content: bytes) -> pd.DataFrame:
    """
    Parse an uploaded CSV into a frame of strings.

    Every cell is kept as text so suppressed markers such as "***" survive
    until normalization decides what they mean.
    """
    try:
        df = pd.read_csv(io.BytesIO(content), dtype=str, keep_default_na=False, skipinitialspace=True)
    except (pd.errors.EmptyDataError, pd.errors.ParserError, UnicodeDecodeError) as e:
        raise InvalidSurveyFormatError(f"Could not read CSV file: {e}")
    df.columns = [collapse_whitespace(c) for c in df.columns]
    # Drop spreadsheet "Unnamed: n" padding columns and blank lines
    df = df.loc[:, [c for c in df.columns if c and not c.startswith("Unnamed:")]]
    if not df.empty:
        df = df[~(df.apply(lambda col: col.str.strip() == "")).all(axis=1)]
    return df

class SurveyService:
    def __init__(self, db: Session):
        self.db = db

    @staticmethod
    def _provider_type_code(value: str) -> str:
        code = collapse_whitespace(value).upper() or "PHYSICIAN"
        if code not in SURVEY_PROVIDER_TYPES:
            raise ValidationError(
                f"Unknown provider type '{value}', expected one of: {', '.join(SURVEY_PROVIDER_TYPES)}"
            )
        return code

    @staticmethod
    def _data_category_code(value: str) -> str:
        code = normalize_data_category(value) or "COMPENSATION"
        if code not in DATA_CATEGORIES.values():
            raise ValidationError(f"Unknown data category '{value}'")
        return code

    def _mapping_index(self) -> MappingIndex:
        mappings = self.db.query(Mapping).options(selectinload(Mapping.sources)).all()
        return MappingIndex.from_mappings(mappings)

    def create_survey(self, data: SurveyCreate) -> Tuple[Survey, FormatDetectionResult]:
        """
        Store a survey and its raw rows after checking the header layout
        """
        headers: List[str] = []
        for row in data.rows:
            for key in row:
                if key not in headers:
                    headers.append(key)
        if not data.rows:
            raise InvalidSurveyFormatError("Survey has no data rows")

        # Column mappings for this source apply before the layout check
        index = self._mapping_index()
        source = collapse_whitespace(data.source) or collapse_whitespace(data.name)
        detection = detect_format([index.lookup("column", source, h) or h for h in headers])
        if detection.format is None:
            raise InvalidSurveyFormatError(
                "Survey columns match neither the long nor the wide layout",
                detection.suggestions,
            )

        survey = Survey(
            name=collapse_whitespace(data.name),
            source=collapse_whitespace(data.source),
            provider_type=self._provider_type_code(data.provider_type),
            data_category=self._data_category_code(data.data_category),
            year=collapse_whitespace(data.year),
            file_format=detection.format,
            row_count=len(data.rows),
            columns=headers,
        )
        survey.rows = [SurveyRow(row_index=i, data=row) for i, row in enumerate(data.rows)]

        try:
            self.db.add(survey)
            self.db.commit()
            self.db.refresh(survey)
        except SQLAlchemyError as e:
            logger.error(f"Error creating survey '{data.name}': {e}")
            self.db.rollback()
            raise AppError("Could not store survey", e)

        VariableDiscoveryService.clear_cache()
        logger.info(f"Stored survey {survey.id} ({survey.source} {survey.year}, {detection.format}) with {survey.row_count} rows")
        return survey, detection

    def import_csv(
        self,
        content: bytes,
        name: str,
        source: str,
        year: str,
        provider_type: str = "PHYSICIAN",
        data_category: str = "COMPENSATION",
    ) -> Tuple[Survey, FormatDetectionResult]:
        df = read_survey_csv(content)
        if df.empty:
            detection = detect_format(list(df.columns))
            raise InvalidSurveyFormatError("CSV file has no data rows", detection.suggestions)
        return self.create_survey(SurveyCreate(
            name=name,
            source=source,
            year=year,
            provider_type=provider_type,
            data_category=data_category,
            rows=df.to_dict(orient="records"),
        ))

    def get_surveys(self) -> List[Survey]:
        return self.db.query(Survey).order_by(Survey.year.desc(), Survey.source, Survey.id).all()

    def get_survey(self, survey_id: int) -> Survey:
        survey = self.db.query(Survey).filter(Survey.id == survey_id).first()
        if not survey:
            raise NotFoundError(f"Survey {survey_id} not found")
        return survey

    def get_rows(self, survey_id: int, skip: int = 0, limit: Optional[int] = 100) -> List[SurveyRow]:
        self.get_survey(survey_id)
        query = (
            self.db.query(SurveyRow)
            .filter(SurveyRow.survey_id == survey_id)
            .order_by(SurveyRow.row_index)
            .offset(skip)
        )
        if limit is not None:
            query = query.limit(limit)
        return query.all()

    def get_normalized_records(self, survey_id: int, skip: int = 0, limit: Optional[int] = 100) -> List[NormalizedRecord]:
        """
        Preview how a survey's rows normalize under the current mappings
        """
        survey = self.get_survey(survey_id)
        return normalize_survey(survey, self._mapping_index(), self.get_rows(survey_id, skip, limit))

    def delete_survey(self, survey_id: int):
        survey = self.get_survey(survey_id)
        try:
            self.db.delete(survey)
            self.db.commit()
        except SQLAlchemyError as e:
            logger.error(f"Error deleting survey {survey_id}: {e}")
            self.db.rollback()
            raise AppError("Could not delete survey", e)
        VariableDiscoveryService.clear_cache()
        logger.info(f"Deleted survey {survey_id}")
