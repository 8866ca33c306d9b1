import logging
from typing import List
from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from sqlalchemy.orm import Session
from app.api.errors import http_error
from app.core.exceptions import AppError
from app.dependencies import get_db
from app.schemas.analytics import NormalizedRecord
from app.schemas.survey import (
    FormatDetectionRequest,
    FormatDetectionResult,
    MappingCoverage,
    SurveyCreate,
    SurveyRead,
    SurveyRowRead,
    SurveyUploadResponse,
)
from app.services.format_detection_service import detect_format
from app.services.mapping_service import MappingService
from app.services.survey_service import SurveyService

router = APIRouter()

logger = logging.getLogger(__name__)

def _upload_response(db: Session, survey, detection) -> SurveyUploadResponse:
    coverage = MappingService(db).calculate_coverage(survey.id)
    return SurveyUploadResponse(
        survey=SurveyRead.model_validate(survey),
        detection=detection,
        coverage=coverage,
    )

@router.post("/", response_model=SurveyUploadResponse)
def create_survey(survey: SurveyCreate, db: Session = Depends(get_db)):
    """
    Store a survey sent as JSON metadata plus raw rows
    """
    try:
        created, detection = SurveyService(db).create_survey(survey)
        return _upload_response(db, created, detection)
    except AppError as e:
        raise http_error(e)

@router.post("/upload", response_model=SurveyUploadResponse)
async def upload_survey(
    file: UploadFile = File(...),
    name: str = Form(...),
    source: str = Form(...),
    year: str = Form(...),
    provider_type: str = Form("PHYSICIAN"),
    data_category: str = Form("COMPENSATION"),
    db: Session = Depends(get_db),
):
    """
    Upload a survey CSV in either long or wide layout.

    The response carries the detected layout and how much of the survey's
    vocabulary is already covered by mappings.
    """
    content = await file.read()
    logger.info(f"Received upload '{file.filename}' ({len(content)} bytes) for {source} {year}")
    try:
        created, detection = SurveyService(db).import_csv(
            content,
            name=name,
            source=source,
            year=year,
            provider_type=provider_type,
            data_category=data_category,
        )
        return _upload_response(db, created, detection)
    except AppError as e:
        raise http_error(e)

@router.post("/detect-format", response_model=FormatDetectionResult)
def detect_survey_format(request: FormatDetectionRequest):
    return detect_format(request.headers)

@router.get("/", response_model=List[SurveyRead])
def get_surveys(db: Session = Depends(get_db)):
    return SurveyService(db).get_surveys()

@router.get("/{survey_id}", response_model=SurveyRead)
def get_survey(survey_id: int, db: Session = Depends(get_db)):
    try:
        return SurveyService(db).get_survey(survey_id)
    except AppError as e:
        raise http_error(e)

@router.get("/{survey_id}/rows", response_model=List[SurveyRowRead])
def get_survey_rows(
    survey_id: int,
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=1000),
    db: Session = Depends(get_db),
):
    try:
        return SurveyService(db).get_rows(survey_id, skip, limit)
    except AppError as e:
        raise http_error(e)

@router.get("/{survey_id}/normalized", response_model=List[NormalizedRecord])
def get_normalized_rows(
    survey_id: int,
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=1000),
    db: Session = Depends(get_db),
):
    """
    Preview the normalized records of a page of survey rows
    """
    try:
        return SurveyService(db).get_normalized_records(survey_id, skip, limit)
    except AppError as e:
        raise http_error(e)

@router.get("/{survey_id}/coverage", response_model=MappingCoverage)
def get_mapping_coverage(survey_id: int, db: Session = Depends(get_db)):
    try:
        return MappingService(db).calculate_coverage(survey_id)
    except AppError as e:
        raise http_error(e)

@router.delete("/{survey_id}")
def delete_survey(survey_id: int, db: Session = Depends(get_db)):
    try:
        SurveyService(db).delete_survey(survey_id)
    except AppError as e:
        raise http_error(e)
    return {"message": f"Survey {survey_id} deleted"}
