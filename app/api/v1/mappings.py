from typing import List, Optional
from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session
from app.api.errors import http_error
from app.core.exceptions import AppError
from app.dependencies import get_db
from app.schemas.mapping import (
    AutoMapResult,
    MappingCreate,
    MappingRead,
    MappingSourceCreate,
    MappingUpdate,
    SpecialtySuggestion,
    UnmappedValue,
)
from app.services.constants import SIMILARITY_THRESHOLD
from app.services.mapping_service import MappingService

router = APIRouter()

# Fixed paths come before "/{kind}/{mapping_id}" so they are not read as ids

@router.get("/specialty/suggestions", response_model=List[SpecialtySuggestion])
def get_specialty_suggestions(survey_source: Optional[str] = None, db: Session = Depends(get_db)):
    """
    Suggest a standardized name for every unmapped specialty
    """
    return MappingService(db).suggest_specialty_mappings(survey_source)

@router.post("/specialty/auto-map", response_model=AutoMapResult)
def auto_map_specialties(
    threshold: float = Query(SIMILARITY_THRESHOLD, ge=0, le=1),
    survey_source: Optional[str] = None,
    db: Session = Depends(get_db),
):
    try:
        return MappingService(db).auto_map_specialties(threshold, survey_source)
    except AppError as e:
        raise http_error(e)

@router.get("/{kind}/unmapped", response_model=List[UnmappedValue])
def get_unmapped_values(kind: str, survey_source: Optional[str] = None, db: Session = Depends(get_db)):
    try:
        return MappingService(db).list_unmapped(kind, survey_source)
    except AppError as e:
        raise http_error(e)

@router.get("/{kind}", response_model=List[MappingRead])
def get_mappings(kind: str, db: Session = Depends(get_db)):
    try:
        return MappingService(db).list_mappings(kind)
    except AppError as e:
        raise http_error(e)

@router.post("/{kind}", response_model=MappingRead)
def create_mapping(kind: str, mapping: MappingCreate, db: Session = Depends(get_db)):
    try:
        return MappingService(db).create_mapping(kind, mapping)
    except AppError as e:
        raise http_error(e)

@router.get("/{kind}/{mapping_id}", response_model=MappingRead)
def get_mapping(kind: str, mapping_id: int, db: Session = Depends(get_db)):
    try:
        return MappingService(db).get_mapping(kind, mapping_id)
    except AppError as e:
        raise http_error(e)

@router.put("/{kind}/{mapping_id}", response_model=MappingRead)
def update_mapping(kind: str, mapping_id: int, mapping: MappingUpdate, db: Session = Depends(get_db)):
    try:
        return MappingService(db).update_mapping(kind, mapping_id, mapping)
    except AppError as e:
        raise http_error(e)

@router.delete("/{kind}/{mapping_id}")
def delete_mapping(kind: str, mapping_id: int, db: Session = Depends(get_db)):
    try:
        MappingService(db).delete_mapping(kind, mapping_id)
    except AppError as e:
        raise http_error(e)
    return {"message": f"{kind} mapping {mapping_id} deleted"}

@router.post("/{kind}/{mapping_id}/sources", response_model=MappingRead)
def add_mapping_source(
    kind: str, mapping_id: int, source: MappingSourceCreate, db: Session = Depends(get_db)
):
    try:
        return MappingService(db).add_source(kind, mapping_id, source)
    except AppError as e:
        raise http_error(e)

@router.delete("/{kind}/{mapping_id}/sources/{source_id}", response_model=MappingRead)
def remove_mapping_source(kind: str, mapping_id: int, source_id: int, db: Session = Depends(get_db)):
    try:
        return MappingService(db).remove_source(kind, mapping_id, source_id)
    except AppError as e:
        raise http_error(e)
