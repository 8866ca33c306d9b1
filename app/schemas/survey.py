from pydantic import BaseModel, Field, field_validator
from typing import Any, Dict, List, Optional
from datetime import datetime

class SurveyBase(BaseModel):
    name: str = Field(..., min_length=1)
    source: str = Field(..., min_length=1)
    provider_type: str = "PHYSICIAN"
    data_category: str = "COMPENSATION"
    year: str

    @field_validator("year", mode="before")
    @classmethod
    def coerce_year(cls, value):
        if isinstance(value, int):
            return str(value)
        return value

class SurveyCreate(SurveyBase):
    rows: List[Dict[str, Any]] = []

class SurveyRead(SurveyBase):
    id: int
    file_format: Optional[str] = None
    row_count: int = 0
    columns: Optional[List[str]] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class SurveyRowRead(BaseModel):
    id: int
    survey_id: int
    row_index: int
    data: Dict[str, Any]

    class Config:
        from_attributes = True

class FormatDetectionRequest(BaseModel):
    headers: List[str]

class FormatDetectionResult(BaseModel):
    format: Optional[str] = None  # 'long', 'wide' or None when unrecognised
    confidence: int = 0
    detected_columns: List[str] = []
    missing_required: List[str] = []
    detected_variables: List[str] = []
    suggestions: List[str] = []

class CoverageStats(BaseModel):
    mapped: int = 0
    unmapped: int = 0
    coverage: float = 0.0
    unmapped_values: List[str] = []

class MappingCoverage(BaseModel):
    specialties: CoverageStats = CoverageStats()
    provider_types: CoverageStats = CoverageStats()
    regions: CoverageStats = CoverageStats()
    variables: CoverageStats = CoverageStats()

class SurveyUploadResponse(BaseModel):
    survey: SurveyRead
    detection: FormatDetectionResult
    coverage: MappingCoverage
