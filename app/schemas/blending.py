from pydantic import BaseModel, Field
from typing import Dict, List, Literal, Optional
from app.schemas.analytics import AggregatedRow, AnalyticsFilters, VariableMetrics

class YearWeight(BaseModel):
    year: str
    percentage: float = 0.0

class MultiYearBlendRequest(BaseModel):
    method: Literal["percentage", "weighted", "equal"] = "weighted"
    years: List[YearWeight] = []
    filters: AnalyticsFilters = AnalyticsFilters()

class YearBreakdown(BaseModel):
    sample_size: int = 0
    survey_count: int = 0
    contribution: float = 0.0
    specialty_count: int = 0

class MultiYearBlendResult(BaseModel):
    blended_data: List[AggregatedRow] = []
    year_breakdown: Dict[str, YearBreakdown] = {}
    confidence: float = 0.0
    quality_warnings: List[str] = []
    total_sample_size: int = 0
    total_survey_count: int = 0
    years_included: List[str] = []
    blending_method: str

class BlendBreakdownItem(BaseModel):
    year: str
    survey_source: str
    n_orgs: int = 0
    n_incumbents: int = 0
    p25: Optional[float] = None
    p50: Optional[float] = None
    p75: Optional[float] = None
    p90: Optional[float] = None
    weight: float = 0.0

class BlendedResult(BaseModel):
    specialty: str
    p25: float = 0.0
    p50: float = 0.0
    p75: float = 0.0
    p90: float = 0.0
    n_orgs: int = 0
    n_incumbents: int = 0
    source_rows: int = 0
    breakdown: List[BlendBreakdownItem] = []

class SpecialtyBlendItem(BaseModel):
    specialty: str = Field(..., min_length=1)
    weight: float

class SpecialtyBlendRequest(BaseModel):
    items: List[SpecialtyBlendItem] = []
    variables: List[str] = []
    filters: AnalyticsFilters = AnalyticsFilters()

class BlendValidation(BaseModel):
    is_valid: bool
    errors: List[str] = []
    warnings: List[str] = []
    total_weight: float = 0.0
    missing_specialties: List[str] = []
    duplicate_specialties: List[str] = []

class SpecialtyBlendResult(BaseModel):
    validation: BlendValidation
    items: List[SpecialtyBlendItem] = []
    variables: Dict[str, VariableMetrics] = {}
    confidence: float = 0.0
