from pydantic import BaseModel, Field
from typing import Optional
from app.schemas.analytics import VariableMetrics

class FmvRequest(BaseModel):
    specialty: str = Field(..., min_length=1)
    provider_type: Optional[str] = None
    region: Optional[str] = None
    survey_source: Optional[str] = None
    year: Optional[str] = None
    variable: str = "tcc"
    value: float

class FmvResult(BaseModel):
    variable: str
    value: float
    market: VariableMetrics
    percentile_rank: Optional[float] = None
    matched_rows: int = 0
