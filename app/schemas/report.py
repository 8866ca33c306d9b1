from pydantic import BaseModel
from typing import List, Literal, Optional
from datetime import datetime
from app.schemas.blending import BlendBreakdownItem

Percentile = Literal["p25", "p50", "p75", "p90"]

class ReportConfig(BaseModel):
    metric: str = "tcc"
    specialties: List[str] = []
    provider_types: List[str] = []
    regions: List[str] = []
    survey_sources: List[str] = []
    years: List[str] = []
    percentiles: List[Percentile] = ["p25", "p50", "p75", "p90"]
    enable_blending: bool = False
    blending_method: Literal["weighted", "simple", "none"] = "weighted"
    blend_years: bool = False

class ReportRow(BaseModel):
    specialty: str
    region: str
    provider_type: str
    survey_source: str
    year: str
    p25: Optional[float] = None
    p50: Optional[float] = None
    p75: Optional[float] = None
    p90: Optional[float] = None
    n_orgs: int = 0
    n_incumbents: int = 0
    is_blended: bool = False
    blend_method: Optional[str] = None
    blend_breakdown: List[BlendBreakdownItem] = []

class ReportMetadata(BaseModel):
    generated_at: datetime
    variable: str
    total_rows: int = 0
    blended_rows: int = 0
    unblended_rows: int = 0

class ReportData(BaseModel):
    config: ReportConfig
    rows: List[ReportRow] = []
    metadata: ReportMetadata
