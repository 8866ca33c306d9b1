from pydantic import BaseModel
from typing import List, Optional

class RegionalData(BaseModel):
    region: str
    p25: float = 0.0
    p50: float = 0.0
    p75: float = 0.0
    p90: float = 0.0
    record_count: int = 0
    n_incumbents: int = 0

class RegionalSummary(BaseModel):
    total_regions: int = 0
    total_records: int = 0
    average_p50: float = 0.0
    region_with_highest_p50: Optional[str] = None
    region_with_lowest_p50: Optional[str] = None
    data_diversity: float = 0.0

class RegionalComparison(BaseModel):
    variable: str
    regional_data: List[RegionalData] = []
    summary: RegionalSummary
