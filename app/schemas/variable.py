from pydantic import BaseModel
from typing import List, Literal

VariableCategory = Literal["compensation", "productivity", "ratio", "other"]

class DiscoveredVariable(BaseModel):
    name: str
    normalized_name: str
    category: VariableCategory
    available_sources: List[str] = []
    record_count: int = 0
    data_quality: float = 0.0
    format: Literal["long", "wide"]

class VariableDiscoveryStats(BaseModel):
    variables: List[DiscoveredVariable] = []
    total_surveys: int = 0
    total_records: int = 0
    discovery_time_ms: float = 0.0
