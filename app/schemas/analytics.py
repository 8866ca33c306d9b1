from pydantic import BaseModel
from typing import Dict, List, Optional, Tuple

class VariableMetrics(BaseModel):
    p25: float = 0.0
    p50: float = 0.0
    p75: float = 0.0
    p90: float = 0.0
    n_orgs: int = 0
    n_incumbents: int = 0

class NormalizedRecord(BaseModel):
    """One variable observation after mapping lookups, before grouping."""
    survey_id: Optional[int] = None
    specialty: str
    raw_specialty: str = ""
    region: str
    provider_type: str
    survey_source: str
    year: str
    variable: str
    p25: Optional[float] = None
    p50: Optional[float] = None
    p75: Optional[float] = None
    p90: Optional[float] = None
    n_orgs: int = 0
    n_incumbents: int = 0

class AggregatedRow(BaseModel):
    standardized_name: str
    region: str
    survey_source: str
    provider_type: str
    year: str
    variables: Dict[str, VariableMetrics] = {}
    record_count: int = 0

    @property
    def key(self) -> Tuple[str, str, str, str, str]:
        return (self.standardized_name, self.region, self.survey_source, self.provider_type, self.year)

class AnalyticsFilters(BaseModel):
    specialty: Optional[str] = None
    survey_source: Optional[str] = None
    region: Optional[str] = None
    provider_type: Optional[str] = None
    year: Optional[str] = None
    variables: List[str] = []

class FilterOptions(BaseModel):
    specialties: List[str] = []
    survey_sources: List[str] = []
    regions: List[str] = []
    provider_types: List[str] = []
    years: List[str] = []
    variables: List[str] = []

class SummaryCalculation(BaseModel):
    simple: Dict[str, Optional[VariableMetrics]] = {}
    weighted: Dict[str, Optional[VariableMetrics]] = {}

class SpecialtySummary(BaseModel):
    standardized_name: str
    row_count: int
    simple: Dict[str, Optional[VariableMetrics]] = {}
    weighted: Dict[str, Optional[VariableMetrics]] = {}
