from pydantic import BaseModel, Field
from typing import List, Optional

class MappingSourceBase(BaseModel):
    survey_source: Optional[str] = None  # None applies to every source
    raw_value: str = Field(..., min_length=1)

class MappingSourceCreate(MappingSourceBase):
    pass

class MappingSourceRead(MappingSourceBase):
    id: int
    mapping_id: int

    class Config:
        from_attributes = True

class MappingBase(BaseModel):
    standardized_name: str = Field(..., min_length=1)
    description: Optional[str] = None

class MappingCreate(MappingBase):
    sources: List[MappingSourceCreate] = []

class MappingUpdate(MappingBase):
    sources: List[MappingSourceCreate] = []

class MappingRead(MappingBase):
    id: int
    kind: str
    sources: List[MappingSourceRead] = []

    class Config:
        from_attributes = True

class UnmappedValue(BaseModel):
    raw_value: str
    survey_source: str
    count: int

class SpecialtySuggestion(BaseModel):
    raw_value: str
    survey_source: str
    suggested_name: Optional[str] = None
    mapping_id: Optional[int] = None
    score: float = 0.0

class AutoMapResult(BaseModel):
    created: int = 0
    attached: int = 0
    mappings: List[MappingRead] = []
