from app.models.base import Base
from app.models.survey import Survey, SurveyRow
from app.models.mapping import Mapping, MappingSource, MAPPING_KINDS


__all__ = [
    "Base",
    "Survey",
    "SurveyRow",
    "Mapping",
    "MappingSource",
    "MAPPING_KINDS",
]
