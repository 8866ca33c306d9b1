# Import base and models so they are registered on the metadata
from app.models.base import Base
from app.models.survey import Survey, SurveyRow
from app.models.mapping import Mapping, MappingSource

__all__ = ["Base", "Survey", "SurveyRow", "Mapping", "MappingSource"]
