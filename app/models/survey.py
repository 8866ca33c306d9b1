from sqlalchemy import Column, Integer, String, ForeignKey, JSON
from sqlalchemy.orm import relationship
from app.models.base import Base

class Survey(Base):
    __tablename__ = "survey"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(255), nullable=False)
    source = Column(String(100), index=True)  # SullivanCotter, MGMA, Gallagher, ...
    provider_type = Column(String(50), default="PHYSICIAN")  # PHYSICIAN / APP / CALL
    data_category = Column(String(50), default="COMPENSATION")  # COMPENSATION / CALL_PAY / MOONLIGHTING / CUSTOM
    year = Column(String(10), index=True)
    file_format = Column(String(20))  # 'long' or 'wide'
    row_count = Column(Integer, default=0)
    columns = Column(JSON)  # header row as uploaded

    # Relationships
    rows = relationship(
        "SurveyRow",
        back_populates="survey",
        cascade="all, delete-orphan",
        order_by="SurveyRow.row_index",
    )

class SurveyRow(Base):
    __tablename__ = "survey_row"

    id = Column(Integer, primary_key=True, index=True)
    survey_id = Column(Integer, ForeignKey("survey.id", ondelete="CASCADE"), index=True, nullable=False)
    row_index = Column(Integer, nullable=False)
    data = Column(JSON, nullable=False)  # raw key/value payload

    # Relationship
    survey = relationship("Survey", back_populates="rows")
