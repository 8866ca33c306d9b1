from sqlalchemy import Column, Integer, String, Text, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship
from app.models.base import Base

MAPPING_KINDS = ("specialty", "region", "provider_type", "variable", "column")

class Mapping(Base):
    __tablename__ = "mapping"
    __table_args__ = (
        UniqueConstraint("kind", "standardized_name", name="uq_mapping_kind_name"),
    )

    id = Column(Integer, primary_key=True, index=True)
    kind = Column(String(32), index=True, nullable=False)
    standardized_name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)

    # Relationships
    sources = relationship(
        "MappingSource",
        back_populates="mapping",
        cascade="all, delete-orphan",
        order_by="MappingSource.id",
    )

class MappingSource(Base):
    __tablename__ = "mapping_source"
    __table_args__ = (
        # one standardized target per (kind, survey source, raw value)
        UniqueConstraint("kind", "source_key", "raw_key", name="uq_mapping_source_key"),
    )

    id = Column(Integer, primary_key=True, index=True)
    mapping_id = Column(Integer, ForeignKey("mapping.id", ondelete="CASCADE"), index=True, nullable=False)
    kind = Column(String(32), nullable=False)
    survey_source = Column(String(100), nullable=True)  # None applies to every source
    raw_value = Column(String(255), nullable=False)
    source_key = Column(String(100), nullable=False, default="")
    raw_key = Column(String(255), nullable=False)

    # Relationship
    mapping = relationship("Mapping", back_populates="sources")
