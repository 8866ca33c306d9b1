import logging
from pathlib import Path
from typing import Optional
import pandas as pd
from sqlalchemy.orm import Session
from app.db.base import Base
from app.db.database import engine
from app.models.mapping import MAPPING_KINDS, Mapping, MappingSource
from app.services.normalization_service import collapse_whitespace, mapping_key

logger = logging.getLogger(__name__)

DEFAULT_MAPPINGS_CSV = Path(__file__).parent.parent.parent / "data" / "default_mappings.csv"

def init_db() -> None:
    """Create all database tables"""
    Base.metadata.create_all(bind=engine)

async def init_default_mappings(db: Session, csv_path: Optional[Path] = None) -> int:
    """
    Seed the mapping tables from the bundled CSV if they are empty.

    The CSV has one row per raw value: mapping_type, standardized_name,
    survey_source (blank for every source) and raw_value.
    Returns the number of sources created.
    """
    csv_path = csv_path or DEFAULT_MAPPINGS_CSV
    try:
        # Check if already populated
        if db.query(Mapping).first():
            logger.info("Mapping tables already populated")
            return 0

        if not csv_path.exists():
            logger.warning(f"Default mappings CSV not found at {csv_path}")
            return 0

        df = pd.read_csv(csv_path, dtype=str, keep_default_na=False)

        mappings = {}
        seen = set()
        created = 0
        for _, row in df.iterrows():
            kind = row["mapping_type"].strip()
            name = collapse_whitespace(row["standardized_name"])
            raw_value = collapse_whitespace(row["raw_value"])
            survey_source = collapse_whitespace(row["survey_source"]) or None
            if kind not in MAPPING_KINDS or not name or not raw_value:
                logger.warning(f"Skipping default mapping row {row.to_dict()}")
                continue

            key = (kind, mapping_key(survey_source), mapping_key(raw_value))
            if key in seen:
                continue
            seen.add(key)

            mapping = mappings.get((kind, name))
            if mapping is None:
                mapping = Mapping(kind=kind, standardized_name=name)
                mappings[(kind, name)] = mapping
                db.add(mapping)
            mapping.sources.append(MappingSource(
                kind=kind,
                survey_source=survey_source,
                raw_value=raw_value,
                source_key=key[1],
                raw_key=key[2],
            ))
            created += 1

        db.commit()
        logger.info(f"Seeded {len(mappings)} default mappings with {created} sources")
        return created

    except Exception as e:
        logger.error(f"Error seeding default mappings: {e}")
        db.rollback()
        raise
