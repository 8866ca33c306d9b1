from app.db.init_data import init_default_mappings
from app.models.mapping import Mapping, MappingSource
from app.services.mapping_service import MappingService

class TestDefaultMappings:
    """Tests for seeding the mapping tables from CSV"""

    async def test_seeds_bundled_csv(self, db_session):
        created = await init_default_mappings(db_session)
        assert created == 49
        assert db_session.query(Mapping).count() == 31

        index = MappingService(db_session).load_index()
        assert index.lookup("region", "MGMA", "eastern") == "Northeast"
        assert index.lookup("region", None, "Southern") == "South"
        assert index.lookup("specialty", None, "OB/GYN") == "Obstetrics & Gynecology"
        assert index.lookup("column", "MGMA", "Geographic Section") == "geographic_region"
        # Source-specific rows only apply to their source
        assert index.lookup("column", "Gallagher", "Geographic Section") is None

    async def test_skips_populated_tables(self, db_session):
        await init_default_mappings(db_session)
        assert await init_default_mappings(db_session) == 0
        assert db_session.query(MappingSource).count() == 49

    async def test_custom_csv(self, db_session, tmp_path):
        csv_path = tmp_path / "mappings.csv"
        csv_path.write_text(
            "mapping_type,standardized_name,survey_source,raw_value\n"
            "specialty,Cardiology,,Cardio\n"
            "specialty,Cardiology,, cardio \n"
            "specialty,Cardiology,MGMA,Cardio\n"
            "colour,Red,,Crimson\n"
            "region,,,Somewhere\n"
        )
        created = await init_default_mappings(db_session, csv_path)
        assert created == 2
        mapping = db_session.query(Mapping).one()
        assert mapping.standardized_name == "Cardiology"
        assert sorted(s.survey_source or "" for s in mapping.sources) == ["", "MGMA"]

    async def test_missing_csv(self, db_session, tmp_path):
        assert await init_default_mappings(db_session, tmp_path / "missing.csv") == 0
        assert db_session.query(Mapping).count() == 0
