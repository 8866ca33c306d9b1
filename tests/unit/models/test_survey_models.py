import pytest
from sqlalchemy.exc import IntegrityError
from app.models.mapping import Mapping, MappingSource
from app.models.survey import Survey, SurveyRow

class TestSurveyModel:
    """Tests for the Survey and SurveyRow models"""

    def test_create_survey_with_rows(self, db_session):
        survey = Survey(name="MGMA 2024", source="MGMA", year="2024", file_format="long", columns=["specialty"])
        survey.rows = [SurveyRow(row_index=0, data={"specialty": "Cardiology", "p50": "1"})]
        db_session.add(survey)
        db_session.commit()

        stored = db_session.query(Survey).one()
        assert stored.provider_type == "PHYSICIAN"
        assert stored.data_category == "COMPENSATION"
        assert stored.rows[0].data == {"specialty": "Cardiology", "p50": "1"}
        assert stored.columns == ["specialty"]

    def test_rows_are_deleted_with_survey(self, db_session):
        survey = Survey(name="S", source="MGMA", year="2024")
        survey.rows = [SurveyRow(row_index=i, data={}) for i in range(3)]
        db_session.add(survey)
        db_session.commit()

        db_session.delete(survey)
        db_session.commit()
        assert db_session.query(SurveyRow).count() == 0

class TestMappingModel:
    """Tests for the Mapping and MappingSource models"""

    def _source(self, raw, survey_source=None, kind="specialty"):
        return MappingSource(
            kind=kind,
            survey_source=survey_source,
            raw_value=raw,
            source_key=(survey_source or "").lower(),
            raw_key=raw.lower(),
        )

    def test_mapping_with_sources(self, db_session):
        mapping = Mapping(kind="specialty", standardized_name="Cardiology")
        mapping.sources = [self._source("Cardio"), self._source("Cardiology - General", "MGMA")]
        db_session.add(mapping)
        db_session.commit()

        stored = db_session.query(Mapping).one()
        assert [s.raw_value for s in stored.sources] == ["Cardio", "Cardiology - General"]
        assert stored.sources[1].mapping is stored

    def test_raw_value_is_unique_per_kind_and_source(self, db_session):
        first = Mapping(kind="specialty", standardized_name="Cardiology")
        first.sources = [self._source("Cardio")]
        second = Mapping(kind="specialty", standardized_name="Cardiac")
        second.sources = [self._source("Cardio")]
        db_session.add_all([first, second])
        with pytest.raises(IntegrityError):
            db_session.commit()
        db_session.rollback()

    def test_same_raw_value_in_other_kind(self, db_session):
        specialty = Mapping(kind="specialty", standardized_name="Call")
        specialty.sources = [self._source("call")]
        provider = Mapping(kind="provider_type", standardized_name="Call")
        provider.sources = [self._source("call", kind="provider_type")]
        db_session.add_all([specialty, provider])
        db_session.commit()
        assert db_session.query(MappingSource).count() == 2

    def test_sources_are_deleted_with_mapping(self, db_session):
        mapping = Mapping(kind="region", standardized_name="West")
        mapping.sources = [self._source("Western", kind="region")]
        db_session.add(mapping)
        db_session.commit()

        db_session.delete(mapping)
        db_session.commit()
        assert db_session.query(MappingSource).count() == 0
