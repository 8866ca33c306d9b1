import pytest
from app.core.exceptions import InvalidSurveyFormatError, NotFoundError, ValidationError
from app.models.survey import SurveyRow
from app.schemas.mapping import MappingCreate, MappingSourceCreate
from app.schemas.survey import SurveyCreate
from app.services.mapping_service import MappingService
from app.services.survey_service import SurveyService, read_survey_csv

LONG_CSV = (
    b"Specialty,Variable,Region,n_incumbents,p25,p50,p75,p90,\n"
    b"Cardiology,TCC,National,400,\"$400,000\",\"$500,000\",\"$600,000\",\"$700,000\",\n"
    b" , , , , , , , ,\n"
    b"Urology,TCC,West,120,350000,420000,***,560000,\n"
)

class TestReadSurveyCsv:
    """Tests for CSV parsing"""

    def test_reads_cells_as_text(self):
        df = read_survey_csv(LONG_CSV)
        assert list(df.columns) == ["Specialty", "Variable", "Region", "n_incumbents", "p25", "p50", "p75", "p90"]
        assert len(df) == 2
        assert df.iloc[0]["p50"] == "$500,000"
        assert df.iloc[1]["p75"] == "***"

    def test_empty_file(self):
        with pytest.raises(InvalidSurveyFormatError):
            read_survey_csv(b"")

class TestSurveyService:
    """Tests for storing and reading surveys"""

    def test_create_long_survey(self, db_session, sample_long_rows):
        survey, detection = SurveyService(db_session).create_survey(SurveyCreate(
            name="SullivanCotter 2024", source="SullivanCotter", year=2024, rows=sample_long_rows,
        ))
        assert survey.id is not None
        assert survey.year == "2024"
        assert survey.file_format == "long"
        assert survey.row_count == 4
        assert survey.provider_type == "PHYSICIAN"
        assert survey.data_category == "COMPENSATION"
        assert "variable" in survey.columns
        assert detection.format == "long"
        assert db_session.query(SurveyRow).count() == 4

    def test_create_wide_survey(self, db_session, sample_wide_rows):
        survey, detection = SurveyService(db_session).create_survey(SurveyCreate(
            name="Gallagher", source="Gallagher", year="2023", rows=sample_wide_rows,
            data_category="Call Pay", provider_type="call",
        ))
        assert survey.file_format == "wide"
        assert survey.data_category == "CALL_PAY"
        assert survey.provider_type == "CALL"
        assert detection.detected_variables == ["tcc", "wrvu"]

    def test_rejects_unknown_layout(self, db_session):
        with pytest.raises(InvalidSurveyFormatError) as exc:
            SurveyService(db_session).create_survey(SurveyCreate(
                name="Bad", source="X", year="2024", rows=[{"foo": "1", "bar": "2"}],
            ))
        assert exc.value.suggestions

    def test_column_mapping_applies_before_layout_check(self, db_session):
        """A mapped header counts as the standard column it is mapped to"""
        rows = [{"Specialty": "Cardiology", "Survey Metric": "TCC",
                 "p25": "100", "p50": "200", "p75": "300", "p90": "400"}]
        MappingService(db_session).create_mapping("column", MappingCreate(
            standardized_name="variable",
            sources=[MappingSourceCreate(survey_source="MGMA", raw_value="Survey Metric")],
        ))
        service = SurveyService(db_session)

        survey, detection = service.create_survey(SurveyCreate(name="MGMA", source="MGMA", year="2024", rows=rows))
        assert detection.format == "long"
        assert survey.columns == ["Specialty", "Survey Metric", "p25", "p50", "p75", "p90"]
        records = service.get_normalized_records(survey.id)
        assert [(r.specialty, r.variable, r.p50) for r in records] == [("Cardiology", "tcc", 200)]

        # The mapping belongs to MGMA only
        with pytest.raises(InvalidSurveyFormatError):
            service.create_survey(SurveyCreate(name="Other", source="Gallagher", year="2024", rows=rows))

    def test_rejects_empty_survey(self, db_session):
        with pytest.raises(InvalidSurveyFormatError, match="no data rows"):
            SurveyService(db_session).create_survey(SurveyCreate(name="Empty", source="X", year="2024"))

    def test_rejects_unknown_provider_type(self, db_session, sample_long_rows):
        with pytest.raises(ValidationError, match="Unknown provider type"):
            SurveyService(db_session).create_survey(SurveyCreate(
                name="Bad", source="X", year="2024", provider_type="DENTIST", rows=sample_long_rows,
            ))

    def test_import_csv(self, db_session):
        survey, detection = SurveyService(db_session).import_csv(
            LONG_CSV, name="MGMA 2024", source="MGMA", year="2024"
        )
        assert survey.row_count == 2
        assert detection.format == "long"
        assert survey.rows[1].data["Specialty"] == "Urology"

    def test_import_csv_without_rows(self, db_session):
        with pytest.raises(InvalidSurveyFormatError, match="no data rows"):
            SurveyService(db_session).import_csv(b"specialty,variable\n", name="S", source="X", year="2024")

    def test_list_and_get(self, db_session, make_survey, sample_long_rows):
        older = make_survey(sample_long_rows, name="Old", source="MGMA", year="2023")
        newer = make_survey(sample_long_rows, name="New", source="MGMA", year="2024")
        service = SurveyService(db_session)
        assert [s.id for s in service.get_surveys()] == [newer.id, older.id]
        assert service.get_survey(older.id).name == "Old"
        with pytest.raises(NotFoundError):
            service.get_survey(999)

    def test_get_rows_paging(self, db_session, make_survey, sample_long_rows):
        survey = make_survey(sample_long_rows)
        rows = SurveyService(db_session).get_rows(survey.id, skip=1, limit=2)
        assert [r.row_index for r in rows] == [1, 2]

    def test_normalized_records(self, db_session, make_survey, sample_long_rows):
        survey = make_survey(sample_long_rows, source="MGMA")
        records = SurveyService(db_session).get_normalized_records(survey.id)
        assert [r.variable for r in records] == ["tcc", "work_rvus", "tcc", "tcc_per_work_rvu"]
        assert records[0].p50 == 500000
        assert records[3].p90 is None

    def test_delete_survey(self, db_session, make_survey, sample_long_rows):
        survey = make_survey(sample_long_rows)
        service = SurveyService(db_session)
        service.delete_survey(survey.id)
        with pytest.raises(NotFoundError):
            service.get_survey(survey.id)
        assert db_session.query(SurveyRow).count() == 0
