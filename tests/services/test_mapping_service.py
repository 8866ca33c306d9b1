import pytest
from app.core.exceptions import MappingConflictError, NotFoundError, ValidationError
from app.schemas.mapping import MappingCreate, MappingSourceCreate, MappingUpdate
from app.services.mapping_service import MappingService
from app.services.variable_discovery_service import VariableDiscoveryService

def _create(service, name, *raw_values, kind="specialty", survey_source=None):
    return service.create_mapping(kind, MappingCreate(
        standardized_name=name,
        sources=[MappingSourceCreate(survey_source=survey_source, raw_value=v) for v in raw_values],
    ))

class TestMappingCrud:
    """Tests for mapping create, update and delete"""

    def test_create_and_list(self, db_session):
        service = MappingService(db_session)
        _create(service, "Family Medicine", "Family Practice", "FM")
        _create(service, "Cardiology", "Cardio")
        mappings = service.list_mappings("specialty")
        assert [m.standardized_name for m in mappings] == ["Cardiology", "Family Medicine"]
        assert [s.raw_value for s in mappings[1].sources] == ["Family Practice", "FM"]
        assert mappings[1].sources[0].raw_key == "family practice"
        assert service.list_mappings("region") == []

    def test_duplicate_sources_in_request_are_collapsed(self, db_session):
        mapping = _create(MappingService(db_session), "Cardiology", "Cardio", " cardio ")
        assert len(mapping.sources) == 1

    def test_unknown_kind(self, db_session):
        with pytest.raises(ValidationError, match="Unknown mapping kind"):
            MappingService(db_session).list_mappings("colour")

    def test_duplicate_name_conflicts(self, db_session):
        service = MappingService(db_session)
        _create(service, "Cardiology")
        with pytest.raises(MappingConflictError):
            _create(service, "cardiology")

    def test_raw_value_conflicts_across_mappings(self, db_session):
        service = MappingService(db_session)
        _create(service, "Cardiology", "Cardio")
        with pytest.raises(MappingConflictError, match="already mapped to 'Cardiology'"):
            _create(service, "Cardiac Surgery", "CARDIO")

    def test_source_specific_value_does_not_conflict_with_global(self, db_session):
        service = MappingService(db_session)
        _create(service, "Cardiology", "Cardio")
        mapping = _create(service, "Cardiology - General", "Cardio", survey_source="MGMA")
        assert mapping.sources[0].survey_source == "MGMA"
        index = service.load_index()
        assert index.lookup("specialty", "MGMA", "cardio") == "Cardiology - General"
        assert index.lookup("specialty", "Gallagher", "cardio") == "Cardiology"

    def test_update_replaces_sources(self, db_session):
        service = MappingService(db_session)
        mapping = _create(service, "Cardiology", "Cardio", "Heart")
        updated = service.update_mapping("specialty", mapping.id, MappingUpdate(
            standardized_name="Cardiology (General)",
            description="All general cardiology",
            sources=[MappingSourceCreate(raw_value="Cardio"), MappingSourceCreate(raw_value="Cardiology Gen")],
        ))
        assert updated.standardized_name == "Cardiology (General)"
        assert updated.description == "All general cardiology"
        assert [s.raw_value for s in updated.sources] == ["Cardio", "Cardiology Gen"]

    def test_update_conflicts_with_other_mapping(self, db_session):
        service = MappingService(db_session)
        _create(service, "Cardiology", "Cardio")
        urology = _create(service, "Urology", "Uro")
        with pytest.raises(MappingConflictError):
            service.update_mapping("specialty", urology.id, MappingUpdate(
                standardized_name="Urology", sources=[MappingSourceCreate(raw_value="cardio")],
            ))

    def test_add_and_remove_source(self, db_session):
        service = MappingService(db_session)
        mapping = _create(service, "West", "Western", kind="region")
        mapping = service.add_source("region", mapping.id, MappingSourceCreate(raw_value="Pacific", survey_source="MGMA"))
        assert [s.raw_value for s in mapping.sources] == ["Western", "Pacific"]

        mapping = service.remove_source("region", mapping.id, mapping.sources[0].id)
        assert [s.raw_value for s in mapping.sources] == ["Pacific"]

        with pytest.raises(NotFoundError):
            service.remove_source("region", mapping.id, 999)

    def test_get_and_delete(self, db_session):
        service = MappingService(db_session)
        mapping = _create(service, "West", "Western", kind="region")
        with pytest.raises(NotFoundError):
            service.get_mapping("specialty", mapping.id)

        service.delete_mapping("region", mapping.id)
        with pytest.raises(NotFoundError):
            service.get_mapping("region", mapping.id)

    def test_commit_clears_variable_cache(self, db_session):
        VariableDiscoveryService(db_session).discover()
        assert VariableDiscoveryService._cache is not None
        _create(MappingService(db_session), "tcc", "Total Comp", kind="variable")
        assert VariableDiscoveryService._cache is None

class TestMappingCoverage:
    """Tests for coverage and unmapped value reporting"""

    def test_coverage(self, db_session, make_survey, sample_long_rows):
        survey = make_survey(sample_long_rows, source="MGMA")
        service = MappingService(db_session)
        _create(service, "Cardiology", "Cardiology")
        _create(service, "National", "national", kind="region", survey_source="MGMA")

        coverage = service.calculate_coverage(survey.id)
        assert coverage.specialties.mapped == 1
        assert coverage.specialties.unmapped == 1
        assert coverage.specialties.coverage == 50.0
        assert coverage.specialties.unmapped_values == ["Family Medicine"]
        assert coverage.regions.unmapped_values == ["Northeast"]
        assert coverage.provider_types.coverage == 0.0
        assert coverage.variables.unmapped == 3

    def test_coverage_unknown_survey(self, db_session):
        with pytest.raises(NotFoundError):
            MappingService(db_session).calculate_coverage(42)

    def test_list_unmapped(self, db_session, make_survey, sample_long_rows, sample_wide_rows):
        make_survey(sample_long_rows, name="Long", source="MGMA")
        make_survey(sample_wide_rows, name="Wide", source="Gallagher")
        service = MappingService(db_session)
        _create(service, "Family Medicine", "Family Medicine")

        unmapped = service.list_unmapped("specialty")
        assert [(v.raw_value, v.survey_source, v.count) for v in unmapped] == [
            ("Cardiology", "MGMA", 2),
            ("Cardiology", "Gallagher", 1),
            ("Pediatrics", "Gallagher", 1),
        ]
        only_mgma = service.list_unmapped("specialty", survey_source="mgma")
        assert [v.raw_value for v in only_mgma] == ["Cardiology"]

    def test_wide_variables_are_listed(self, db_session, make_survey, sample_wide_rows):
        make_survey(sample_wide_rows, source="Gallagher")
        unmapped = MappingService(db_session).list_unmapped("variable")
        assert sorted(v.raw_value for v in unmapped) == ["tcc", "wrvu"]

    def test_unrecognized_columns_are_listed(self, db_session, make_survey):
        make_survey(
            [{"specialty": "Cardiology", "variable": "TCC", "p25": "1", "p50": "2", "p75": "3", "p90": "4",
              "Comp Region": "West"}],
            source="MGMA",
        )
        unmapped = MappingService(db_session).list_unmapped("column")
        assert [v.raw_value for v in unmapped] == ["Comp Region"]

class TestSpecialtyAutoMapping:
    """Tests for similarity-based specialty suggestions and auto-mapping"""

    def test_suggestions(self, db_session, make_survey, sample_long_rows):
        make_survey(sample_long_rows, source="MGMA")
        service = MappingService(db_session)
        cardiology = _create(service, "Cardiology", "Cardio")

        suggestions = {s.raw_value: s for s in service.suggest_specialty_mappings()}
        assert suggestions["Cardiology"].mapping_id == cardiology.id
        assert suggestions["Cardiology"].score == 1.0
        assert suggestions["Family Medicine"].mapping_id is None
        assert suggestions["Family Medicine"].suggested_name == "Family Medicine"

    def test_auto_map(self, db_session, make_survey, sample_long_rows):
        make_survey(sample_long_rows, source="MGMA")
        service = MappingService(db_session)
        _create(service, "Cardiology", "Cardio")

        result = service.auto_map_specialties()
        assert result.created == 1
        assert result.attached == 1
        assert [m.standardized_name for m in result.mappings] == ["Cardiology", "Family Medicine"]
        assert result.mappings[0].sources[-1].survey_source == "MGMA"
        assert service.list_unmapped("specialty") == []

    def test_auto_map_standardizes_new_names(self, db_session, make_survey):
        make_survey(
            [{"specialty": "family practice", "variable": "TCC", "p25": "1", "p50": "2", "p75": "3", "p90": "4"}],
            source="MGMA",
        )
        result = MappingService(db_session).auto_map_specialties()
        assert [m.standardized_name for m in result.mappings] == ["Family Medicine"]
        assert result.mappings[0].sources[0].raw_value == "family practice"
