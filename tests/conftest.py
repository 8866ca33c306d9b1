import os
import sys
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool
from fastapi.testclient import TestClient
from httpx import ASGITransport, AsyncClient

# Add the project root to Python path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

# Test configuration, applied before any app module reads settings
TEST_CONFIG = {
    "DATABASE_URL": "sqlite:///:memory:",
    "SEED_DEFAULT_MAPPINGS": "false",
    "LOG_LEVEL": "WARNING",
}
for key, value in TEST_CONFIG.items():
    os.environ.setdefault(key, value)

@pytest.fixture(scope="session")
def test_engine():
    """Create test database engine"""
    engine = create_engine(
        TEST_CONFIG["DATABASE_URL"],
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    return engine

@pytest.fixture(scope="session")
def TestingSessionLocal(test_engine):
    """Create test database session factory"""
    return sessionmaker(autocommit=False, autoflush=False, bind=test_engine)

@pytest.fixture
def db_session(TestingSessionLocal, test_engine):
    """Create a fresh database session for each test"""
    # Create all tables for the test
    from app.db.base import Base
    Base.metadata.create_all(bind=test_engine)

    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        # Clean up: drop all tables after test
        Base.metadata.drop_all(bind=test_engine)

@pytest.fixture(autouse=True)
def clear_variable_cache():
    """Variable discovery caches per process; start every test cold"""
    from app.services.variable_discovery_service import VariableDiscoveryService
    VariableDiscoveryService.clear_cache()
    yield
    VariableDiscoveryService.clear_cache()

@pytest.fixture
def client(db_session):
    """Create FastAPI test client for integration testing"""
    from fastapi import FastAPI
    from fastapi.middleware.cors import CORSMiddleware
    from app.api.v1 import analytics, blending, fmv, mappings, regional, reports, surveys
    from app.db.database import get_db

    # Create a test-specific FastAPI app without lifespan events
    test_app = FastAPI(
        title="Survey Aggregator API - Test",
        description="Test version of the survey aggregation API",
        version="1.0.0"
    )

    # Configure CORS
    test_app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    test_app.include_router(surveys.router, prefix="/api/v1/surveys", tags=["surveys"])
    test_app.include_router(mappings.router, prefix="/api/v1/mappings", tags=["mappings"])
    test_app.include_router(analytics.router, prefix="/api/v1/analytics", tags=["analytics"])
    test_app.include_router(blending.router, prefix="/api/v1/blending", tags=["blending"])
    test_app.include_router(regional.router, prefix="/api/v1/regional", tags=["regional"])
    test_app.include_router(reports.router, prefix="/api/v1/reports", tags=["reports"])
    test_app.include_router(fmv.router, prefix="/api/v1/fmv", tags=["fmv"])

    # Override the database dependency to use our test database
    def override_get_db():
        yield db_session

    test_app.dependency_overrides[get_db] = override_get_db

    with TestClient(test_app) as test_client:
        yield test_client

    # Clean up override after test
    test_app.dependency_overrides.clear()

@pytest.fixture
async def async_client():
    """Create async client against the real application object"""
    from main import app
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as async_test_client:
        yield async_test_client

@pytest.fixture
def sample_long_rows():
    """LONG layout: one row per specialty and variable"""
    return [
        {"specialty": "Cardiology", "geographic_region": "National", "provider_type": "Physician",
         "variable": "TCC", "n_orgs": "40", "n_incumbents": "400",
         "p25": "$400,000", "p50": "$500,000", "p75": "$600,000", "p90": "$700,000"},
        {"specialty": "Cardiology", "geographic_region": "National", "provider_type": "Physician",
         "variable": "Work RVUs", "n_orgs": "40", "n_incumbents": "380",
         "p25": "6,000", "p50": "7,000", "p75": "8,000", "p90": "9,000"},
        {"specialty": "Family Medicine", "geographic_region": "Northeast", "provider_type": "Physician",
         "variable": "TCC", "n_orgs": "60", "n_incumbents": "900",
         "p25": "220000", "p50": "260000", "p75": "300000", "p90": "350000"},
        {"specialty": "Family Medicine", "geographic_region": "Northeast", "provider_type": "Physician",
         "variable": "TCC per Work RVU", "n_orgs": "55", "n_incumbents": "850",
         "p25": "50", "p50": "55", "p75": "60", "p90": "***"},
    ]

@pytest.fixture
def sample_wide_rows():
    """WIDE layout: one row per specialty with a column family per variable"""
    return [
        {"specialty": "Cardiology", "region": "West", "provider_type": "Physician",
         "n_orgs": "20", "n_incumbents": "200",
         "tcc_p25": "420000", "tcc_p50": "520000", "tcc_p75": "620000", "tcc_p90": "720000",
         "wrvu_p25": "6100", "wrvu_p50": "7100", "wrvu_p75": "8100", "wrvu_p90": "9100"},
        {"specialty": "Pediatrics", "region": "West", "provider_type": "Physician",
         "n_orgs": "30", "n_incumbents": "300",
         "tcc_p25": "200000", "tcc_p50": "240000", "tcc_p75": "280000", "tcc_p90": "320000",
         "wrvu_p25": "***", "wrvu_p50": "", "wrvu_p75": "", "wrvu_p90": ""},
    ]

@pytest.fixture
def make_survey(db_session):
    """Store a survey through the service layer"""
    from app.schemas.survey import SurveyCreate
    from app.services.survey_service import SurveyService

    def _make(rows, name="Test Survey", source="SullivanCotter", year="2024", **kwargs):
        survey, _ = SurveyService(db_session).create_survey(
            SurveyCreate(name=name, source=source, year=year, rows=rows, **kwargs)
        )
        return survey

    return _make

@pytest.fixture
def make_row():
    """Build an AggregatedRow from {variable: {p50: ..., n_incumbents: ...}} keyword arguments"""
    from app.schemas.analytics import AggregatedRow, VariableMetrics

    def _make(name="Cardiology", region="National", source="SullivanCotter",
              provider_type="Physician", year="2024", **variables):
        return AggregatedRow(
            standardized_name=name,
            region=region,
            survey_source=source,
            provider_type=provider_type,
            year=year,
            variables={key: VariableMetrics(**metrics) for key, metrics in variables.items()},
            record_count=len(variables),
        )

    return _make
