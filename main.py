import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from app.api.v1 import analytics, blending, fmv, mappings, regional, reports, surveys
from app.core.config import settings
from app.db.database import SessionLocal
from app.db.init_data import init_db, init_default_mappings

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: create tables and seed mappings
    init_db()
    if settings.SEED_DEFAULT_MAPPINGS:
        db = SessionLocal()
        try:
            await init_default_mappings(db)
        finally:
            db.close()

    yield  # Server is running and handling requests

app = FastAPI(
    title=settings.PROJECT_NAME,
    description="Survey normalization, aggregation and benchmarking API",
    version="1.0.0",
    lifespan=lifespan
)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.BACKEND_CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(surveys.router, prefix=f"{settings.API_V1_STR}/surveys", tags=["surveys"])
app.include_router(mappings.router, prefix=f"{settings.API_V1_STR}/mappings", tags=["mappings"])
app.include_router(analytics.router, prefix=f"{settings.API_V1_STR}/analytics", tags=["analytics"])
app.include_router(blending.router, prefix=f"{settings.API_V1_STR}/blending", tags=["blending"])
app.include_router(regional.router, prefix=f"{settings.API_V1_STR}/regional", tags=["regional"])
app.include_router(reports.router, prefix=f"{settings.API_V1_STR}/reports", tags=["reports"])
app.include_router(fmv.router, prefix=f"{settings.API_V1_STR}/fmv", tags=["fmv"])

@app.get("/")
async def root():
    return {"message": f"Welcome to {settings.PROJECT_NAME} API"}

if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
