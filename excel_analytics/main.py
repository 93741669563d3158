import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from excel_analytics.config import settings
from excel_analytics.database import Base, engine
from excel_analytics.logging_config import setup_logging
from excel_analytics.models import chart, uploaded_file  # noqa: F401  (register tables)
from excel_analytics.routes.analysis import router as analysis_router
from excel_analytics.routes.charts import router as charts_router
from excel_analytics.routes.files import router as files_router
from excel_analytics.services.errors import ChartPipelineError

setup_logging("DEBUG" if settings.DEBUG else settings.LOG_LEVEL)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    Base.metadata.create_all(bind=engine)
    yield


app = FastAPI(title="Excel Analytics API", version="1.0.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(ChartPipelineError)
async def chart_pipeline_error_handler(request: Request, exc: ChartPipelineError):
    logger.info("%s on %s %s: %s", type(exc).__name__, request.method, request.url.path, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "error": type(exc).__name__},
    )


@app.get("/")
def root():
    return {"message": "Excel Analytics API is running", "version": "1.0.0"}


@app.get("/health")
def health():
    return {"status": "healthy"}


app.include_router(analysis_router)
app.include_router(files_router)
app.include_router(charts_router)
