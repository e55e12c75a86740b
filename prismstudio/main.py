import logging

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from sqlalchemy import text

from prismstudio.config import get_settings
from prismstudio.api import verify, student_ids
from prismstudio.custom_logging import configure_logging
from prismstudio.databases.postgres.database import engine
from prismstudio.utils.response import error_response
import prismstudio.databases.postgres.model as models

settings = get_settings()
configure_logging(settings.log_level)

app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="""
    Public verification of PrismStudio internship certificates and student ID utilities.
    """,
    docs_url="/docs",
    redoc_url="/redoc"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"]
)

@app.on_event("startup")
def on_startup() -> None:
    """Create missing tables when the app starts."""
    logging.info("App startup: ensuring database tables exist")
    try:
        models.Base.metadata.create_all(bind=engine)
    except Exception as e:
        logging.error(f"Failed to create tables on startup: {e}")
        raise

@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=400,
        content=error_response("Request invalid", detail=jsonable_encoder(exc.errors()))
    )

@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content=error_response(exc.detail)
    )

app.include_router(verify.router, tags=["Verification"], prefix="/api/v1")
app.include_router(student_ids.router, tags=["Student IDs"], prefix="/api/v1")

@app.get("/")
async def root():
    return {"message": "PrismStudio certificate verification server running..."}

@app.get("/health", tags=["Health"])
async def health_check():
    """Health Check Endpoint"""
    try:
        with engine.connect() as connection:
            connection.execute(text("SELECT 1"))
        database = "up"
    except Exception as e:
        logging.error(f"Health check database ping failed: {e}")
        database = "down"

    return {
        "status": "healthy" if database == "up" else "unhealthy",
        "services": {
            "api": "up",
            "database": database,
        },
    }
