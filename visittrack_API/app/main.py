# main.py
# Description: FastAPI application exposing visit sync and reporting for VisitTrack.
#
# Imports
import logging
#
# 3rd-party Libraries
import sys
from contextlib import asynccontextmanager
from loguru import logger
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
#
# Local Imports
from visittrack_API.app.api.v1.API_Deps.visit_deps import close_visit_controller, get_app_config
#
# Visits Endpoint
from visittrack_API.app.api.v1.endpoints.visits import router as visits_router
#
########################################################################################################################
#
# Functions:

LOG_FORMAT = "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - <level>{message}</level>"


# --- Loguru Configuration with Intercept Handler ---

# Define a handler class to intercept standard logging messages
class InterceptHandler(logging.Handler):
    def emit(self, record):
        # Get corresponding Loguru level if it exists
        try:
            level = logger.level(record.levelname).name
        except ValueError:
            level = record.levelno

        # Find caller from where originated the logged message
        frame, depth = logging.currentframe(), 2
        while frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back
            depth += 1

        logger.opt(depth=depth, exception=record.exc_info).log(
            level, record.getMessage()
        )


def configure_logging(log_level: str = "INFO"):
    """Route everything through a single stderr loguru sink at ``log_level``."""
    logger.remove()
    logger.add(sys.stderr, level=log_level, format=LOG_FORMAT, colorize=True)

    loggers_to_intercept = ["uvicorn", "uvicorn.error", "uvicorn.access", "httpx"]
    for logger_name in loggers_to_intercept:
        mod_logger = logging.getLogger(logger_name)
        mod_logger.handlers = [InterceptHandler()]
        mod_logger.propagate = False


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging(get_app_config().log_level)
    logger.info("VisitTrack API starting")
    yield
    logger.info("App Shutdown: closing row store client")
    await close_visit_controller()


app = FastAPI(
    title="VisitTrack API",
    version="0.1.0",
    description="Client visit records synced with a spreadsheet-backed row store",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/")
async def root():
    return {"message": "VisitTrack API is running"}


# Router for visit records and reports
app.include_router(visits_router, prefix="/api/v1/visits", tags=["visits"])


# Health check
@app.get("/health")
async def health_check():
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="127.0.0.1", port=8000)

#
## End of main.py
########################################################################################################################
