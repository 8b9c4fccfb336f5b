# visittrack_API/app/api/v1/API_Deps/visit_deps.py
#
# Imports
from typing import Optional
#
# 3rd-party Libraries
from loguru import logger
#
# Local Imports
from visittrack_API.app.core.config import AppConfig
from visittrack_API.app.services.visit_controller import VisitController
#
#######################################################################################################################

# One controller per process: it owns the record set and the write lock
_visit_controller: Optional[VisitController] = None
_app_config: Optional[AppConfig] = None


def get_app_config() -> AppConfig:
    global _app_config
    if _app_config is None:
        _app_config = AppConfig.from_toml()
        logger.debug(f"Configuration loaded: {_app_config.to_dict()}")
    return _app_config


def get_visit_controller() -> VisitController:
    """FastAPI dependency returning the process-wide VisitController."""
    global _visit_controller
    if _visit_controller is None:
        _visit_controller = VisitController(get_app_config())
        logger.info("VisitController created")
    return _visit_controller


async def close_visit_controller():
    """Release the controller's HTTP client on shutdown."""
    global _visit_controller
    if _visit_controller is not None:
        close = getattr(_visit_controller.repository.transport, "close", None)
        if close is not None:
            await close()
        _visit_controller = None
