# app/api/v1/endpoints/visits.py
#
# Imports
from datetime import date
from typing import List, Optional
#
# 3rd-party Libraries
from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile, status
from fastapi.responses import Response
from loguru import logger
#
# Local Imports
from visittrack_API.app.api.v1.API_Deps.visit_deps import get_visit_controller
from visittrack_API.app.api.v1.schemas.visit_schemas import (
    AnalysisResponse,
    ClientCoverageResponse,
    ClientSummaryResponse,
    CoverageReportResponse,
    DetailResponse,
    PhotoUploadResponse,
    RegionReportResponse,
    SaveVisitResponse,
    VisitIn,
    VisitResponse,
)
from visittrack_API.app.core.LLM.notes_analysis import NotesAnalysisError, analyze_visit_notes
from visittrack_API.app.core.Media.image_upload import ImageUploadError, upload_image
from visittrack_API.app.core.Reporting.aggregator import sort_newest_first
from visittrack_API.app.core.Sync.exceptions import (
    ConfigError,
    LockBusyError,
    NotFoundError,
    QuotaExceededError,
    SyncError,
    TransportError,
)
from visittrack_API.app.services.visit_controller import ClientSummary, VisitController
#
#######################################################################################################################

router = APIRouter()

LOCK_BUSY_RETRY_AFTER_SECONDS = "5"


# --- Helper for Exception Handling ---
def handle_sync_errors(e: Exception, operation: str = "request"):
    if isinstance(e, HTTPException):
        raise e
    if isinstance(e, ConfigError):
        logger.warning(f"Row store not configured for {operation}: {e}")
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                            detail=f"Row store is not configured: {e.args[0]}")
    elif isinstance(e, LockBusyError):
        logger.warning(f"Row store busy during {operation}")
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                            detail="The row store is busy with another write. Nothing was changed; please retry.",
                            headers={"Retry-After": LOCK_BUSY_RETRY_AFTER_SECONDS})
    elif isinstance(e, QuotaExceededError):
        logger.warning(f"Row store quota exceeded during {operation}: {e.store_message}")
        raise HTTPException(status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                            detail=f"The row store is rate limited: {e.store_message}")
    elif isinstance(e, NotFoundError):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Visit not found in the row store")
    elif isinstance(e, SyncError):
        logger.error(f"Row store rejected {operation}: {e.store_message}")
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY,
                            detail=f"The row store rejected the {operation}: {e.store_message}")
    elif isinstance(e, TransportError):
        logger.error(f"Transport error during {operation}: {e}")
        if e.looks_like_html:
            detail = "The row store answered with an HTML page instead of JSON. Check the URL and that the deployment is public."
        elif e.status_code is not None:
            detail = f"The row store request failed with HTTP {e.status_code}."
        else:
            detail = "Could not reach the row store."
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=detail)
    elif isinstance(e, ValueError):
        logger.warning(f"Value error during {operation}: {e}")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    else:
        logger.exception(f"Unexpected error during {operation}: {e}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                            detail=f"An unexpected error occurred during the {operation}.")


def _summary_response(summary: ClientSummary) -> ClientSummaryResponse:
    return ClientSummaryResponse(
        client_name=summary.client_name,
        visits=[VisitResponse.model_validate(v) for v in summary.visits],
        location_link=summary.location_link,
        visited_this_week=summary.visited_this_week,
    )


# --- Visit Endpoints ---
@router.get(
    "/",
    response_model=List[VisitResponse],
    summary="List all visits, newest first",
    tags=["Visits"]
)
async def list_visits(
        refresh: bool = Query(False, description="Re-read the row store before answering"),
        controller: VisitController = Depends(get_visit_controller)
):
    try:
        records = await controller.refresh() if refresh else await controller.ensure_loaded()
        return [VisitResponse.model_validate(v) for v in sort_newest_first(records)]
    except Exception as e:
        handle_sync_errors(e, "read")


@router.post(
    "/new",
    response_model=VisitResponse,
    summary="Draft a new visit (not persisted)",
    tags=["Visits"]
)
async def draft_visit(
        client_name: str = Query("", description="Pre-fill the client"),
        controller: VisitController = Depends(get_visit_controller)
):
    return VisitResponse.model_validate(controller.new_visit(client_name=client_name))


@router.get(
    "/regions",
    response_model=RegionReportResponse,
    summary="Visits grouped by region and client, with this week's status",
    tags=["Reports"]
)
async def region_report(controller: VisitController = Depends(get_visit_controller)):
    try:
        await controller.ensure_loaded()
        report = controller.region_report()
        return RegionReportResponse(regions={
            region: {name: _summary_response(summary) for name, summary in clients.items()}
            for region, clients in report.items()
        })
    except Exception as e:
        handle_sync_errors(e, "read")


@router.get(
    "/coverage",
    response_model=CoverageReportResponse,
    summary="Clients visited / not visited within a date range",
    tags=["Reports"]
)
async def coverage_report(
        start: Optional[date] = Query(None, description="First day (inclusive); defaults to the 1st of this month"),
        end: Optional[date] = Query(None, description="Last day (inclusive); defaults to today"),
        controller: VisitController = Depends(get_visit_controller)
):
    try:
        if start and end and start > end:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="start must not be after end")
        await controller.ensure_loaded()
        partition = controller.coverage_report(start, end)
        return CoverageReportResponse(
            start=partition.start,
            end=partition.end,
            visited=[
                ClientCoverageResponse(
                    client_name=c.client_name,
                    visits=[VisitResponse.model_validate(v) for v in c.visits],
                    most_recent_visit=VisitResponse.model_validate(c.most_recent_visit),
                )
                for c in partition.visited
            ],
            unvisited=partition.unvisited,
        )
    except Exception as e:
        handle_sync_errors(e, "read")


@router.get(
    "/clients/{client_name}",
    response_model=ClientSummaryResponse,
    summary="Visit history for one client",
    tags=["Reports"],
    responses={status.HTTP_404_NOT_FOUND: {"model": DetailResponse}}
)
async def client_summary(client_name: str, controller: VisitController = Depends(get_visit_controller)):
    try:
        await controller.ensure_loaded()
        summary = controller.client_summary(client_name)
        if not summary.visits:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No visits for this client")
        return _summary_response(summary)
    except Exception as e:
        handle_sync_errors(e, "read")


@router.post(
    "/photos",
    response_model=PhotoUploadResponse,
    summary="Host a visit photo and return its URL",
    tags=["Visits"]
)
async def upload_photo(
        image: UploadFile = File(..., description="Photo to host"),
        controller: VisitController = Depends(get_visit_controller)
):
    data = await image.read()
    try:
        url = await upload_image(data, image.filename or "photo.jpg", controller.config.media,
                                 content_type=image.content_type or "application/octet-stream")
    except ImageUploadError as e:
        logger.warning(f"Photo upload failed: {e}")
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))
    return PhotoUploadResponse(url=url)


@router.get(
    "/{visit_id}",
    response_model=VisitResponse,
    summary="Get one visit",
    tags=["Visits"],
    responses={status.HTTP_404_NOT_FOUND: {"model": DetailResponse}}
)
async def get_visit(visit_id: str, controller: VisitController = Depends(get_visit_controller)):
    try:
        await controller.ensure_loaded()
        visit = controller.get_visit(visit_id)
        if visit is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Visit not found")
        return VisitResponse.model_validate(visit)
    except Exception as e:
        handle_sync_errors(e, "read")


@router.put(
    "/{visit_id}",
    response_model=SaveVisitResponse,
    summary="Create or update a visit",
    tags=["Visits"]
)
async def save_visit(visit_id: str, visit_in: VisitIn, controller: VisitController = Depends(get_visit_controller)):
    try:
        await controller.ensure_loaded()
        result = await controller.save(visit_in.to_record(visit_id))
        saved = controller.get_visit(result.visit_id) if controller.has_snapshot else None
        if saved is None:
            # Acknowledged but not visible in a re-read snapshot (stale or lagging)
            saved = visit_in.to_record(visit_id)
        return SaveVisitResponse(outcome=result.intent, visit=VisitResponse.model_validate(saved))
    except Exception as e:
        handle_sync_errors(e, "save")


@router.delete(
    "/{visit_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete a visit",
    tags=["Visits"],
    responses={status.HTTP_404_NOT_FOUND: {"model": DetailResponse}}
)
async def delete_visit(visit_id: str, controller: VisitController = Depends(get_visit_controller)):
    try:
        await controller.delete(visit_id)
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    except Exception as e:
        handle_sync_errors(e, "delete")


@router.post(
    "/{visit_id}/analysis",
    response_model=AnalysisResponse,
    summary="Analyse a visit's notes and store the result",
    tags=["Visits"],
    responses={status.HTTP_404_NOT_FOUND: {"model": DetailResponse}}
)
async def analyse_visit(visit_id: str, controller: VisitController = Depends(get_visit_controller)):
    try:
        await controller.ensure_loaded()
        visit = controller.get_visit(visit_id)
        if visit is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Visit not found")
        try:
            analysis = await analyze_visit_notes(visit.visit_notes, visit.client_name, controller.config.analysis)
        except NotesAnalysisError as e:
            logger.warning(f"Notes analysis failed for visit {visit_id}: {e}")
            raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))
        await controller.attach_analysis(visit_id, analysis)
        return AnalysisResponse(visit_id=visit_id, ai_analysis=analysis)
    except Exception as e:
        handle_sync_errors(e, "analysis")
