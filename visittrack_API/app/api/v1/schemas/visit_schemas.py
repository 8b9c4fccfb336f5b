# app/api/v1/schemas/visit_schemas.py
#
# Imports
from datetime import date
from typing import Optional, List, Dict
# 3rd-party Libraries
from pydantic import BaseModel, ConfigDict, Field, field_validator
#
# Local Imports
from visittrack_API.app.core.Sync.models import MAX_PHOTOS, VisitRecord, normalize_visit_date
#
#######################################################################################################################
#
# Schemas:

class VisitBase(BaseModel):
    client_name: str = Field(..., min_length=1, max_length=255, description="Client display name")
    region: str = Field("", max_length=255, description="Free-text region; blank means unclassified")
    visit_date: str = Field(..., description="Visit date, YYYY-MM-DD (any time part is dropped)")
    visit_notes: str = Field("", description="What was discussed")
    location_link: str = Field("", description="Map link for the visit location")
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    photos: List[str] = Field(default_factory=list, max_length=MAX_PHOTOS, description="Hosted image URLs, first is the thumbnail")
    ai_analysis: Optional[str] = Field(None, description="Optional analysis of the notes")

    @field_validator("visit_date")
    @classmethod
    def date_only(cls, value: str) -> str:
        normalized = normalize_visit_date(value)
        if not normalized:
            raise ValueError("visit_date is required")
        return normalized


class VisitIn(VisitBase):
    def to_record(self, visit_id: str) -> VisitRecord:
        return VisitRecord(id=visit_id, **self.model_dump())


class VisitResponse(VisitBase):
    model_config = ConfigDict(from_attributes=True)

    # Stored rows are echoed as-is, so the input constraints are relaxed here
    id: str = Field(..., description="Client-generated visit id")
    client_name: str = Field(..., description="Client display name")
    region: str = Field("", description="Free-text region")
    visit_date: str = Field(..., description="Visit date, YYYY-MM-DD; may be blank for legacy rows")
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    thumbnail: Optional[str] = Field(None, description="First photo, if any")

    @field_validator("visit_date")
    @classmethod
    def date_only(cls, value: str) -> str:
        return normalize_visit_date(value)


class SaveVisitResponse(BaseModel):
    outcome: str = Field(..., description="'update' or 'append', as predicted by the local scan")
    visit: VisitResponse


class ClientSummaryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    client_name: str
    visits: List[VisitResponse]
    location_link: Optional[str] = None
    visited_this_week: bool


class RegionReportResponse(BaseModel):
    regions: Dict[str, Dict[str, ClientSummaryResponse]]


class ClientCoverageResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    client_name: str
    visits: List[VisitResponse]
    most_recent_visit: VisitResponse


class CoverageReportResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    start: date
    end: date
    visited: List[ClientCoverageResponse]
    unvisited: List[str]


class PhotoUploadResponse(BaseModel):
    url: str


class AnalysisResponse(BaseModel):
    visit_id: str
    ai_analysis: str


class DetailResponse(BaseModel):
    detail: str
