"""
Pydantic Schemas for API Request/Response Models
"""
from pydantic import BaseModel, Field
from typing import List, Dict, Optional


# ==================== Request Models ====================

class RebindDeviceRequest(BaseModel):
    """Request for binding the caller to a new device"""
    new_device_id: Optional[str] = Field(None, description="6-character device identifier")


class RequestLocationRequest(BaseModel):
    """Sent by a tracking device asking for its user's location"""
    device_id: Optional[str] = Field(None, description="Identifier of the requesting device")


class ReportLocationRequest(BaseModel):
    """Location report from the user's app"""
    lat: float
    lng: float


# ==================== Response Models ====================

class AckResponse(BaseModel):
    """Plain success acknowledgment"""
    success: bool
    message: str
    warnings: List[str] = []


class DeviceResponse(BaseModel):
    success: bool
    device_id: Optional[str] = None


class LocationRequestStatusResponse(BaseModel):
    success: bool
    requested: bool


class LocationReport(BaseModel):
    """A single location report"""
    lat: float
    lng: float
    time: str


class ReportLocationResponse(BaseModel):
    success: bool
    message: str
    report: LocationReport


class LocationReportsResponse(BaseModel):
    success: bool
    device_id: str
    reports: List[LocationReport]


class FaceMatch(BaseModel):
    """Match result for one detected face"""
    label: str = Field(..., description="Matched label or 'unknown'")
    distance: Optional[float] = Field(None, description="Euclidean distance to the closest template")
    box: Optional[List[int]] = None


class RecogniseFaceResponse(BaseModel):
    """Response for face recognition endpoint"""
    success: bool
    faces_detected: int
    matches: List[FaceMatch]
    message: Optional[str] = None


class DetectedFacesResponse(BaseModel):
    success: bool
    detected_faces: List[str]


class EnrollFaceResponse(BaseModel):
    """Response for face enrollment endpoint"""
    success: bool
    message: str
    id: str
    label: str
    samples_used: int
    skipped_samples: List[int] = []
    warnings: List[str] = []


class FaceSummary(BaseModel):
    """Enrolled face without its embeddings"""
    id: str
    label: str


class ListFacesResponse(BaseModel):
    success: bool
    faces: List[FaceSummary]


# ==================== Health Check ====================

class HealthResponse(BaseModel):
    """API health check response"""
    status: str
    version: str
    models_loaded: Dict[str, bool]
