"""
API Routes

FastAPI endpoints for:
- Device binding
- Location request / report relay
- Face enrollment and recognition
"""
from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile
from typing import List, Optional

from .auth import get_current_user_id
from .schemas import (
    AckResponse, DetectedFacesResponse, DeviceResponse,
    EnrollFaceResponse, FaceMatch, FaceSummary, HealthResponse, ListFacesResponse,
    LocationReport, LocationReportsResponse, LocationRequestStatusResponse,
    RebindDeviceRequest, RecogniseFaceResponse, ReportLocationRequest,
    ReportLocationResponse, RequestLocationRequest
)

import config
from services.container import ServiceContainer, get_services
from services.results import OperationResult

router = APIRouter()


def _unwrap(result: OperationResult) -> OperationResult:
    """Raise the HTTP equivalent of a failed operation"""
    if not result.success:
        raise HTTPException(status_code=result.status_code, detail=result.message)
    return result


def _ack(result: OperationResult) -> AckResponse:
    result = _unwrap(result)
    return AckResponse(success=True, message=result.message, warnings=result.warnings)


@router.get("/health", response_model=HealthResponse)
async def health_check(services: ServiceContainer = Depends(get_services)):
    """
    Health check endpoint
    """
    return HealthResponse(
        status="healthy",
        version=config.API_VERSION,
        models_loaded={
            "embedding_provider": services.provider.is_available
        }
    )


# ==================== Device Binding ====================

@router.get("/device_id", response_model=DeviceResponse)
async def get_device_id(
    user_id: str = Depends(get_current_user_id),
    services: ServiceContainer = Depends(get_services)
):
    result = _unwrap(await services.registry.get_device(user_id))
    return DeviceResponse(success=True, device_id=result.data['device_id'])


@router.post("/device_id", response_model=AckResponse)
async def rebind_device(
    req: RebindDeviceRequest,
    user_id: str = Depends(get_current_user_id),
    services: ServiceContainer = Depends(get_services)
):
    """
    Bind the caller to a new device, releasing the previous one
    """
    return _ack(await services.registry.rebind(user_id, req.new_device_id))


# ==================== Location Relay ====================

@router.post("/request_location", response_model=AckResponse)
async def request_location(req: RequestLocationRequest, services: ServiceContainer = Depends(get_services)):
    """
    Called by a tracking device to ask for its user's location
    """
    return _ack(await services.relay.request_location(req.device_id))


@router.get("/location_request", response_model=LocationRequestStatusResponse)
async def get_location_request(
    user_id: str = Depends(get_current_user_id),
    services: ServiceContainer = Depends(get_services)
):
    result = _unwrap(await services.relay.get_location_request(user_id))
    return LocationRequestStatusResponse(success=True, requested=result.data['requested'])


@router.post("/report_location", response_model=ReportLocationResponse)
async def report_location(
    req: ReportLocationRequest,
    user_id: str = Depends(get_current_user_id),
    services: ServiceContainer = Depends(get_services)
):
    result = _unwrap(await services.relay.report_location(user_id, req.lat, req.lng))
    return ReportLocationResponse(success=True, message=result.message, report=LocationReport(**result.data))


@router.post("/reset_location_request", response_model=AckResponse)
async def reset_location_request(
    user_id: str = Depends(get_current_user_id),
    services: ServiceContainer = Depends(get_services)
):
    return _ack(await services.relay.reset_location_request(user_id))


@router.get("/locations/{device_id}", response_model=LocationReportsResponse)
async def get_locations(
    device_id: str,
    limit: Optional[int] = Query(None, ge=1, description="Only return the most recent reports"),
    services: ServiceContainer = Depends(get_services)
):
    result = _unwrap(await services.relay.get_location_reports(device_id, limit=limit))
    return LocationReportsResponse(
        success=True,
        device_id=device_id,
        reports=[LocationReport(**report) for report in result.data]
    )


# ==================== Face Recognition ====================

@router.post("/recognise_face", response_model=RecogniseFaceResponse)
async def recognise_face(
    file: UploadFile = File(...),
    device_id: Optional[str] = Form(None),
    services: ServiceContainer = Depends(get_services)
):
    """
    Recognise faces captured by a tracking device against its user's enrolled faces
    """
    contents = await file.read()
    result = _unwrap(await services.recognition.recognise_face(device_id, contents))
    matches = [FaceMatch(**match) for match in result.data]
    return RecogniseFaceResponse(
        success=True,
        faces_detected=len(matches),
        matches=matches,
        message=result.message
    )


@router.get("/detected_faces", response_model=DetectedFacesResponse)
async def get_detected_faces(
    user_id: str = Depends(get_current_user_id),
    services: ServiceContainer = Depends(get_services)
):
    result = _unwrap(await services.recognition.get_detected_faces(user_id))
    return DetectedFacesResponse(success=True, detected_faces=result.data)


@router.post("/reset_detected_faces", response_model=AckResponse)
async def reset_detected_faces(
    user_id: str = Depends(get_current_user_id),
    services: ServiceContainer = Depends(get_services)
):
    return _ack(await services.recognition.reset_detected_faces(user_id))


# ==================== Face Enrollment ====================

@router.post("/enroll_face", response_model=EnrollFaceResponse)
async def enroll_face(
    files: List[UploadFile] = File(...),
    label: Optional[str] = Form(None),
    user_id: str = Depends(get_current_user_id),
    services: ServiceContainer = Depends(get_services)
):
    """
    Enroll a labelled face from one or more sample images
    """
    samples = [await f.read() for f in files]
    result = _unwrap(await services.enrollment.enroll_face(user_id, label, samples))
    return EnrollFaceResponse(
        success=True,
        message=result.message,
        warnings=result.warnings,
        **result.data
    )


@router.get("/faces", response_model=ListFacesResponse)
async def list_faces(
    user_id: str = Depends(get_current_user_id),
    services: ServiceContainer = Depends(get_services)
):
    result = _unwrap(await services.enrollment.list_faces(user_id))
    return ListFacesResponse(success=True, faces=[FaceSummary(**face) for face in result.data])


@router.delete("/faces/{face_id}", response_model=AckResponse)
async def delete_face(
    face_id: str,
    user_id: str = Depends(get_current_user_id),
    services: ServiceContainer = Depends(get_services)
):
    return _ack(await services.enrollment.delete_face(user_id, face_id))
