"""
Devices API router.

Provides endpoints for the device interaction history list, single-device
details, explicit registration and recording of domain/user accesses.
"""
from typing import Optional
from fastapi import APIRouter, Depends, HTTPException, Query, Request, status

from ..config import settings
from ..dependencies import (
    get_aggregator,
    get_current_caller,
    get_detail_resolver,
    get_recorder,
    get_registry,
    get_visibility_scope,
)
from ..models.interaction import EntityKind
from ..schemas.device import (
    DeviceDetailResponse,
    DeviceDetails,
    DeviceListResponse,
    DevicePage,
    DeviceResponse,
    DeviceSummaryOut,
    InteractionRequest,
    RegisterDeviceRequest,
)
from ..services.aggregator import HistoryAggregator
from ..services.deadline import Deadline
from ..services.detail import DeviceDetailResolver
from ..services.errors import DeviceHistoryError
from ..services.pagination import Page
from ..services.recorder import InteractionRecorder
from ..services.registry import DeviceRegistry
from ..services.scope import VisibilityScope


router = APIRouter(tags=["devices"])


def _http_error(exc: DeviceHistoryError) -> HTTPException:
    return HTTPException(status_code=exc.status_code, detail=str(exc))


def client_ip(request: Request) -> str:
    """Client address, preferring the first hop of ``X-Forwarded-For``."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


@router.get("/all", response_model=DeviceListResponse)
def list_devices(
    page: Optional[int] = Query(None, description="1-indexed page; omit to return every device"),
    limit: Optional[int] = Query(None, description="Page size"),
    sort: Optional[str] = Query(None, description='JSON object of field -> direction, e.g. {"updatedAt": -1}'),
    filters: Optional[str] = Query(None, description='JSON array of {"id": field, "value": value}'),
    scope: VisibilityScope = Depends(get_visibility_scope),
    aggregator: HistoryAggregator = Depends(get_aggregator),
):
    """
    List devices the caller can see with their interaction histories.
    
    Returns:
    - **docs**: devices with unique domain/user counts, IP history and
      deduplicated domain/user histories, newest first
    - **totalDocs** / **totalPages** / **page** / **limit**: paging counters
    
    A device is listed when it was used by at least one visible domain or
    user and matches every filter. Without **page** the full list is returned.
    
    Sort fields: deviceId, macAddr, createdAt, updatedAt, uniqueDomainCount, uniqueUserCount
    Filter fields: deviceId, macAddr, ipAddress
    """
    try:
        result = aggregator.list_devices(scope, page=page, limit=limit, sort=sort, filters=filters)
    except DeviceHistoryError as e:
        raise _http_error(e)
    
    if isinstance(result, Page):
        devices = DevicePage.from_page(result)
    else:
        devices = [DeviceSummaryOut.from_summary(summary) for summary in result]
    return DeviceListResponse(message="All devices", devices=devices)


@router.post(
    "/register",
    response_model=DeviceResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(get_current_caller)],
)
def register_device(
    payload: RegisterDeviceRequest,
    registry: DeviceRegistry = Depends(get_registry),
):
    """
    Register a device explicitly.
    
    Fails with 409 once the configured device limit is reached or when the
    device id is already registered.
    """
    try:
        return registry.register(payload.device_id, payload.mac_addr)
    except DeviceHistoryError as e:
        raise _http_error(e)


@router.get("/{device_id}", response_model=DeviceDetailResponse)
async def get_device_detail(
    device_id: str,
    scope: VisibilityScope = Depends(get_visibility_scope),
    resolver: DeviceDetailResolver = Depends(get_detail_resolver),
):
    """
    Get the merged interaction history of one device.
    
    The visible domain history and the visible user history are aggregated
    concurrently and merged. **mergedResults** is empty when the device has
    no visible history.
    """
    deadline = Deadline(settings.DETAIL_QUERY_TIMEOUT_SECONDS)
    try:
        summary = await resolver.resolve(device_id, scope, deadline)
    except DeviceHistoryError as e:
        raise _http_error(e)
    
    merged = [DeviceSummaryOut.from_summary(summary)] if summary else []
    return DeviceDetailResponse(message="Device Found", details=DeviceDetails(merged_results=merged))


@router.post(
    "/{device_id}/users",
    response_model=DeviceResponse,
    dependencies=[Depends(get_current_caller)],
)
def record_user_access(
    device_id: str,
    payload: InteractionRequest,
    request: Request,
    recorder: InteractionRecorder = Depends(get_recorder),
):
    """Record a user login on a device, registering the device if needed."""
    return _record(recorder, EntityKind.USER, device_id, payload, request)


@router.post(
    "/{device_id}/domains",
    response_model=DeviceResponse,
    dependencies=[Depends(get_current_caller)],
)
def record_domain_access(
    device_id: str,
    payload: InteractionRequest,
    request: Request,
    recorder: InteractionRecorder = Depends(get_recorder),
):
    """Record a domain login on a device, registering the device if needed."""
    return _record(recorder, EntityKind.DOMAIN, device_id, payload, request)


def _record(
    recorder: InteractionRecorder,
    kind: EntityKind,
    device_id: str,
    payload: InteractionRequest,
    request: Request,
):
    if not settings.DEVICE_LOGIN_ENABLED:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Device login is disabled")
    
    try:
        return recorder.record_access(
            kind,
            device_id,
            payload.entity_id,
            client_ip(request),
            payload.mac_addr,
            payload.timestamp,
        )
    except DeviceHistoryError as e:
        raise _http_error(e)
