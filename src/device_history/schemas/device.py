"""
Pydantic schemas for device endpoints.

Defines request/response models for device registration, interaction
recording, the device history list and single-device details. Field names are
camelCase on the wire.
"""
from datetime import datetime
from typing import List, Optional, Union
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ..services.pagination import Page
from ..services.summary import DeviceSummary


class CamelModel(BaseModel):
    """Base model serialising field names as camelCase."""
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class HistoryEntryOut(CamelModel):
    """One deduplicated access of a domain or user."""
    entity_id: UUID = Field(description="Domain or user UUID")
    display_name: Optional[str] = Field(None, description="Resolved name, null for dangling references")
    timestamp: int = Field(description="Access time (unix seconds)")


class IpRecordOut(CamelModel):
    """An IP address observed for the device."""
    ip: str
    timestamp: int = Field(description="Observation time (unix seconds)")


class DeviceSummaryOut(CamelModel):
    """Device with scope-restricted counts and interaction histories."""
    id: UUID = Field(description="Device record UUID")
    device_id: str = Field(description="External device identifier")
    mac_addr: str = Field(description="MAC address reported at registration")
    unique_domain_count: int = Field(ge=0, description="Distinct visible domains seen on the device")
    unique_user_count: int = Field(ge=0, description="Distinct visible users seen on the device")
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    ip_address: List[IpRecordOut] = Field(default_factory=list, description="IP history in recording order")
    domains_history: List[HistoryEntryOut] = Field(default_factory=list, description="Newest first")
    users_history: List[HistoryEntryOut] = Field(default_factory=list, description="Newest first")
    
    @classmethod
    def from_summary(cls, summary: DeviceSummary) -> "DeviceSummaryOut":
        return cls.model_validate(summary)


class DevicePage(CamelModel):
    """Paginated envelope of device summaries."""
    docs: List[DeviceSummaryOut]
    total_docs: int = Field(ge=0)
    limit: int = Field(ge=1)
    page: int = Field(ge=1)
    total_pages: int = Field(ge=0)
    paging_counter: int
    has_prev_page: bool
    has_next_page: bool
    prev_page: Optional[int] = None
    next_page: Optional[int] = None
    
    @classmethod
    def from_page(cls, page: Page[DeviceSummary]) -> "DevicePage":
        return cls(
            docs=[DeviceSummaryOut.from_summary(summary) for summary in page.docs],
            total_docs=page.total_docs,
            limit=page.limit,
            page=page.page,
            total_pages=page.total_pages,
            paging_counter=page.paging_counter,
            has_prev_page=page.has_prev_page,
            has_next_page=page.has_next_page,
            prev_page=page.prev_page,
            next_page=page.next_page,
        )


class DeviceListResponse(CamelModel):
    """Response of the device history list."""
    message: str = "All devices"
    devices: Union[DevicePage, List[DeviceSummaryOut]]
    
    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "message": "All devices",
                "devices": {
                    "docs": [
                        {
                            "id": "550e8400-e29b-41d4-a716-446655440000",
                            "deviceId": "HMD-0042",
                            "macAddr": "a4:5e:60:d1:22:10",
                            "uniqueDomainCount": 1,
                            "uniqueUserCount": 2,
                            "updatedAt": "2026-01-10T15:30:00Z",
                            "ipAddress": [{"ip": "10.0.0.7", "timestamp": 1768059000}],
                            "domainsHistory": [
                                {"entityId": "660e8400-e29b-41d4-a716-446655440000", "displayName": "acme", "timestamp": 1768059000}
                            ],
                            "usersHistory": [],
                        }
                    ],
                    "totalDocs": 1,
                    "limit": 10,
                    "page": 1,
                    "totalPages": 1,
                    "pagingCounter": 1,
                    "hasPrevPage": False,
                    "hasNextPage": False,
                    "prevPage": None,
                    "nextPage": None,
                },
            }
        }
    )


class DeviceDetails(CamelModel):
    merged_results: List[DeviceSummaryOut]


class DeviceDetailResponse(CamelModel):
    """Response of the single-device lookup."""
    message: str = "Device Found"
    details: DeviceDetails


class RegisterDeviceRequest(CamelModel):
    """Request payload for explicit device registration."""
    device_id: str = Field(min_length=1, max_length=255, description="External device identifier")
    mac_addr: str = Field(min_length=1, max_length=64, description="Device MAC address")


class InteractionRequest(CamelModel):
    """Request payload recording a domain or user access on a device."""
    entity_id: UUID = Field(description="Domain or user UUID")
    mac_addr: str = Field(min_length=1, max_length=64, description="Used if the device must be auto-registered")
    timestamp: Optional[int] = Field(None, ge=0, description="Access time (unix seconds); defaults to now")


class DeviceResponse(CamelModel):
    """Stored device record."""
    id: UUID
    device_id: str
    mac_addr: str
    created_at: datetime
    updated_at: datetime
