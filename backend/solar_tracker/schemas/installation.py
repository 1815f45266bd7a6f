from pydantic import BaseModel, ConfigDict, Field
from typing import Any, List, Optional


class InstallationRecord(BaseModel):
    """Stored installation, serialized with the camelCase keys used on disk.

    Numeric fields are returned as stored; older records may hold strings.
    """
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: str
    homeowner_name: Optional[str] = Field(None, alias="homeownerName")
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    zip: Optional[str] = None
    system_size: Optional[Any] = Field(None, alias="systemSize")
    install_date: Optional[Any] = Field(None, alias="installDate")
    notes: Optional[str] = ""
    latitude: Optional[Any] = None
    longitude: Optional[Any] = None
    created_at: Optional[str] = Field(None, alias="createdAt")
    updated_at: Optional[str] = Field(None, alias="updatedAt")
    owner_id: Optional[str] = Field(None, alias="ownerId")
    owner_username: Optional[str] = Field(None, alias="ownerUsername")


class BulkCreateResponse(BaseModel):
    added: int
    installations: List[InstallationRecord]


class BulkFailure(BaseModel):
    index: int
    errors: List[str]


class BulkErrorResponse(BaseModel):
    error: str
    failures: List[BulkFailure]


class MessageResponse(BaseModel):
    message: str


class TerritoryResponse(BaseModel):
    code: str
    name: str
    states: List[str] = []
    cities: Optional[List[str]] = None
    color: str


class TerritoryListResponse(BaseModel):
    territories: List[TerritoryResponse]
    default: TerritoryResponse
