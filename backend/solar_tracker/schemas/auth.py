from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional


class UserLogin(BaseModel):
    # Presence is checked by the endpoint so the error matches the other 400s
    username: Optional[str] = None
    password: Optional[str] = None


class UserCreate(BaseModel):
    username: Optional[str] = None
    password: Optional[str] = None


class UserSummary(BaseModel):
    id: str
    username: str


class LoginResponse(BaseModel):
    token: str
    user: UserSummary


class UserCreatedResponse(BaseModel):
    user: UserSummary


class UserListItem(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    username: str
    created_at: Optional[str] = Field(None, alias="createdAt")
    managed_by_env: Optional[bool] = Field(None, alias="managedByEnv")


class UserListResponse(BaseModel):
    users: List[UserListItem]
