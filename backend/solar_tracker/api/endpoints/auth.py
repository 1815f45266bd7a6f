from fastapi import APIRouter, Depends, Request, status

from solar_tracker.core.exceptions import InvalidCredentialsError, ValidationError
from solar_tracker.core.logging_config import logger, set_user_id
from solar_tracker.modules.auth.dependencies import get_auth_gate, require_admin_key
from solar_tracker.modules.auth.gate import AuthGate
from solar_tracker.schemas.auth import (
    LoginResponse,
    UserCreate,
    UserCreatedResponse,
    UserListResponse,
    UserLogin,
)


MIN_PASSWORD_LENGTH = 8

router = APIRouter()


@router.post("/login", response_model=LoginResponse)
async def login(
    request: Request,
    credentials: UserLogin,
    auth_gate: AuthGate = Depends(get_auth_gate)
):
    """Exchange username/password for a bearer token"""
    if not credentials.username or not credentials.password:
        raise ValidationError("Username and password are required")

    client_ip = request.client.host if request.client else "unknown"
    identity = await auth_gate.verify_credentials(credentials.username, credentials.password)
    if not identity:
        logger.log_auth_event(
            event="login",
            success=False,
            username=credentials.username,
            reason="Invalid credentials",
            client_ip=client_ip
        )
        raise InvalidCredentialsError()

    token = auth_gate.issue_token(identity)
    set_user_id(identity.id)
    logger.log_auth_event(event="login", success=True, username=identity.username, client_ip=client_ip)

    return {"token": token, "user": identity.to_dict()}


@router.post(
    "/users",
    response_model=UserCreatedResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin_key)],
)
async def create_user(
    user_data: UserCreate,
    auth_gate: AuthGate = Depends(get_auth_gate)
):
    """Provision a file-backed user (admin key required)"""
    if not user_data.username or not user_data.password:
        raise ValidationError("Username and password are required")

    if len(user_data.password) < MIN_PASSWORD_LENGTH:
        raise ValidationError("Password must be at least 8 characters long")

    identity = await auth_gate.create_user(user_data.username, user_data.password)
    return {"user": identity.to_dict()}


@router.get(
    "/users",
    response_model=UserListResponse,
    response_model_exclude_none=True,
    dependencies=[Depends(require_admin_key)],
)
async def list_users(auth_gate: AuthGate = Depends(get_auth_gate)):
    """List static and file-backed users without password hashes"""
    return {"users": await auth_gate.list_users()}
