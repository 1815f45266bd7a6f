from fastapi import APIRouter, Body, Depends, status
from typing import Any, List

from solar_tracker.core.exceptions import (
    BulkValidationError,
    InstallationNotFoundError,
    RecordValidationError,
    ValidationError,
)
from solar_tracker.core.logging_config import logger
from solar_tracker.modules.auth.dependencies import get_current_identity, get_installation_store
from solar_tracker.modules.auth.identity import UserIdentity
from solar_tracker.schemas.installation import (
    BulkCreateResponse,
    BulkErrorResponse,
    InstallationRecord,
    MessageResponse,
    TerritoryResponse,
)
from solar_tracker.services.installation_store import InstallationStore
from solar_tracker.services.installation_validator import normalize, normalize_batch, validate_fields
from solar_tracker.services.territories import resolve_utility_territory


router = APIRouter()


@router.get("", response_model=List[InstallationRecord], response_model_exclude_unset=True)
async def list_installations(
    identity: UserIdentity = Depends(get_current_identity),
    store: InstallationStore = Depends(get_installation_store)
):
    """All installations in the caller's partition"""
    partition = store.partition_for(identity)
    return await store.read(partition, identity)


@router.post(
    "/bulk",
    response_model=BulkCreateResponse,
    response_model_exclude_unset=True,
    status_code=status.HTTP_201_CREATED,
    responses={400: {"model": BulkErrorResponse}},
)
async def bulk_create_installations(
    payload: Any = Body(...),
    identity: UserIdentity = Depends(get_current_identity),
    store: InstallationStore = Depends(get_installation_store)
):
    """
    Create many installations at once.

    All-or-nothing: if any row fails validation the whole batch is rejected
    and nothing is written.
    """
    rows = payload.get("installations") if isinstance(payload, dict) else None
    if not isinstance(rows, list) or not rows:
        raise ValidationError("installations must be a non-empty array")

    records, failures = normalize_batch(rows, identity)
    if failures:
        logger.warning(
            f"Rejected bulk import: {len(failures)} of {len(rows)} rows invalid",
            extra={"event_type": "bulk_rejected", "rows": len(rows), "failed_rows": len(failures)}
        )
        raise BulkValidationError(failures)

    partition = store.partition_for(identity)
    added = await store.add_many(records, partition, identity)
    logger.info(
        f"Bulk imported {len(added)} installations",
        extra={"event_type": "bulk_imported", "rows": len(added)}
    )
    return {"added": len(added), "installations": added}


@router.get("/{installation_id}", response_model=InstallationRecord, response_model_exclude_unset=True)
async def get_installation(
    installation_id: str,
    identity: UserIdentity = Depends(get_current_identity),
    store: InstallationStore = Depends(get_installation_store)
):
    partition = store.partition_for(identity)
    installation = await store.find(installation_id, partition, identity)
    if not installation:
        raise InstallationNotFoundError(installation_id)
    return installation


@router.get("/{installation_id}/territory", response_model=TerritoryResponse, response_model_exclude_none=True)
async def get_installation_territory(
    installation_id: str,
    identity: UserIdentity = Depends(get_current_identity),
    store: InstallationStore = Depends(get_installation_store)
):
    """Utility territory for a stored installation (computed, not stored)"""
    partition = store.partition_for(identity)
    installation = await store.find(installation_id, partition, identity)
    if not installation:
        raise InstallationNotFoundError(installation_id)
    return resolve_utility_territory(installation).to_dict()


@router.post("", response_model=InstallationRecord, response_model_exclude_unset=True, status_code=status.HTTP_201_CREATED)
async def create_installation(
    payload: Any = Body(...),
    identity: UserIdentity = Depends(get_current_identity),
    store: InstallationStore = Depends(get_installation_store)
):
    result = normalize(payload, identity)
    if not result.ok:
        raise RecordValidationError(result.errors)

    partition = store.partition_for(identity)
    return await store.add(result.record, partition, identity)


@router.put("/{installation_id}", response_model=InstallationRecord, response_model_exclude_unset=True)
async def update_installation(
    installation_id: str,
    payload: Any = Body(...),
    identity: UserIdentity = Depends(get_current_identity),
    store: InstallationStore = Depends(get_installation_store)
):
    """Replace the editable fields; id, owner and createdAt are kept"""
    fields, errors = validate_fields(payload)
    if errors:
        raise RecordValidationError(errors)

    partition = store.partition_for(identity)
    return await store.update(installation_id, fields, partition, identity)


@router.delete("/{installation_id}", response_model=MessageResponse)
async def delete_installation(
    installation_id: str,
    identity: UserIdentity = Depends(get_current_identity),
    store: InstallationStore = Depends(get_installation_store)
):
    partition = store.partition_for(identity)
    await store.delete(installation_id, partition, identity)
    return {"message": "Installation deleted successfully"}
