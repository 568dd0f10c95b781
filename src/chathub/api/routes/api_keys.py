"""API key routes.

Key values never leave the server in full: every response masks all but the
first characters.
"""

from typing import List

from fastapi import APIRouter

from chathub.core.dependencies import CurrentUserDep, StoreDep
from chathub.schemas.api_key import ApiKey, SetApiKeyRequest
from chathub.schemas.provider import Provider

router = APIRouter(prefix="/api/api-keys", tags=["ApiKey"])


@router.get("", response_model=List[ApiKey], summary="List API keys")
def list_api_keys(store: StoreDep, current_user: CurrentUserDep) -> List[ApiKey]:
    """List the current user's keys, active and inactive, masked."""
    return [key.masked() for key in store.list_api_keys(current_user.id)]


@router.post("", response_model=ApiKey, summary="Set the API key for a provider")
def set_api_key(
    req: SetApiKeyRequest,
    store: StoreDep,
    current_user: CurrentUserDep,
) -> ApiKey:
    """Store a new active key; earlier keys for the provider are deactivated."""
    api_key = store.set_api_key(current_user.id, req.provider, req.key_value)
    return api_key.masked()


@router.delete("/{provider}", summary="Remove the API key for a provider")
def delete_api_key(
    provider: Provider,
    store: StoreDep,
    current_user: CurrentUserDep,
) -> dict:
    store.delete_api_key(current_user.id, provider)
    return {"success": True}
