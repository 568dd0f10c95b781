"""Provider catalogue routes. Everything here is static; no provider is called."""

from typing import List

from fastapi import APIRouter

from chathub.config import CHAT_TEMPLATES
from chathub.core.dependencies import ProviderServiceDep
from chathub.schemas.provider import ModelListResponse, Provider, ProviderInfo
from chathub.schemas.template import ChatTemplate

router = APIRouter(prefix="/api", tags=["Provider"])


@router.get("/providers", response_model=List[ProviderInfo], summary="List providers")
def list_providers(providers: ProviderServiceDep) -> List[ProviderInfo]:
    return providers.list_providers()


@router.get(
    "/providers/{provider}/models",
    response_model=ModelListResponse,
    summary="List a provider's models",
)
def list_models(provider: Provider, providers: ProviderServiceDep) -> ModelListResponse:
    """Return the hardcoded model list for a provider."""
    return ModelListResponse(models=providers.list_models(provider))


@router.get("/templates", response_model=List[ChatTemplate], summary="List chat templates")
def list_templates() -> List[ChatTemplate]:
    return [ChatTemplate(**t) for t in CHAT_TEMPLATES]
