"""HTTP routes for invoking and administering the dispatcher."""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Request
from pydantic import AliasChoices, BaseModel, ConfigDict, Field

from llm_dispatcher.orchestrator.dispatcher import Dispatcher
from llm_dispatcher.telemetry.logger import get_logger

logger = get_logger(__name__)

router = APIRouter(
    prefix="/llm",
    tags=["LLM"],
    responses={
        400: {"description": "Validation error"},
        404: {"description": "Not found"},
        500: {"description": "Internal server error"},
    },
)


class InvokeOptions(BaseModel):
    """Optional generation settings. Accepts snake_case and camelCase keys."""

    model_config = ConfigDict(populate_by_name=True)

    system_prompt: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("system_prompt", "systemPrompt")
    )
    temperature: Optional[float] = Field(default=None, ge=0, le=2)
    max_tokens: Optional[int] = Field(
        default=None, ge=1, le=4000, validation_alias=AliasChoices("max_tokens", "maxTokens")
    )
    model_key: Optional[str] = Field(
        default=None, validation_alias=AliasChoices("model_key", "modelKey")
    )


class InvokeRequest(BaseModel):
    prompt: str = Field(..., min_length=1, description="User prompt")
    options: InvokeOptions = Field(default_factory=InvokeOptions)

    def to_dispatch_payload(self) -> Dict[str, Any]:
        return {
            "prompt": self.prompt,
            "system_message": self.options.system_prompt,
            "temperature": self.options.temperature,
            "max_tokens": self.options.max_tokens,
            "model_key": self.options.model_key,
        }


class ActiveToggle(BaseModel):
    is_active: bool = Field(..., validation_alias=AliasChoices("is_active", "isActive"))


def get_dispatcher(request: Request) -> Dispatcher:
    """Dispatcher held by the application."""
    return request.app.state.dispatcher


@router.post("/invoke")
async def invoke(body: InvokeRequest, dispatcher: Dispatcher = Depends(get_dispatcher)) -> Dict[str, Any]:
    """Dispatch a prompt. Provider exhaustion is reported in the payload, not as an HTTP error."""
    logger.info("llm_invoke", prompt_preview=body.prompt[:100])
    result = await dispatcher.dispatch(body.to_dispatch_payload())
    return {"success": True, "data": result.model_dump(mode="json")}


@router.get("/providers")
async def list_providers(dispatcher: Dispatcher = Depends(get_dispatcher)) -> Dict[str, Any]:
    return {
        "success": True,
        "data": {
            "providers": dispatcher.get_provider_status(),
            "registration": dispatcher.registration_report.to_dict(),
        },
    }


@router.get("/stats")
async def provider_stats(dispatcher: Dispatcher = Depends(get_dispatcher)) -> Dict[str, Any]:
    return {
        "success": True,
        "data": {
            "providers": [stats.model_dump(mode="json") for stats in dispatcher.get_provider_stats()],
            "cache": dispatcher.cache.stats(),
        },
    }


@router.post("/providers/refresh")
async def refresh_providers(dispatcher: Dispatcher = Depends(get_dispatcher)) -> Dict[str, Any]:
    results = await dispatcher.force_refresh()
    return {"success": True, "data": {"results": results}}


@router.put("/providers/{name}/active")
async def toggle_provider(
    name: str, body: ActiveToggle, dispatcher: Dispatcher = Depends(get_dispatcher)
) -> Dict[str, Any]:
    config = dispatcher.set_provider_active(name, body.is_active)
    return {"success": True, "data": {"name": config.name, "is_active": config.is_active}}
