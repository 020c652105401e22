"""FastAPI routes"""
from functools import lru_cache

from fastapi import APIRouter, Depends

from vetassist.core.agent import AssistantAgent
from vetassist.api.schemas import ExtractRequest, ExtractResponse, HealthResponse
from vetassist.core.config import Config

router = APIRouter()

# Load endpoint paths from config
_health_endpoint = Config.get("api", "endpoints", "health", default="/health")
_extract_endpoint = Config.get("api", "endpoints", "extract", default="/api/v1/extract")


@lru_cache(maxsize=1)
def get_agent() -> AssistantAgent:
    """Shared agent, created on first use"""
    return AssistantAgent()


@router.get(_health_endpoint, response_model=HealthResponse)
async def health_check():
    """Health check endpoint"""
    return HealthResponse(
        status=Config.get("api", "health_status", default="ok"),
        model=Config.GEMINI_MODEL
    )


@router.post(_extract_endpoint, response_model=ExtractResponse)
def extract(request: ExtractRequest, agent: AssistantAgent = Depends(get_agent)):
    """
    Extract a patient draft from free text

    The draft is only a proposal; clients must let the user review it before
    creating anything on the clinic backend.
    """
    result = agent.process_message(request.message)
    return ExtractResponse(
        success=result.success,
        draft=result.draft,
        error=result.error,
        processing_time=result.processing_time
    )
