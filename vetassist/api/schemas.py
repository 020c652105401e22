"""Pydantic schemas for API requests/responses"""
from typing import Optional
from pydantic import BaseModel, Field

from vetassist.core.config import Config
from vetassist.types.extraction import ExtractedPatientData


class ExtractRequest(BaseModel):
    """Free-text registration request"""
    message: str = Field(..., min_length=1, description="Text describing the patient and its medications")


class ExtractResponse(BaseModel):
    """Response for a single extraction"""
    success: bool
    draft: Optional[ExtractedPatientData] = None
    error: Optional[str] = None
    processing_time: Optional[float] = None


class HealthResponse(BaseModel):
    """Health check response"""
    status: str
    model: str
    version: str = Field(default_factory=lambda: Config.get("api", "version", default="1.0.0"))
