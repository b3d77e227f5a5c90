"""
API Request and Response Models.

Pydantic models for FastAPI request/response validation and
automatic OpenAPI documentation generation. Field names are camelCase on
the wire and snake_case in Python.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ..services.models import Region


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ============================================================================
# Generation Request/Response Models
# ============================================================================

class GenerateRequest(_CamelModel):
    """
    Request model for one creative generation.

    The source is either a storage path or base64 image data.
    """
    creative_id: Optional[str] = Field(None, description="Source creative ID")
    generation_type: str = Field("full_creative", description="Attempt type label")
    copy_mode: Optional[str] = Field(
        None,
        description="logo_only, logo_and_color, minor_character_variation, full_custom, default_mask_edit",
        examples=["logo_only"],
    )
    aspect_ratio: str = Field("original", description='"original" or "W:H"', examples=["9:16"])
    custom_prompt: Optional[str] = Field(None, description="Instruction for full_custom")
    source_path: Optional[str] = Field(None, description="Storage path of the source image")
    source_image_base64: Optional[str] = Field(None, description="Base64-encoded source image")
    regions: List[Region] = Field(default_factory=list, description="Detected regions (x, y, width, height, type)")
    brand_name: Optional[str] = Field(None, description="Brand replacing competitors")

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "creativeId": "c0ffee00-0000-0000-0000-000000000001",
                "copyMode": "logo_only",
                "aspectRatio": "9:16",
                "sourcePath": "creatives/competitor/banner.png",
                "regions": [{"x": 40, "y": 30, "width": 200, "height": 80, "type": "logo"}],
            }
        },
    )


class GenerateResponse(_CamelModel):
    """Successful generation."""
    success: bool = True
    result_url: str = Field(..., description="Public URL of the generated creative")
    attempt_id: Optional[str] = Field(None, description="Attempt record ID")
    width: int
    height: int
    copy_mode: str
    instruction: str = Field(..., description="Instruction sent to the render backend")
    instruction_attempts: int = 1
    marker_present: bool = True
    render_backend: str
    mask_path: Optional[str] = None
    stage_history: List[str] = Field(default_factory=list)
    timestamp: datetime = Field(default_factory=datetime.now)


class GenerateErrorResponse(_CamelModel):
    """Failed generation; `attemptId` is set when an attempt record exists."""
    success: bool = False
    error: str
    attempt_id: Optional[str] = None
    stage: Optional[str] = None
    timestamp: datetime = Field(default_factory=datetime.now)


# ============================================================================
# Runs & System Models
# ============================================================================

class RunsResponse(BaseModel):
    """Recent generation attempts."""
    runs: List[Dict[str, Any]] = Field(default_factory=list)
    count: int = 0


class HealthResponse(BaseModel):
    """Response model for health check endpoint."""
    status: str = Field(..., description="Service status")
    version: str = Field(..., description="API version")
    timestamp: datetime = Field(default_factory=datetime.now)
    services: Dict[str, str] = Field(
        default_factory=dict,
        description="Status of dependent services (database, image providers)"
    )


class ErrorResponse(BaseModel):
    """Standard error response model."""
    error: str = Field(..., description="Error message")
    detail: Optional[str] = Field(None, description="Detailed error information")
    timestamp: datetime = Field(default_factory=datetime.now)
