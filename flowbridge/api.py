"""FastAPI HTTP API for workflow conversion."""

from typing import Any, Literal, Optional

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from . import __version__
from .converter import default_converter, detect_platform, entity_types
from .models import Direction, Platform


app = FastAPI(
    title="flowbridge API",
    description="Convert workflows between n8n and Make",
    version=__version__,
)


# Request/Response models
class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ConvertRequest(_CamelModel):
    """Request to convert a workflow."""
    workflow: Any = Field(..., description="Source workflow JSON")
    source_platform: str = Field("auto", description="'n8n', 'make' or 'auto'")
    target_platform: Optional[str] = Field(None, description="'n8n' or 'make' (default: the other platform)")
    options: dict[str, Any] = Field(default_factory=dict, description="Conversion options")
    review_format: Literal["structured", "flattened"] = Field("structured", description="Shape of review entries")


class ValidateRequest(_CamelModel):
    """Request to validate a workflow's structure."""
    workflow: Any = Field(..., description="Workflow JSON")
    platform: str = Field("auto", description="'n8n', 'make' or 'auto'")


class ValidateResponse(BaseModel):
    """Structural validation outcome."""
    valid: bool
    platform: Optional[str] = None
    errors: list[str] = Field(default_factory=list)


class CoverageRequest(_CamelModel):
    """Request to report mapping coverage of a workflow."""
    workflow: Any = Field(..., description="Source workflow JSON")
    source_platform: str = Field("auto", description="'n8n', 'make' or 'auto'")


def _platform(value: str, workflow: Any) -> Platform:
    if value in (None, "auto"):
        platform = detect_platform(workflow)
        if platform is None:
            raise HTTPException(status_code=400, detail="Could not detect the workflow platform")
        return platform
    try:
        return Platform(value)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Unknown platform: {value}")


# Endpoints
@app.get("/")
async def root():
    """Root endpoint with API information."""
    return {
        "name": "flowbridge API",
        "version": __version__,
        "endpoints": {
            "convert": "POST /convert - Convert a workflow between n8n and Make",
            "validate": "POST /validate - Check a workflow's structure",
            "mappings": "GET /mappings/{direction} - List mapping definitions",
            "coverage": "POST /coverage - Report which entity types have mappings",
        },
    }


@app.post("/convert")
async def convert(request: ConvertRequest):
    """Convert a workflow.

    Conversion problems are reported in the result's logs, so this endpoint
    answers 200 even for invalid input; check ``isValidInput``.
    """
    result = default_converter().convert(
        request.workflow,
        request.source_platform,
        request.target_platform,
        request.options,
    )
    return result.to_dict(review_format=request.review_format)


@app.post("/validate", response_model=ValidateResponse)
async def validate(request: ValidateRequest):
    """Validate a workflow's structure without converting it."""
    if request.platform == "auto":
        platform = detect_platform(request.workflow)
        if platform is None:
            return ValidateResponse(valid=False, errors=["Could not detect the workflow platform"])
    else:
        platform = _platform(request.platform, request.workflow)

    validation = default_converter().validators[platform](request.workflow)
    return ValidateResponse(valid=validation.valid, platform=platform.value, errors=validation.errors)


@app.get("/mappings/{direction}")
async def list_mappings(direction: str):
    """Mapping definitions for ``n8nToMake`` or ``makeToN8n``."""
    try:
        direction = Direction(direction)
    except ValueError:
        raise HTTPException(status_code=404, detail=f"Unknown direction: {direction}")
    return {"direction": direction.value, "mappings": default_converter().registry.to_dict(direction)}


@app.post("/coverage")
async def coverage(request: CoverageRequest):
    """Which entity types of a workflow have mapping definitions."""
    source = _platform(request.source_platform, request.workflow)
    types = entity_types(request.workflow, source)
    direction = Direction.between(source, source.other)
    report = default_converter().registry.coverage(types, direction)
    return {"direction": direction.value, **report.to_dict()}


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy"}
