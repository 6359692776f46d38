from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from studio.graphics.sdk import SLUG_PATTERN, ConflictPolicy, ElementType, PresetKind, PropertyType


class PreviewAction(str, Enum):
    """Commands the preview endpoint relays to the sandbox"""
    LOAD = "load"
    PLAY = "play"
    STOP = "stop"
    UPDATE = "update"
    CUSTOM = "custom"
    DISPOSE = "dispose"
    UNMOUNT = "unmount"


class TemplateCreate(BaseModel):
    """New template from a preset"""
    kind: PresetKind = PresetKind.LOWER_THIRD
    id: str
    name: str
    description: str = ""

    @field_validator("id")
    @classmethod
    def validate_id(cls, v):
        if not SLUG_PATTERN.match(v):
            raise ValueError("id must use lowercase letters, numbers, hyphens and underscores only")
        return v


class TemplateDuplicate(BaseModel):
    new_id: str
    new_name: str


class TemplateSummary(BaseModel):
    id: str
    name: str
    description: str = ""
    element_count: int = 0
    current: bool = False
    artifact_cached: bool = False


class ElementCreate(BaseModel):
    """Element to add; omitted fields take the per-type defaults"""
    model_config = ConfigDict(extra="forbid")

    type: ElementType
    x: Optional[float] = None
    y: Optional[float] = None
    width: Optional[float] = None
    height: Optional[float] = None
    content: Optional[str] = None
    style: Optional[Dict[str, Any]] = None


class PropertyCreate(BaseModel):
    name: str = Field(..., min_length=1)
    type: PropertyType = PropertyType.STRING
    title: str = ""
    default: Any = None


class ImportRequest(BaseModel):
    """Any supported exchange document, or a manifest plus component source"""
    document: Optional[Dict[str, Any]] = None
    manifest: Optional[Dict[str, Any]] = None
    component: Optional[str] = None
    policy: Optional[ConflictPolicy] = None


class ImportResponse(BaseModel):
    imported: List[str]
    count: int


class BundleRequest(BaseModel):
    template_ids: List[str]
    bundle_name: str = "ograf-templates"


class PreviewRequest(BaseModel):
    skip_animation: bool = False
    data: Dict[str, Any] = Field(default_factory=dict)
    name: Optional[str] = None  # custom action name
    wait: bool = False


class HealthResponse(BaseModel):
    """Health check response"""
    ok: bool = True
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    version: str = "0.1.0"
    templates: int = 0
