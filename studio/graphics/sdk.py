#!/usr/bin/env python3
"""
Core SDK for the OGraf Template Studio

This module provides the single source of truth for types, constants and exchange
formats. All graphics modules import from this file to avoid drift.

Field names are snake_case in Python and camelCase on the wire, so every model
round-trips the manifest/template JSON the playout side expects.
"""

import json
import re
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator
from pydantic.alias_generators import to_camel


# ============================================================================
# CONSTANTS
# ============================================================================

CANVAS_W = 1920
CANVAS_H = 1080
FONT_FAMILY = "Arial, sans-serif"

OGRAF_SCHEMA_URL = "https://ograf.ebu.io/v1/specification/json-schemas/graphics/schema.json"
SLUG_PATTERN = re.compile(r"^[a-z0-9\-_]+$")
ELEMENT_ID_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_\-]*$")
SEMVER_PATTERN = re.compile(r"^\d+\.\d+\.\d+(?:[-+][0-9A-Za-z.\-+]*)?$")

TEMPLATE_FORMAT = "ograf-editor-template"
BUNDLE_FORMAT = "ograf-editor-bundle"
EXCHANGE_VERSION = "1.0.0"
MANIFEST_SUFFIX = ".ograf.json"


class ElementType(str, Enum):
    TEXT = "text"
    IMAGE = "image"
    RECT = "rect"
    CIRCLE = "circle"


class PropertyType(str, Enum):
    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"


class Easing(str, Enum):
    EASE_OUT = "ease-out"
    EASE_IN = "ease-in"
    EASE_IN_OUT = "ease-in-out"
    LINEAR = "linear"


class Direction(str, Enum):
    LEFT = "left"
    RIGHT = "right"
    TOP = "top"
    BOTTOM = "bottom"


class PresetKind(str, Enum):
    LOWER_THIRD = "lowerThird"
    TITLE = "title"
    BUG = "bug"
    CUSTOM = "custom"


class ConflictPolicy(str, Enum):
    """What an import does when the incoming template id is already taken."""

    REPLACE = "replace"
    SKIP = "skip"
    RENAME = "rename"


# ============================================================================
# ERRORS
# ============================================================================


class StudioError(Exception):
    """Base class for template studio errors."""


class TemplateNotFoundError(StudioError):
    def __init__(self, template_id: str):
        super().__init__(f'Template with id "{template_id}" not found')
        self.template_id = template_id


class TemplateExistsError(StudioError):
    def __init__(self, template_id: str):
        super().__init__(f'Template with id "{template_id}" already exists')
        self.template_id = template_id


class ImportFormatError(StudioError):
    """Raised when an imported document is not a recognised template format."""


class SequenceError(StudioError):
    """Raised when a preview command arrives in an order the sandbox cannot repair."""


# ============================================================================
# PYDANTIC MODELS
# ============================================================================


class CamelModel(BaseModel):
    """Base model: snake_case attributes, camelCase JSON."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class Author(CamelModel):
    name: str = "OGraf Editor"
    email: str = ""


class SchemaProperty(CamelModel):
    """One data field the graphic accepts through updateAction."""

    model_config = ConfigDict(extra="allow")

    # imported manifests may carry any JSON-schema type; the editor creates PropertyType values
    type: str = PropertyType.STRING.value
    title: str = ""
    default: Any = None


class GraphicSchema(CamelModel):
    model_config = ConfigDict(extra="allow")

    type: str = "object"
    properties: Dict[str, SchemaProperty] = Field(default_factory=dict)


class CustomAction(CamelModel):
    model_config = ConfigDict(extra="allow")

    id: str
    name: str
    description: str = ""


class Manifest(CamelModel):
    """OGraf manifest (`<id>.ograf.json`). Unknown vendor fields are preserved."""

    model_config = ConfigDict(extra="allow")

    schema_url: str = Field(default=OGRAF_SCHEMA_URL, alias="$schema")
    id: str = Field(..., description="Slug identifier, also the tag prefix")
    version: str = "1.0.0"
    name: str
    description: str = ""
    author: Author = Field(default_factory=Author)
    main: str = "template.mjs"
    graphic_schema: GraphicSchema = Field(default_factory=GraphicSchema, alias="schema")
    supports_real_time: bool = True
    supports_non_real_time: bool = False
    step_count: int = 1
    custom_actions: List[CustomAction] = Field(default_factory=list)

    @field_validator("id")
    @classmethod
    def validate_id(cls, v):
        if not SLUG_PATTERN.match(v):
            raise ValueError(
                "id must use lowercase letters, numbers, hyphens and underscores only"
            )
        return v

    @field_validator("step_count")
    @classmethod
    def validate_step_count(cls, v):
        if v < 0:
            raise ValueError("stepCount must not be negative")
        return v

    @property
    def properties(self) -> Dict[str, SchemaProperty]:
        return self.graphic_schema.properties


class Element(CamelModel):
    """Positioned visual element. Geometry is in canvas pixels."""

    model_config = ConfigDict(extra="ignore")

    id: str = Field(..., min_length=1)
    type: ElementType
    x: float = Field(default=0.0, allow_inf_nan=False)
    y: float = Field(default=0.0, allow_inf_nan=False)
    width: float = Field(default=100.0, allow_inf_nan=False)
    height: float = Field(default=100.0, allow_inf_nan=False)
    content: Optional[str] = None
    style: Dict[str, str] = Field(default_factory=dict)

    @field_validator("style", mode="before")
    @classmethod
    def coerce_style_values(cls, v):
        if v is None:
            return {}
        if not isinstance(v, dict):
            raise ValueError("style must be a mapping of property name to value")
        return {str(k): str(val) for k, val in v.items() if val is not None}

    @field_validator("id")
    @classmethod
    def validate_id(cls, v):
        # ids become `.element-<id>` class names and querySelector targets
        if not ELEMENT_ID_PATTERN.match(v):
            raise ValueError(
                "element id must start with a letter or underscore and use letters, "
                "numbers, hyphens and underscores only"
            )
        return v

    @field_serializer("x", "y", "width", "height")
    def serialize_geometry(self, v: float):
        return int(v) if float(v).is_integer() else v


class AnimationSettings(CamelModel):
    """Shared slide timing for every element of a graphic."""

    slide_in_duration: int = Field(default=500, gt=0, description="Milliseconds")
    slide_out_duration: int = Field(default=500, gt=0, description="Milliseconds")
    slide_in_type: Easing = Easing.EASE_OUT
    slide_out_type: Easing = Easing.EASE_IN
    slide_in_direction: Direction = Direction.LEFT
    slide_out_direction: Optional[Direction] = Direction.LEFT

    def to_dict(self) -> Dict[str, Any]:
        # an unset exit direction is written as null so reloads keep the fallback
        return self.model_dump(mode="json", by_alias=True)

    @property
    def exit_direction(self) -> Direction:
        return self.slide_out_direction or self.slide_in_direction


DEFAULT_ANIMATION_SETTINGS = AnimationSettings()


class TemplateSnapshot(CamelModel):
    """Persisted/exchanged form of a template: `{manifest, elements, animationSettings, webComponent}`."""

    manifest: Manifest
    elements: List[Element] = Field(default_factory=list)
    animation_settings: Optional[AnimationSettings] = None
    web_component: Optional[str] = None

    @field_validator("elements")
    @classmethod
    def validate_unique_ids(cls, v):
        seen = set()
        for element in v:
            if element.id in seen:
                raise ValueError(f"Duplicate element id: {element.id}")
            seen.add(element.id)
        return v

    def to_dict(self) -> Dict[str, Any]:
        return {
            "manifest": self.manifest.to_dict(),
            "elements": [element.to_dict() for element in self.elements],
            "animationSettings": (
                self.animation_settings.to_dict() if self.animation_settings else None
            ),
            "webComponent": self.web_component,
        }


# ============================================================================
# HELPER FUNCTIONS
# ============================================================================


def validate_snapshot(data: Union[Dict, TemplateSnapshot]) -> TemplateSnapshot:
    """Validate and return a TemplateSnapshot instance."""
    if isinstance(data, dict):
        return TemplateSnapshot.model_validate(data)
    elif isinstance(data, TemplateSnapshot):
        return data
    else:
        raise TypeError("Data must be a dict or TemplateSnapshot instance")


def save_snapshot(snapshot: TemplateSnapshot, path: Union[str, Path]) -> None:
    """Save a TemplateSnapshot to a JSON file."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(snapshot.to_dict(), f, indent=2, ensure_ascii=False)


def load_snapshot(path: Union[str, Path]) -> TemplateSnapshot:
    """Load a TemplateSnapshot from a JSON file."""
    with open(path, "r", encoding="utf-8") as f:
        data = json.load(f)
    return TemplateSnapshot.model_validate(data)


__all__ = [
    "CANVAS_W", "CANVAS_H", "FONT_FAMILY", "OGRAF_SCHEMA_URL", "SLUG_PATTERN",
    "ELEMENT_ID_PATTERN",
    "SEMVER_PATTERN", "TEMPLATE_FORMAT", "BUNDLE_FORMAT", "EXCHANGE_VERSION",
    "MANIFEST_SUFFIX",
    "ElementType", "PropertyType", "Easing", "Direction", "PresetKind", "ConflictPolicy",
    "StudioError", "TemplateNotFoundError", "TemplateExistsError", "ImportFormatError",
    "SequenceError",
    "CamelModel", "Author", "SchemaProperty", "GraphicSchema", "CustomAction", "Manifest",
    "Element", "AnimationSettings", "DEFAULT_ANIMATION_SETTINGS", "TemplateSnapshot",
    "validate_snapshot", "save_snapshot", "load_snapshot",
]
