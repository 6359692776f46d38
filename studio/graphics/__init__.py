"""
OGraf Graphics - Template Studio Package

This package holds the template model, the artifact generator and the preview
runtime that drives generated components.
"""

from .codegen import ArtifactSpec, build_artifact_spec, generate_artifact, generate_element_styles
from .interpolate import find_tokens, interpolate
from .manager import TemplateManager
from .naming import component_class_name, kebab_case, pascal_case, tag_name
from .persistence import JsonDirectoryPersistence, MemoryPersistence, PersistenceService
from .presets import build_preset, default_element_fields
from .registry import ComponentRegistry
from .runtime import GraphicRuntime, RuntimeState, TransitionOutcome
from .sandbox import RenderSandbox
from .scheduler import AsyncioScheduler, ManualScheduler, Scheduler
from .sdk import (  # Constants; Enums; Errors; Models; Helper functions
    CANVAS_H,
    CANVAS_W,
    DEFAULT_ANIMATION_SETTINGS,
    AnimationSettings,
    ConflictPolicy,
    Direction,
    Easing,
    Element,
    ElementType,
    ImportFormatError,
    Manifest,
    PresetKind,
    PropertyType,
    SequenceError,
    StudioError,
    TemplateExistsError,
    TemplateNotFoundError,
    TemplateSnapshot,
    load_snapshot,
    save_snapshot,
    validate_snapshot,
)
from .template_model import GraphicTemplate

__version__ = "0.1.0"
__all__ = [
    "CANVAS_W",
    "CANVAS_H",
    "DEFAULT_ANIMATION_SETTINGS",
    "ElementType",
    "PropertyType",
    "Easing",
    "Direction",
    "PresetKind",
    "ConflictPolicy",
    "StudioError",
    "TemplateNotFoundError",
    "TemplateExistsError",
    "ImportFormatError",
    "SequenceError",
    "Manifest",
    "Element",
    "AnimationSettings",
    "TemplateSnapshot",
    "validate_snapshot",
    "save_snapshot",
    "load_snapshot",
    "kebab_case",
    "pascal_case",
    "component_class_name",
    "tag_name",
    "interpolate",
    "find_tokens",
    "build_preset",
    "default_element_fields",
    "GraphicTemplate",
    "ArtifactSpec",
    "build_artifact_spec",
    "generate_artifact",
    "generate_element_styles",
    "Scheduler",
    "AsyncioScheduler",
    "ManualScheduler",
    "GraphicRuntime",
    "RuntimeState",
    "TransitionOutcome",
    "ComponentRegistry",
    "RenderSandbox",
    "PersistenceService",
    "MemoryPersistence",
    "JsonDirectoryPersistence",
    "TemplateManager",
]
