"""
Code Generator

Turns (manifest, elements, animation settings) into the source text of a
self-registering OGraf display component. The model is first reduced to an
`ArtifactSpec` holding every value already encoded as a JavaScript literal;
the Jinja2 template only places those literals, so escaping and ordering live
in one place and the output is byte-identical for identical inputs.
"""

import json
import os
from dataclasses import dataclass
from typing import Iterable, List, Optional

from jinja2 import Environment, FileSystemLoader, StrictUndefined

from .naming import component_class_name, kebab_case, tag_name
from .sdk import (
    CANVAS_H,
    CANVAS_W,
    DEFAULT_ANIMATION_SETTINGS,
    FONT_FAMILY,
    AnimationSettings,
    Element,
    Manifest,
)

TEMPLATES_DIR = os.path.join(os.path.dirname(__file__), "templates")
ARTIFACT_TEMPLATE = "component.mjs.j2"

_env = Environment(
    loader=FileSystemLoader(TEMPLATES_DIR),
    autoescape=False,
    undefined=StrictUndefined,
    keep_trailing_newline=True,
    trim_blocks=True,
    lstrip_blocks=True,
)


def js_literal(value, indent: Optional[int] = None) -> str:
    """JSON is valid JavaScript; ASCII-only output keeps line separators escaped."""
    return json.dumps(value, indent=indent, ensure_ascii=True)


@dataclass(frozen=True)
class ArtifactSpec:
    """Everything the artifact template needs, pre-encoded."""

    class_name: str
    tag_name: str
    tag_literal: str
    elements_json: str
    animation_json: str
    element_styles: str
    element_styles_literal: str
    canvas_width: int = CANVAS_W
    canvas_height: int = CANVAS_H
    font_family_literal: str = js_literal(FONT_FAMILY)


def style_declarations(style) -> str:
    return " ".join(f"{kebab_case(key)}: {value};" for key, value in style.items())


def generate_element_styles(elements: Iterable[Element]) -> str:
    """One `.element-<id>` rule per element, style keys converted to CSS names."""
    rules: List[str] = []
    for element in elements:
        declarations = style_declarations(element.style)
        rules.append(f".element-{element.id} {{ {declarations} }}" if declarations else f".element-{element.id} {{ }}")
    return "\n".join(rules)


def build_artifact_spec(
    manifest: Manifest,
    elements: Iterable[Element],
    settings: Optional[AnimationSettings] = None,
) -> ArtifactSpec:
    elements = list(elements)
    settings = settings or DEFAULT_ANIMATION_SETTINGS
    styles = generate_element_styles(elements)
    tag = tag_name(manifest.id)
    return ArtifactSpec(
        class_name=component_class_name(manifest.id),
        tag_name=tag,
        tag_literal=js_literal(tag),
        elements_json=js_literal([element.to_dict() for element in elements], indent=4),
        animation_json=js_literal(settings.to_dict(), indent=4),
        element_styles=styles,
        element_styles_literal=js_literal(styles),
    )


def render_artifact(spec: ArtifactSpec) -> str:
    return _env.get_template(ARTIFACT_TEMPLATE).render(spec=spec)


def generate_artifact(
    manifest: Manifest,
    elements: Iterable[Element],
    settings: Optional[AnimationSettings] = None,
) -> str:
    """Pure: identical inputs always produce identical text. Never mutates its inputs."""
    return render_artifact(build_artifact_spec(manifest, elements, settings))
