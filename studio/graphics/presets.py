"""
Preset starting configurations and per-type element defaults.

Each preset fixes the initial element set, the data schema and the slide custom
actions of a new template.
"""

import re
from typing import Any, Dict, List, Set, Tuple, Union

from .sdk import CustomAction, Element, ElementType, PresetKind, SchemaProperty

TEXT_STYLE = {
    "fontFamily": "Arial, sans-serif",
    "color": "#ffffff",
}

_ID_INVALID = re.compile(r"[^A-Za-z0-9_\-]")


def _element_id_for(key: str, taken: Set[str]) -> str:
    """Schema keys may hold any text; element ids must stay CSS-safe and unique."""
    base = _ID_INVALID.sub("_", key)
    if not base or not (base[0].isalpha() or base[0] == "_"):
        base = f"_{base}"
    candidate, n = base, 2
    while candidate in taken:
        candidate = f"{base}_{n}"
        n += 1
    taken.add(candidate)
    return candidate


def _slide_actions(subject: str) -> List[CustomAction]:
    return [
        CustomAction(id="slideIn", name="Slide In", description=f"Animate the {subject} sliding in"),
        CustomAction(id="slideOut", name="Slide Out", description=f"Animate the {subject} sliding out"),
    ]


def _lower_third():
    properties = {
        "name": SchemaProperty(type="string", title="Name", default="John Doe"),
        "title": SchemaProperty(type="string", title="Title", default="Reporter"),
    }
    elements = [
        Element(
            id="background", type=ElementType.RECT, x=50, y=450, width=400, height=80,
            style={"backgroundColor": "rgba(0, 120, 204, 0.9)", "borderRadius": "4px"},
        ),
        Element(
            id="name", type=ElementType.TEXT, x=70, y=460, width=360, height=30,
            content="{{name}}",
            style={"fontSize": "24px", **TEXT_STYLE, "fontWeight": "bold", "textAlign": "left"},
        ),
        Element(
            id="title", type=ElementType.TEXT, x=70, y=490, width=360, height=25,
            content="{{title}}",
            style={"fontSize": "16px", **TEXT_STYLE, "textAlign": "left"},
        ),
    ]
    return properties, elements, _slide_actions("lower third")


def _title():
    properties = {
        "title": SchemaProperty(type="string", title="Title Text", default="Breaking News"),
        "subtitle": SchemaProperty(type="string", title="Subtitle", default=""),
    }
    elements = [
        Element(
            id="background", type=ElementType.RECT, x=100, y=200, width=600, height=120,
            style={"backgroundColor": "rgba(220, 20, 20, 0.9)", "borderRadius": "8px"},
        ),
        Element(
            id="title", type=ElementType.TEXT, x=120, y=220, width=560, height=50,
            content="{{title}}",
            style={"fontSize": "36px", **TEXT_STYLE, "fontWeight": "bold", "textAlign": "center"},
        ),
        Element(
            id="subtitle", type=ElementType.TEXT, x=120, y=270, width=560, height=30,
            content="{{subtitle}}",
            style={"fontSize": "18px", **TEXT_STYLE, "textAlign": "center"},
        ),
    ]
    return properties, elements, _slide_actions("title")


def _bug():
    properties = {
        "logo": SchemaProperty(type="string", title="Logo URL", default=""),
    }
    elements = [
        Element(
            id="background", type=ElementType.CIRCLE, x=50, y=50, width=80, height=80,
            style={"backgroundColor": "rgba(0, 0, 0, 0.8)", "border": "2px solid #ffffff"},
        ),
        Element(
            id="logo", type=ElementType.IMAGE, x=60, y=60, width=60, height=60,
            content="{{logo}}",
            style={"objectFit": "contain"},
        ),
    ]
    return properties, elements, _slide_actions("bug")


def _custom():
    properties = {
        "text": SchemaProperty(type="string", title="Text", default="Custom Text"),
    }
    elements = [
        Element(
            id="text", type=ElementType.TEXT, x=100, y=100, width=200, height=50,
            content="{{text}}",
            style={"fontSize": "20px", **TEXT_STYLE, "textAlign": "left"},
        ),
    ]
    return properties, elements, _slide_actions("graphic")


_PRESETS = {
    PresetKind.LOWER_THIRD: _lower_third,
    PresetKind.TITLE: _title,
    PresetKind.BUG: _bug,
    PresetKind.CUSTOM: _custom,
}


def resolve_preset_kind(kind: Union[str, PresetKind]) -> PresetKind:
    """Accept enum members, values, and the editor's dashed spelling (`lower-third`)."""
    if isinstance(kind, PresetKind):
        return kind
    aliases = {"lower-third": PresetKind.LOWER_THIRD, "lower_third": PresetKind.LOWER_THIRD}
    if kind in aliases:
        return aliases[kind]
    try:
        return PresetKind(kind)
    except ValueError:
        return PresetKind.CUSTOM


def build_preset(
    kind: Union[str, PresetKind],
) -> Tuple[Dict[str, SchemaProperty], List[Element], List[CustomAction]]:
    """Fresh (properties, elements, custom actions) for a preset. Unknown kinds build `custom`."""
    return _PRESETS[resolve_preset_kind(kind)]()


def default_element_fields(element_type: Union[str, ElementType]) -> Dict[str, Any]:
    """Fields a newly added element of `element_type` starts with (id excluded)."""
    element_type = ElementType(element_type)
    is_text = element_type == ElementType.TEXT
    fields: Dict[str, Any] = {
        "type": element_type,
        "x": 100,
        "y": 100,
        "width": 200 if is_text else 100,
        "height": 50 if is_text else 100,
    }
    if element_type == ElementType.TEXT:
        fields["content"] = "New Text"
        fields["style"] = {
            "fontSize": "20px",
            **TEXT_STYLE,
            "textAlign": "left",
            "backgroundColor": "transparent",
        }
    elif element_type == ElementType.IMAGE:
        fields["content"] = "https://via.placeholder.com/100x100"
        fields["style"] = {"objectFit": "contain"}
    elif element_type == ElementType.RECT:
        fields["content"] = ""
        fields["style"] = {"backgroundColor": "#007acc", "borderRadius": "0px", "border": "none"}
    else:
        fields["content"] = ""
        fields["style"] = {"backgroundColor": "#007acc", "border": "none"}
    return fields


def elements_from_schema(properties: Dict[str, SchemaProperty], name: str = "") -> List[Element]:
    """
    Synthesize a layout for an imported manifest: one stacked text element per
    string property, with a background rect sized to cover them. A manifest
    without properties whose name reads like a lower third gets just the
    lower-third background.
    """
    if not properties:
        lowered = name.lower()
        if "lower" in lowered or "third" in lowered:
            return [_lower_third()[1][0]]
        return []

    elements: List[Element] = []
    taken: Set[str] = set()
    y_position = 100
    for index, (key, prop) in enumerate(properties.items()):
        if prop.type != "string":
            continue
        lowered = key.lower()
        elements.append(
            Element(
                id=_element_id_for(key, taken),
                type=ElementType.TEXT,
                x=100,
                y=y_position + index * 60,
                width=300,
                height=50,
                content=f"{{{{{key}}}}}",
                style={
                    "fontSize": "24px" if "title" in lowered else "20px",
                    **TEXT_STYLE,
                    "fontWeight": "bold" if ("name" in lowered or "title" in lowered) else "normal",
                },
            )
        )

    if not elements:
        return elements

    max_right = max(el.x + el.width for el in elements) + 50
    max_bottom = max(el.y + el.height for el in elements) + 20
    min_x = min(el.x for el in elements) - 20
    min_y = min(el.y for el in elements) - 10
    background = Element(
        id="background" if "background" not in taken else _element_id_for("background_rect", taken),
        type=ElementType.RECT,
        x=min_x,
        y=min_y,
        width=max_right - min_x,
        height=max_bottom - min_y,
        style={"backgroundColor": "rgba(0, 120, 204, 0.9)", "borderRadius": "4px", "zIndex": "-1"},
    )
    return [background] + elements
