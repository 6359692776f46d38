"""
Template Model

In-memory template (manifest, elements, animation settings) plus the mutators the
editing session uses. The generated artifact is cached and every effective
mutation drops the cache; regeneration happens lazily on the next read of
`artifact`.
"""

import itertools
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

from studio.core import get_logger

from .codegen import generate_artifact
from .presets import build_preset, default_element_fields
from .sdk import (
    DEFAULT_ANIMATION_SETTINGS,
    AnimationSettings,
    Author,
    Element,
    Manifest,
    PresetKind,
    PropertyType,
    SchemaProperty,
    TemplateSnapshot,
)

log = get_logger("template")

ChangeListener = Callable[["GraphicTemplate"], None]


def _by_field_name(model_cls, updates: Mapping[str, Any]) -> Dict[str, Any]:
    """Rewrite camelCase (alias) keys to field names so either spelling overrides the dump."""
    names = {field.alias: name for name, field in model_cls.model_fields.items() if field.alias}
    return {names.get(key, key): value for key, value in updates.items()}


class GraphicTemplate:
    """A broadcast graphic template owned by one editing session."""

    def __init__(
        self,
        manifest: Manifest,
        elements: Optional[List[Element]] = None,
        animation_settings: Optional[AnimationSettings] = None,
        web_component: Optional[str] = None,
    ):
        snapshot = TemplateSnapshot(
            manifest=manifest,
            elements=list(elements or []),
            animation_settings=animation_settings,
            web_component=web_component,
        )
        self._manifest = snapshot.manifest.model_copy(deep=True)
        self._elements = [el.model_copy(deep=True) for el in snapshot.elements]
        self._animation_settings = (
            animation_settings.model_copy(deep=True) if animation_settings else None
        )
        self._artifact = web_component
        self._id_counter = itertools.count(1)
        self._listeners: List[ChangeListener] = []

    # ---------------- Construction ----------------

    @classmethod
    def create_from_preset(
        cls,
        kind: Union[str, PresetKind],
        template_id: str,
        name: str,
        description: str = "",
        author: Optional[Author] = None,
        **manifest_fields: Any,
    ) -> "GraphicTemplate":
        properties, elements, actions = build_preset(kind)
        fields = {"step_count": 1, **manifest_fields}
        manifest = Manifest(
            id=template_id,
            name=name,
            description=description,
            author=author or Author(),
            schema={"type": "object", "properties": properties},
            custom_actions=actions,
            **fields,
        )
        log.info(f"Created template {template_id} from preset {kind}")
        return cls(manifest, elements)

    @classmethod
    def from_snapshot(cls, snapshot: Union[TemplateSnapshot, Dict[str, Any]]) -> "GraphicTemplate":
        if not isinstance(snapshot, TemplateSnapshot):
            snapshot = TemplateSnapshot.model_validate(snapshot)
        return cls(
            snapshot.manifest,
            snapshot.elements,
            snapshot.animation_settings,
            snapshot.web_component,
        )

    from_json = from_snapshot

    def snapshot(self) -> TemplateSnapshot:
        return TemplateSnapshot(
            manifest=self._manifest.model_copy(deep=True),
            elements=[el.model_copy(deep=True) for el in self._elements],
            animation_settings=(
                self._animation_settings.model_copy(deep=True)
                if self._animation_settings
                else None
            ),
            web_component=self._artifact,
        )

    def to_json(self) -> Dict[str, Any]:
        return self.snapshot().to_dict()

    def copy(self) -> "GraphicTemplate":
        return GraphicTemplate.from_snapshot(self.snapshot())

    # ---------------- Read access ----------------

    @property
    def id(self) -> str:
        return self._manifest.id

    @property
    def manifest(self) -> Manifest:
        return self._manifest.model_copy(deep=True)

    @property
    def elements(self) -> List[Element]:
        return [el.model_copy(deep=True) for el in self._elements]

    @property
    def animation_settings(self) -> Optional[AnimationSettings]:
        if self._animation_settings is None:
            return None
        return self._animation_settings.model_copy(deep=True)

    @property
    def effective_animation_settings(self) -> AnimationSettings:
        return (self._animation_settings or DEFAULT_ANIMATION_SETTINGS).model_copy(deep=True)

    @property
    def is_artifact_cached(self) -> bool:
        return self._artifact is not None

    @property
    def artifact(self) -> str:
        """Generated component source, regenerated only after a mutation."""
        if self._artifact is None:
            self._artifact = generate_artifact(
                self._manifest, self._elements, self._animation_settings
            )
            log.debug(f"Regenerated artifact for {self.id}")
        return self._artifact

    def get_element_by_id(self, element_id: str) -> Optional[Element]:
        element = self._find(element_id)
        return element.model_copy(deep=True) if element else None

    # ---------------- Change tracking ----------------

    def subscribe(self, listener: ChangeListener) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def unsubscribe(self, listener: ChangeListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _changed(self, what: str) -> None:
        self._artifact = None
        log.debug(f"{self.id}: {what}; artifact invalidated")
        for listener in list(self._listeners):
            listener(self)

    # ---------------- Element mutators ----------------

    def add_element(self, spec: Union[Mapping[str, Any], Element]) -> Element:
        """
        Append an element under a freshly generated id.

        A spec carrying only `type` is completed with that type's defaults. Any
        `id` in the spec is ignored.
        """
        if isinstance(spec, Element):
            fields = spec.model_dump(exclude={"id"})
        else:
            fields = {k: v for k, v in spec.items() if k != "id"}
        if "type" not in fields:
            raise ValueError("Element spec requires a type")
        merged = {**default_element_fields(fields["type"]), **fields}
        element = Element.model_validate({"id": self._next_element_id(), **merged})
        self._elements.append(element)
        self._changed(f"added element {element.id}")
        return element.model_copy(deep=True)

    def remove_element(self, element_id: str) -> bool:
        before = len(self._elements)
        self._elements = [el for el in self._elements if el.id != element_id]
        if len(self._elements) == before:
            return False
        self._changed(f"removed element {element_id}")
        return True

    def update_element(self, element_id: str, updates: Mapping[str, Any]) -> bool:
        """
        Merge `updates` into the element. An unknown id is a silent no-op.

        Renaming through `id` is allowed as long as the new id is unused.
        """
        index = self._index_of(element_id)
        if index is None:
            return False
        current = self._elements[index]
        merged = {**current.model_dump(), **dict(updates)}
        new_id = merged.get("id", element_id)
        if new_id != element_id and self._find(new_id) is not None:
            raise ValueError(f"Element id already in use: {new_id}")
        element = Element.model_validate(merged)
        if element == current:
            return True
        self._elements[index] = element
        self._changed(f"updated element {element_id}")
        return True

    def update_element_style(self, element_id: str, style_updates: Mapping[str, Any]) -> bool:
        """Merge individual style properties; a None value removes the property."""
        element = self._find(element_id)
        if element is None:
            return False
        style = dict(element.style)
        for key, value in style_updates.items():
            if value is None:
                style.pop(key, None)
            else:
                style[key] = value
        return self.update_element(element_id, {"style": style})

    def _find(self, element_id: str) -> Optional[Element]:
        index = self._index_of(element_id)
        return self._elements[index] if index is not None else None

    def _index_of(self, element_id: str) -> Optional[int]:
        for i, el in enumerate(self._elements):
            if el.id == element_id:
                return i
        return None

    def _next_element_id(self) -> str:
        taken = {el.id for el in self._elements}
        while True:
            candidate = f"element_{next(self._id_counter)}"
            if candidate not in taken:
                return candidate

    # ---------------- Schema mutators ----------------

    def add_property(
        self,
        name: str,
        type: Union[str, PropertyType] = PropertyType.STRING,
        title: str = "",
        default: Any = None,
    ) -> SchemaProperty:
        """Add or replace a schema property. New names keep insertion order."""
        prop = SchemaProperty(type=PropertyType(type).value, title=title or name, default=default)
        self._manifest.graphic_schema.properties[name] = prop
        self._changed(f"set property {name}")
        return prop.model_copy(deep=True)

    def remove_property(self, name: str) -> bool:
        if name not in self._manifest.graphic_schema.properties:
            return False
        del self._manifest.graphic_schema.properties[name]
        self._changed(f"removed property {name}")
        return True

    # ---------------- Manifest / animation mutators ----------------

    def update_manifest(self, updates: Mapping[str, Any]) -> Manifest:
        data = self._manifest.model_dump()
        data.update(_by_field_name(Manifest, updates))
        manifest = Manifest.model_validate(data)
        if manifest != self._manifest:
            self._manifest = manifest
            self._changed("updated manifest")
        return self.manifest

    def update_animation_settings(self, updates: Mapping[str, Any]) -> AnimationSettings:
        base = self._animation_settings or DEFAULT_ANIMATION_SETTINGS
        data = base.model_dump()
        data.update(_by_field_name(AnimationSettings, updates))
        settings = AnimationSettings.model_validate(data)
        if settings != self._animation_settings:
            self._animation_settings = settings
            self._changed("updated animation settings")
        return settings.model_copy(deep=True)

    def set_artifact(self, text: Optional[str]) -> None:
        """Install externally supplied component source (e.g. from an import)."""
        self._artifact = text

    def __repr__(self) -> str:
        return f"GraphicTemplate(id={self.id!r}, elements={len(self._elements)})"
