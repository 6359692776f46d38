"""
Template Manager - the editing session that owns every template

Keeps templates keyed by manifest id, tracks the current template, persists
each effective change through a PersistenceService and moves templates in and
out of the exchange formats in `bundles`.
"""

import json
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from studio.core import StudioCfg, dump_json, get_logger, load_config

from . import bundles
from .persistence import MemoryPersistence, PersistenceService
from .presets import elements_from_schema
from .sdk import (
    Author,
    ConflictPolicy,
    ImportFormatError,
    Manifest,
    PresetKind,
    TemplateExistsError,
    TemplateNotFoundError,
    TemplateSnapshot,
)
from .template_model import GraphicTemplate
from .validate_template import validate_template

log = get_logger("manager")


class TemplateManager:
    def __init__(
        self,
        persistence: Optional[PersistenceService] = None,
        cfg: Optional[StudioCfg] = None,
        load: bool = True,
    ):
        self.persistence = persistence or MemoryPersistence()
        self.cfg = cfg or load_config()
        self._templates: Dict[str, GraphicTemplate] = {}
        self._current_id: Optional[str] = None
        if load:
            self.load_from_storage()

    # ---------------- Storage ----------------

    def load_from_storage(self) -> int:
        """Load every stored snapshot; corrupt ones are skipped. Returns how many loaded."""
        for template_id, snapshot in self.persistence.load_all().items():
            self._track(GraphicTemplate.from_snapshot(snapshot))
        current = self.persistence.load_current()
        if current in self._templates:
            self._current_id = current
        log.info(f"Loaded {len(self._templates)} templates from storage")
        return len(self._templates)

    def _save(self, template: GraphicTemplate) -> None:
        try:
            self.persistence.save(template.id, template.to_json())
        except Exception as e:
            log.error(f"Failed to save template {template.id}: {e}")
            raise

    def _save_current(self) -> None:
        try:
            self.persistence.save_current(self._current_id)
        except Exception as e:
            log.error(f"Failed to save current template marker: {e}")
            raise

    def _track(self, template: GraphicTemplate) -> GraphicTemplate:
        self._templates[template.id] = template
        template.subscribe(self._on_template_changed)
        return template

    def _untrack(self, template_id: str) -> Optional[GraphicTemplate]:
        template = self._templates.pop(template_id, None)
        if template is not None:
            template.unsubscribe(self._on_template_changed)
        return template

    def _on_template_changed(self, template: GraphicTemplate) -> None:
        old_id = next((key for key, t in self._templates.items() if t is template), None)
        if old_id is None:
            return
        if old_id != template.id:
            if template.id in self._templates:
                clash = template.id
                template.update_manifest({"id": old_id})
                raise TemplateExistsError(clash)
            self._templates[template.id] = self._templates.pop(old_id)
            self.persistence.delete(old_id)
            if self._current_id == old_id:
                self._current_id = template.id
                self._save_current()
            log.info(f"Template {old_id} renamed to {template.id}")
        self._save(template)

    # ---------------- Lookup ----------------

    def get_template(self, template_id: str) -> Optional[GraphicTemplate]:
        return self._templates.get(template_id)

    def require_template(self, template_id: str) -> GraphicTemplate:
        template = self._templates.get(template_id)
        if template is None:
            raise TemplateNotFoundError(template_id)
        return template

    def list_templates(self) -> List[GraphicTemplate]:
        return list(self._templates.values())

    def __contains__(self, template_id: str) -> bool:
        return template_id in self._templates

    def __len__(self) -> int:
        return len(self._templates)

    @property
    def current_template(self) -> Optional[GraphicTemplate]:
        return self._templates.get(self._current_id) if self._current_id else None

    def set_current_template(self, template_id: str) -> bool:
        if template_id not in self._templates:
            return False
        self._current_id = template_id
        self._save_current()
        return True

    # ---------------- Lifecycle ----------------

    def create_template(
        self,
        kind: Union[str, PresetKind],
        template_id: str,
        name: str,
        description: str = "",
    ) -> GraphicTemplate:
        if template_id in self._templates:
            raise TemplateExistsError(template_id)
        defaults = self.cfg.manifest
        template = GraphicTemplate.create_from_preset(
            kind,
            template_id,
            name,
            description,
            author=Author(name=defaults.author_name, email=defaults.author_email),
            version=defaults.version,
            main=defaults.main,
            supports_real_time=defaults.supports_real_time,
            supports_non_real_time=defaults.supports_non_real_time,
        )
        if self.cfg.animation:
            template.update_animation_settings(self.cfg.animation)
        self._add(template, make_current=True)
        return template

    def delete_template(self, template_id: str) -> bool:
        template = self._untrack(template_id)
        if template is None:
            return False
        self.persistence.delete(template_id)
        if self._current_id == template_id:
            self._current_id = None
            self._save_current()
        log.info(f"Deleted template {template_id}")
        return True

    def duplicate_template(self, template_id: str, new_id: str, new_name: str) -> GraphicTemplate:
        original = self.require_template(template_id)
        if new_id in self._templates:
            raise TemplateExistsError(new_id)
        data = original.to_json()
        data["manifest"] = {**data["manifest"], "id": new_id, "name": new_name}
        data["webComponent"] = None
        duplicate = GraphicTemplate.from_snapshot(data)
        self._add(duplicate, make_current=False)
        return duplicate

    def _add(self, template: GraphicTemplate, make_current: bool) -> None:
        self._track(template)
        self._save(template)
        if make_current:
            self._current_id = template.id
            self._save_current()
        log.info(f"Added template {template.id}")

    def validate_template(self, template_id: str) -> Dict[str, Any]:
        return validate_template(self.require_template(template_id))

    # ---------------- Export ----------------

    def export_template(self, template_id: str) -> Dict[str, str]:
        """OGraf file set; the artifact is generated here if it is not cached."""
        template = self.require_template(template_id)
        manifest = template.manifest.to_dict()
        return bundles.ograf_files(manifest, template.artifact, dump_json(manifest))

    def export_editor_template(self, template_id: str, export_date: Optional[str] = None) -> Dict[str, Any]:
        template = self.require_template(template_id)
        return bundles.editor_template_document(template.to_json(), export_date)

    def export_bundle(self, template_id: str, export_date: Optional[str] = None) -> Dict[str, Any]:
        files = self.export_template(template_id)
        return bundles.export_bundle_document(template_id, files, export_date)

    def export_multi_bundle(
        self,
        template_ids: Iterable[str],
        bundle_name: str = "ograf-templates",
        export_date: Optional[str] = None,
    ) -> Dict[str, Any]:
        entries = [
            (template_id, self._templates[template_id].to_json())
            for template_id in template_ids
            if template_id in self._templates
        ]
        return bundles.multi_bundle_document(entries, bundle_name, export_date)

    # ---------------- Import ----------------

    def _free_id(self, template_id: str) -> str:
        n = 2
        while f"{template_id}-{n}" in self._templates:
            n += 1
        return f"{template_id}-{n}"

    def import_template(
        self,
        manifest_json: Union[str, Mapping[str, Any]],
        component_code: Optional[str] = None,
        policy: Union[str, ConflictPolicy] = ConflictPolicy.REPLACE,
        elements: Optional[List[Any]] = None,
        animation_settings: Optional[Mapping[str, Any]] = None,
    ) -> GraphicTemplate:
        """
        Import a manifest (and optionally component source) as a new template.

        Without `elements`, a layout is synthesized from the schema's string
        properties. Component source is kept only if it looks like a component.
        """
        policy = ConflictPolicy(policy)
        if isinstance(manifest_json, str):
            try:
                manifest_data = json.loads(manifest_json)
            except json.JSONDecodeError as e:
                raise ImportFormatError(f"Invalid manifest JSON: {e}") from e
        else:
            manifest_data = dict(manifest_json)
        if not isinstance(manifest_data, dict) or not manifest_data.get("id") or not manifest_data.get("name"):
            raise ImportFormatError("Invalid manifest: missing required fields (id, name)")

        template_id = manifest_data["id"]
        replacing = False
        if template_id in self._templates:
            if policy == ConflictPolicy.SKIP:
                log.info(f"Import skipped, {template_id} already exists")
                return self._templates[template_id]
            if policy == ConflictPolicy.RENAME:
                manifest_data["id"] = self._free_id(template_id)
                log.info(f"Importing {template_id} as {manifest_data['id']}")
            else:
                replacing = True

        manifest = Manifest.model_validate(manifest_data)
        if elements is None:
            elements = elements_from_schema(manifest.properties, manifest.name)
        snapshot = TemplateSnapshot(
            manifest=manifest,
            elements=elements,
            animation_settings=animation_settings,
        )
        template = GraphicTemplate.from_snapshot(snapshot)
        # a renamed import registers a different tag, so its supplied source is stale
        if bundles.is_valid_component_code(component_code) and manifest.id == template_id:
            template.set_artifact(bundles.clean_component_code(component_code))
        # the old template goes only once the replacement has been built
        if replacing:
            self.delete_template(template_id)
        self._add(template, make_current=True)
        return template

    def import_document(
        self,
        data: Any,
        policy: Union[str, ConflictPolicy] = ConflictPolicy.REPLACE,
    ) -> List[GraphicTemplate]:
        """Import any supported exchange document. Returns the templates now holding the data."""
        kind = bundles.detect_format(data)
        if kind == bundles.MULTI_BUNDLE:
            return self.import_multi_bundle(data, policy)
        if kind == bundles.EDITOR_TEMPLATE:
            return [self._import_editor_template(data.get("template"), policy)]
        if kind == bundles.EXPORT_BUNDLE:
            manifest_text, component = bundles.split_export_bundle(data)
            return [self.import_template(manifest_text, component, policy)]
        return [self.import_template(bundles.normalize_manifest(data), None, policy)]

    def import_multi_bundle(
        self,
        data: Mapping[str, Any],
        policy: Union[str, ConflictPolicy] = ConflictPolicy.REPLACE,
    ) -> List[GraphicTemplate]:
        templates = data.get("templates")
        if not isinstance(templates, dict):
            raise ImportFormatError("Invalid bundle format")
        imported = []
        for template_id, template_data in templates.items():
            if ConflictPolicy(policy) == ConflictPolicy.SKIP and template_id in self._templates:
                continue
            try:
                imported.append(self._import_editor_template(template_data, policy))
            except (ImportFormatError, ValueError) as e:
                log.warning(f"Bundle entry {template_id} not imported: {e}")
        log.info(f"Imported {len(imported)} of {len(templates)} bundled templates")
        return imported

    def _import_editor_template(self, template_data: Any, policy) -> GraphicTemplate:
        if not isinstance(template_data, dict) or "manifest" not in template_data:
            raise ImportFormatError("Editor template is missing its manifest")
        return self.import_template(
            template_data["manifest"],
            template_data.get("webComponent"),
            policy,
            elements=template_data.get("elements"),
            animation_settings=template_data.get("animationSettings"),
        )
