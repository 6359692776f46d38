"""
Exchange formats for templates.

- OGraf file set: `{"<id>.ograf.json": manifest JSON, "<main>": component source}`
- Editor template: `{format, version, exportDate, template}`
- Export bundle: `{templateId, exportDate, files}`
- Multi-template bundle: `{format, version, bundleName, exportDate, templates}`
- Raw OGraf manifest (`$schema` + `id`), as published by third parties

`exportDate` is the only field that varies between two exports of the same
template; every builder accepts it explicitly.
"""

import os
import re
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Tuple

from .sdk import (
    BUNDLE_FORMAT,
    EXCHANGE_VERSION,
    MANIFEST_SUFFIX,
    TEMPLATE_FORMAT,
    ImportFormatError,
)

EDITOR_TEMPLATE = "editor-template"
EXPORT_BUNDLE = "export-bundle"
MULTI_BUNDLE = "multi-bundle"
RAW_MANIFEST = "raw-manifest"

_EXPORT_DEFAULT = re.compile(r"^export\s+default\s+", re.MULTILINE)
_EXPORT = re.compile(r"^export\s+", re.MULTILINE)


def iso_now() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def ograf_files(manifest: Dict[str, Any], artifact: str, manifest_text: str) -> Dict[str, str]:
    """File name -> contents for a deployable OGraf graphic."""
    return {
        f"{manifest['id']}{MANIFEST_SUFFIX}": manifest_text,
        manifest.get("main") or "template.mjs": artifact,
    }


def editor_template_document(template_json: Dict[str, Any], export_date: Optional[str] = None) -> Dict[str, Any]:
    return {
        "format": TEMPLATE_FORMAT,
        "version": EXCHANGE_VERSION,
        "exportDate": export_date or iso_now(),
        "template": template_json,
    }


def export_bundle_document(
    template_id: str, files: Dict[str, str], export_date: Optional[str] = None
) -> Dict[str, Any]:
    return {
        "templateId": template_id,
        "exportDate": export_date or iso_now(),
        "files": files,
    }


def multi_bundle_document(
    templates: Iterable[Tuple[str, Dict[str, Any]]],
    bundle_name: str = "ograf-templates",
    export_date: Optional[str] = None,
) -> Dict[str, Any]:
    return {
        "format": BUNDLE_FORMAT,
        "version": EXCHANGE_VERSION,
        "exportDate": export_date or iso_now(),
        "bundleName": bundle_name,
        "templates": {template_id: data for template_id, data in templates},
    }


def detect_format(data: Any) -> str:
    """Classify an imported JSON document or raise ImportFormatError."""
    if not isinstance(data, dict):
        raise ImportFormatError("Import document must be a JSON object")
    if data.get("format") == TEMPLATE_FORMAT:
        return EDITOR_TEMPLATE
    if data.get("format") == BUNDLE_FORMAT:
        return MULTI_BUNDLE
    if data.get("templateId") and isinstance(data.get("files"), dict):
        return EXPORT_BUNDLE
    if data.get("$schema") and data.get("id"):
        return RAW_MANIFEST
    raise ImportFormatError("Unrecognised template document format")


def split_export_bundle(data: Dict[str, Any]) -> Tuple[str, str]:
    """Return (manifest JSON text, component source) from an export bundle."""
    files = data.get("files") or {}
    manifest_name = next((name for name in files if name.endswith(MANIFEST_SUFFIX)), None)
    if manifest_name is None:
        raise ImportFormatError("No manifest file found in bundle")
    component_name = next(
        (name for name in files if name.endswith(".mjs") or name.endswith(".js")), None
    )
    component = files[component_name] if component_name else ""
    return files[manifest_name], component


def normalize_manifest(manifest: Dict[str, Any]) -> Dict[str, Any]:
    """Fill the gaps third-party OGraf manifests commonly leave."""
    normalized = dict(manifest)
    if not normalized.get("version") or normalized.get("version") == "0":
        normalized["version"] = "1.0.0"

    author = normalized.get("author")
    if isinstance(author, str):
        normalized["author"] = {"name": author, "email": ""}
    elif isinstance(author, dict):
        normalized["author"] = {"email": "", **author}
    else:
        normalized["author"] = {"name": "Unknown", "email": ""}

    if not normalized.get("main"):
        normalized["main"] = "template.mjs"
    schema = normalized.get("schema")
    if not isinstance(schema, dict):
        normalized["schema"] = {"type": "object", "properties": {}}
    elif not isinstance(schema.get("properties"), dict):
        normalized["schema"] = {**schema, "properties": {}}
    return normalized


def is_valid_component_code(code: Any) -> bool:
    if not code or not isinstance(code, str):
        return False
    return "HTMLElement" in code and "class" in code and ("playAction" in code or "load" in code)


def clean_component_code(code: str) -> str:
    """Strip the first `export default` / `export` prefix so the source can be evaluated as a script."""
    cleaned = _EXPORT_DEFAULT.sub("", code, count=1)
    cleaned = _EXPORT.sub("", cleaned, count=1)
    return cleaned.strip()


def write_files(files: Dict[str, str], directory: str) -> List[str]:
    """Write an OGraf file set into `directory`; returns the written paths."""
    os.makedirs(directory, exist_ok=True)
    written = []
    for name, content in files.items():
        path = os.path.join(directory, os.path.basename(name))
        with open(path, "w", encoding="utf-8") as f:
            f.write(content)
        written.append(path)
    return written
