#!/usr/bin/env python3
"""
Template Validator - structural checks for editor templates and OGraf manifests

Works on plain JSON data so it can vet documents before they are turned into
models, and on live GraphicTemplate objects. Errors block export; warnings flag
things playout systems may reject.
"""

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Dict, List

# Ensure repo root on path
ROOT = Path(__file__).parent.parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from studio.graphics.interpolate import find_tokens
from studio.graphics.sdk import (
    ELEMENT_ID_PATTERN,
    SEMVER_PATTERN,
    SLUG_PATTERN,
    TEMPLATE_FORMAT,
    ElementType,
)

VALID_ELEMENT_TYPES = [t.value for t in ElementType]
REQUIRED_METHODS = ["load", "dispose", "playAction", "stopAction", "updateAction", "customAction"]


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def validate_manifest(manifest: Any) -> List[str]:
    """Validate manifest fields the editor and playout rely on."""
    if not isinstance(manifest, dict):
        return ["Manifest must be an object"]
    errors = []

    if not manifest.get("id"):
        errors.append("Missing template ID")
    elif not isinstance(manifest["id"], str) or not SLUG_PATTERN.match(manifest["id"]):
        errors.append("Invalid id format. Use lowercase letters, numbers, hyphens, and underscores only.")

    if not manifest.get("name"):
        errors.append("Missing template name")
    if not manifest.get("main"):
        errors.append("Missing main file reference")

    for flag in ("supportsRealTime", "supportsNonRealTime"):
        if flag in manifest and not isinstance(manifest[flag], bool):
            errors.append(f"{flag} must be a boolean")

    if "stepCount" in manifest:
        step_count = manifest["stepCount"]
        if not isinstance(step_count, int) or isinstance(step_count, bool) or step_count < 0:
            errors.append("stepCount must be a non-negative integer")

    schema = manifest.get("schema")
    if not isinstance(schema, dict) or "properties" not in schema:
        errors.append("Missing schema properties")
    elif not isinstance(schema["properties"], dict):
        errors.append("Schema properties must be an object")

    actions = manifest.get("customActions", [])
    if not isinstance(actions, list):
        errors.append("customActions must be an array")
    else:
        for i, action in enumerate(actions):
            if not isinstance(action, dict) or not action.get("id"):
                errors.append(f"Custom action {i}: missing id")

    return errors


def validate_element(element: Any, index: int) -> List[str]:
    """Validate a single element."""
    if not isinstance(element, dict):
        return [f"Element {index}: must be an object"]
    errors = []

    if not element.get("id"):
        errors.append(f"Element {index}: missing ID")
    elif not isinstance(element["id"], str) or not ELEMENT_ID_PATTERN.match(element["id"]):
        errors.append(f"Element {index}: ID must be letters, numbers, hyphens and underscores")
    if not element.get("type"):
        errors.append(f"Element {index}: missing type")
    elif element["type"] not in VALID_ELEMENT_TYPES:
        errors.append(f"Element {index}: type must be one of {VALID_ELEMENT_TYPES}")

    for field in ("x", "y", "width", "height"):
        if not _is_number(element.get(field)):
            label = f"{field} position" if field in ("x", "y") else field
            errors.append(f"Element {index}: invalid {label}")

    if "style" in element and not isinstance(element["style"], dict):
        errors.append(f"Element {index}: style must be an object")

    return errors


def validate_elements(elements: Any) -> List[str]:
    if not isinstance(elements, list):
        return ["Elements must be an array"]
    errors = []
    seen = set()
    for i, element in enumerate(elements):
        errors.extend(validate_element(element, i))
        element_id = element.get("id") if isinstance(element, dict) else None
        if element_id:
            if element_id in seen:
                errors.append(f"Element {i}: duplicate ID {element_id}")
            seen.add(element_id)
    return errors


def validate_component(code: Any) -> List[str]:
    """Minimal sanity check for externally supplied component source."""
    if not code:
        return []
    if not isinstance(code, str):
        return ["Component must be source text"]
    errors = []
    if "HTMLElement" not in code:
        errors.append("Component must extend HTMLElement")
    return errors


def template_warnings(data: Dict[str, Any]) -> List[str]:
    """Non-blocking findings: playout quirks and unbound placeholders."""
    warnings = []
    manifest = data.get("manifest") or {}
    template_id = manifest.get("id")
    if isinstance(template_id, str) and template_id[:1].isdigit():
        warnings.append(f"Tag {template_id}-graphic starts with a digit; browsers reject such custom element names")
    version = manifest.get("version")
    if isinstance(version, str) and not SEMVER_PATTERN.match(version):
        warnings.append(f"Version {version!r} is not semantic versioning")

    schema = manifest.get("schema") if isinstance(manifest.get("schema"), dict) else {}
    properties = schema.get("properties") if isinstance(schema.get("properties"), dict) else {}
    for element in data.get("elements") or []:
        if not isinstance(element, dict):
            continue
        for token in find_tokens(element.get("content")):
            if token not in properties:
                warnings.append(f"Element {element.get('id')}: placeholder {{{{{token}}}}} has no schema property")

    code = data.get("webComponent")
    if isinstance(code, str):
        missing = [m for m in REQUIRED_METHODS if m not in code]
        if missing:
            warnings.append(f"Component is missing methods: {', '.join(missing)}")
    return warnings


def validate_template_data(data: Any) -> List[str]:
    """Validate a serialized template (`{manifest, elements, animationSettings, webComponent}`)."""
    if not isinstance(data, dict):
        return ["Template must be an object"]
    errors = validate_manifest(data.get("manifest"))
    errors.extend(validate_elements(data.get("elements", [])))
    errors.extend(validate_component(data.get("webComponent")))

    settings = data.get("animationSettings")
    if settings is not None:
        if not isinstance(settings, dict):
            errors.append("animationSettings must be an object")
        else:
            for field in ("slideInDuration", "slideOutDuration"):
                if field in settings and (not _is_number(settings[field]) or settings[field] <= 0):
                    errors.append(f"animationSettings.{field} must be a positive number")
    return errors


def validate_template(template) -> Dict[str, Any]:
    """`{isValid, errors, warnings}` for a GraphicTemplate."""
    data = template.to_json()
    errors = validate_template_data(data)
    return {"isValid": not errors, "errors": errors, "warnings": template_warnings(data)}


def main():
    """Main entry point for template validation."""
    parser = argparse.ArgumentParser(description="Validate OGraf editor templates")
    parser.add_argument("--in", dest="input_file", required=True, help="Template JSON (editor export or snapshot)")
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose output")
    args = parser.parse_args()

    input_path = Path(args.input_file)
    if not input_path.exists():
        print(f"Error: Input file not found: {input_path}")
        sys.exit(1)

    try:
        with open(input_path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        print(f"Error: Invalid JSON in {input_path}: {e}")
        sys.exit(1)

    if isinstance(data, dict) and data.get("format") == TEMPLATE_FORMAT:
        data = data.get("template")

    print(f"Validating template: {input_path}")
    errors = validate_template_data(data)
    if errors:
        print(f"\nValidation failed with {len(errors)} errors:")
        for error in errors:
            print(f"  - {error}")
        sys.exit(1)

    print("\nValidation passed")
    warnings = template_warnings(data)
    for warning in warnings:
        print(f"  ! {warning}")

    if args.verbose:
        manifest = data["manifest"]
        print("\nTemplate details:")
        print(f"  Id: {manifest['id']}")
        print(f"  Name: {manifest['name']}")
        print(f"  Elements: {len(data.get('elements', []))}")
        print(f"  Properties: {', '.join(manifest['schema']['properties']) or '-'}")


if __name__ == "__main__":
    main()
