import logging
from contextlib import contextmanager
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import Response
from pydantic import ValidationError

from studio.graphics import bundles
from studio.graphics.manager import TemplateManager
from studio.graphics.sandbox import RenderSandbox
from studio.graphics.sdk import (
    ImportFormatError,
    SequenceError,
    TemplateExistsError,
    TemplateNotFoundError,
)
from studio.graphics.template_model import GraphicTemplate

from .config import OperatorConfig
from .models import (
    BundleRequest,
    ElementCreate,
    ImportRequest,
    ImportResponse,
    PreviewAction,
    PreviewRequest,
    PropertyCreate,
    TemplateCreate,
    TemplateDuplicate,
    TemplateSummary,
)
from .security import get_current_operator

logger = logging.getLogger(__name__)

router = APIRouter()


def get_manager(request: Request) -> TemplateManager:
    return request.app.state.manager


def get_sandbox(request: Request) -> RenderSandbox:
    return request.app.state.sandbox


def get_config(request: Request) -> OperatorConfig:
    return request.app.state.config


@contextmanager
def studio_errors():
    """Translate studio exceptions into HTTP errors"""
    try:
        yield
    except TemplateNotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except TemplateExistsError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except SequenceError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except (ImportFormatError, ValidationError, ValueError) as e:
        raise HTTPException(status_code=422, detail=str(e))


def _summary(manager: TemplateManager, template: GraphicTemplate) -> TemplateSummary:
    manifest = template.manifest
    current = manager.current_template
    return TemplateSummary(
        id=template.id,
        name=manifest.name,
        description=manifest.description,
        element_count=len(template.elements),
        current=current is template,
        artifact_cached=template.is_artifact_cached,
    )


def _sync_preview(sandbox: RenderSandbox, template: GraphicTemplate) -> None:
    if sandbox.is_mounted(template.id):
        sandbox.refresh(template)


# ---------------- Templates ----------------


@router.get("/templates", response_model=List[TemplateSummary])
async def list_templates(manager: TemplateManager = Depends(get_manager)):
    """List all templates"""
    return [_summary(manager, t) for t in manager.list_templates()]


@router.post("/templates", status_code=status.HTTP_201_CREATED)
async def create_template(
    body: TemplateCreate,
    manager: TemplateManager = Depends(get_manager),
    current_operator: str = Depends(get_current_operator),
):
    """Create a template from a preset"""
    with studio_errors():
        template = manager.create_template(body.kind, body.id, body.name, body.description)
    logger.info(f"[api] Template {template.id} created by {current_operator}")
    return template.to_json()


@router.get("/templates/{template_id}")
async def get_template(template_id: str, manager: TemplateManager = Depends(get_manager)):
    with studio_errors():
        return manager.require_template(template_id).to_json()


@router.delete("/templates/{template_id}")
async def delete_template(
    template_id: str,
    manager: TemplateManager = Depends(get_manager),
    sandbox: RenderSandbox = Depends(get_sandbox),
    current_operator: str = Depends(get_current_operator),
):
    if not manager.delete_template(template_id):
        raise HTTPException(status_code=404, detail=f'Template with id "{template_id}" not found')
    sandbox.unmount(template_id)
    logger.info(f"[api] Template {template_id} deleted by {current_operator}")
    return {"deleted": template_id}


@router.post("/templates/{template_id}/duplicate", status_code=status.HTTP_201_CREATED)
async def duplicate_template(
    template_id: str,
    body: TemplateDuplicate,
    manager: TemplateManager = Depends(get_manager),
    current_operator: str = Depends(get_current_operator),
):
    with studio_errors():
        duplicate = manager.duplicate_template(template_id, body.new_id, body.new_name)
    return duplicate.to_json()


@router.post("/templates/{template_id}/current")
async def set_current_template(
    template_id: str,
    manager: TemplateManager = Depends(get_manager),
    current_operator: str = Depends(get_current_operator),
):
    if not manager.set_current_template(template_id):
        raise HTTPException(status_code=404, detail=f'Template with id "{template_id}" not found')
    return {"current": template_id}


# ---------------- Elements / schema / manifest ----------------


@router.post("/templates/{template_id}/elements", status_code=status.HTTP_201_CREATED)
async def add_element(
    template_id: str,
    body: ElementCreate,
    manager: TemplateManager = Depends(get_manager),
    sandbox: RenderSandbox = Depends(get_sandbox),
    current_operator: str = Depends(get_current_operator),
):
    with studio_errors():
        template = manager.require_template(template_id)
        element = template.add_element(body.model_dump(exclude_none=True))
    _sync_preview(sandbox, template)
    return element.to_dict()


@router.patch("/templates/{template_id}/elements/{element_id}")
async def update_element(
    template_id: str,
    element_id: str,
    updates: Dict[str, Any],
    manager: TemplateManager = Depends(get_manager),
    sandbox: RenderSandbox = Depends(get_sandbox),
    current_operator: str = Depends(get_current_operator),
):
    with studio_errors():
        template = manager.require_template(template_id)
        style = updates.pop("style", None)
        found = template.update_element(element_id, updates)
        if found and style is not None:
            target = updates.get("id", element_id)
            template.update_element_style(target, style)
    if not found:
        raise HTTPException(status_code=404, detail=f"Element {element_id} not found")
    _sync_preview(sandbox, template)
    return template.get_element_by_id(updates.get("id", element_id)).to_dict()


@router.delete("/templates/{template_id}/elements/{element_id}")
async def remove_element(
    template_id: str,
    element_id: str,
    manager: TemplateManager = Depends(get_manager),
    sandbox: RenderSandbox = Depends(get_sandbox),
    current_operator: str = Depends(get_current_operator),
):
    with studio_errors():
        template = manager.require_template(template_id)
    if not template.remove_element(element_id):
        raise HTTPException(status_code=404, detail=f"Element {element_id} not found")
    _sync_preview(sandbox, template)
    return {"deleted": element_id}


@router.post("/templates/{template_id}/properties", status_code=status.HTTP_201_CREATED)
async def add_property(
    template_id: str,
    body: PropertyCreate,
    manager: TemplateManager = Depends(get_manager),
    current_operator: str = Depends(get_current_operator),
):
    with studio_errors():
        template = manager.require_template(template_id)
        prop = template.add_property(body.name, body.type, body.title, body.default)
    return {body.name: prop.to_dict()}


@router.delete("/templates/{template_id}/properties/{name}")
async def remove_property(
    template_id: str,
    name: str,
    manager: TemplateManager = Depends(get_manager),
    current_operator: str = Depends(get_current_operator),
):
    with studio_errors():
        template = manager.require_template(template_id)
    if not template.remove_property(name):
        raise HTTPException(status_code=404, detail=f"Property {name} not found")
    return {"deleted": name}


@router.patch("/templates/{template_id}/manifest")
async def update_manifest(
    template_id: str,
    updates: Dict[str, Any],
    manager: TemplateManager = Depends(get_manager),
    current_operator: str = Depends(get_current_operator),
):
    with studio_errors():
        template = manager.require_template(template_id)
        manifest = template.update_manifest(updates)
    return manifest.to_dict()


@router.patch("/templates/{template_id}/animation")
async def update_animation(
    template_id: str,
    updates: Dict[str, Any],
    manager: TemplateManager = Depends(get_manager),
    sandbox: RenderSandbox = Depends(get_sandbox),
    current_operator: str = Depends(get_current_operator),
):
    with studio_errors():
        template = manager.require_template(template_id)
        settings = template.update_animation_settings(updates)
    _sync_preview(sandbox, template)
    return settings.to_dict()


# ---------------- Artifact / exchange ----------------


@router.get("/templates/{template_id}/artifact")
async def get_artifact(template_id: str, manager: TemplateManager = Depends(get_manager)):
    with studio_errors():
        template = manager.require_template(template_id)
    return Response(content=template.artifact, media_type="text/javascript")


@router.get("/templates/{template_id}/export")
async def export_template(
    template_id: str,
    format: str = "files",
    export_date: Optional[str] = None,
    manager: TemplateManager = Depends(get_manager),
):
    """Export as the OGraf file set, an export bundle or an editor template document"""
    with studio_errors():
        if format == "files":
            return manager.export_template(template_id)
        if format == "bundle":
            return manager.export_bundle(template_id, export_date)
        if format == "template":
            return manager.export_editor_template(template_id, export_date)
    raise HTTPException(status_code=422, detail=f"Unsupported export format: {format}")


@router.post("/templates/{template_id}/export/files")
async def write_export_files(
    template_id: str,
    manager: TemplateManager = Depends(get_manager),
    config: OperatorConfig = Depends(get_config),
    current_operator: str = Depends(get_current_operator),
):
    """Write the OGraf file set to `<storage.export_dir>/<id>/`"""
    with studio_errors():
        files = manager.export_template(template_id)
    directory = config.export_dir(template_id)
    try:
        written = bundles.write_files(files, directory)
    except OSError as e:
        logger.error(f"[api] Export of {template_id} to {directory} failed: {e}")
        raise HTTPException(status_code=500, detail=f"Export failed: {e}")
    logger.info(f"[api] Exported {template_id} to {directory} by {current_operator}")
    return {"files": written}


@router.post("/templates/bundle")
async def export_multi_bundle(
    body: BundleRequest,
    export_date: Optional[str] = None,
    manager: TemplateManager = Depends(get_manager),
):
    return manager.export_multi_bundle(body.template_ids, body.bundle_name, export_date)


@router.post("/templates/import", response_model=ImportResponse)
async def import_templates(
    body: ImportRequest,
    manager: TemplateManager = Depends(get_manager),
    config: OperatorConfig = Depends(get_config),
    current_operator: str = Depends(get_current_operator),
):
    policy = body.policy or config.import_policy
    with studio_errors():
        if body.document is not None:
            templates = manager.import_document(body.document, policy)
        elif body.manifest is not None:
            templates = [manager.import_template(body.manifest, body.component, policy)]
        else:
            raise ImportFormatError("Provide either a document or a manifest")
    imported = [t.id for t in templates]
    logger.info(f"[api] Imported {imported} ({policy.value}) by {current_operator}")
    return ImportResponse(imported=imported, count=len(imported))


@router.get("/templates/{template_id}/validate")
async def validate_template(template_id: str, manager: TemplateManager = Depends(get_manager)):
    with studio_errors():
        return manager.validate_template(template_id)


# ---------------- Preview ----------------


@router.get("/templates/{template_id}/preview")
async def preview_state(template_id: str, sandbox: RenderSandbox = Depends(get_sandbox)):
    with studio_errors():
        return sandbox.snapshot(template_id)


@router.post("/templates/{template_id}/preview/{action}")
async def preview_action(
    template_id: str,
    action: PreviewAction,
    body: Optional[PreviewRequest] = None,
    manager: TemplateManager = Depends(get_manager),
    sandbox: RenderSandbox = Depends(get_sandbox),
):
    """Drive the preview runtime; animated commands return mid-transition unless `wait` is set"""
    body = body or PreviewRequest()
    with studio_errors():
        template = manager.require_template(template_id)
        if action == PreviewAction.UNMOUNT:
            return {"unmounted": sandbox.unmount(template_id)}
        if not sandbox.is_mounted(template_id):
            sandbox.mount(template)

        if action == PreviewAction.LOAD:
            future = sandbox.load(template_id)
        elif action == PreviewAction.PLAY:
            future = sandbox.play(template_id, body.skip_animation)
        elif action == PreviewAction.STOP:
            future = sandbox.stop(template_id, body.skip_animation)
        elif action == PreviewAction.UPDATE:
            future = sandbox.update(template_id, body.data)
        elif action == PreviewAction.CUSTOM:
            if not body.name:
                raise ValueError("custom preview action requires a name")
            future = sandbox.custom(template_id, body.name, body.data)
        else:
            future = sandbox.dispose(template_id)

        outcome = await future if (body.wait or future.done()) else None
        result = sandbox.snapshot(template_id)
    result["outcome"] = outcome.value if outcome is not None else None
    return result
