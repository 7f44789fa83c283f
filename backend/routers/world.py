import logging

from fastapi import APIRouter, Depends, HTTPException

from services.propagation_service import PropagationService
from storage.sql_store import SQLStore

logger = logging.getLogger(__name__)


def get_store() -> SQLStore:
    from main import store

    return store


def get_propagation() -> PropagationService:
    from main import propagation_service

    return propagation_service


router = APIRouter(prefix='/api/projects/{project_id}/world')


@router.get('')
def list_world_elements(project_id: str, s: SQLStore = Depends(get_store)):
    project = s.get_project(project_id)
    if not project:
        raise HTTPException(status_code=404, detail='Project not found')
    return {"world": project["story_bible"].get("world") or []}


@router.put('/{element_id}')
def update_world_element(project_id: str, element_id: str, body: dict, propagate_to_content: bool = False, svc: PropagationService = Depends(get_propagation)):
    if "name" in body and not (isinstance(body["name"], str) and body["name"].strip()):
        raise HTTPException(status_code=400, detail='name must be a non-empty string')
    element, result = svc.update_world_element(project_id, element_id, body, propagate_to_content)
    if result is not None:
        logger.info("World element %s renamed %r -> %r in %s", element_id, result.old_name, result.new_name, project_id)
    return {
        "element": element,
        "propagation": result.stats.to_dict() if result else None,
        "snapshot_sync": result.snapshot_sync.to_dict() if result else None,
    }


@router.post('/{element_id}/propagate-name')
def propagate_name(project_id: str, element_id: str, body: dict, svc: PropagationService = Depends(get_propagation)):
    old_name = body.get("old_name")
    if not isinstance(old_name, str) or not old_name:
        raise HTTPException(status_code=400, detail='old_name is required')
    result = svc.propagate_entity_name("world", project_id, element_id, old_name, body.get("update_chapter_content") is True)
    return {"success": True, **result.to_dict()}


@router.get('/{element_id}/name-references')
def name_references(project_id: str, element_id: str, svc: PropagationService = Depends(get_propagation)):
    return svc.world_references(project_id, element_id)
