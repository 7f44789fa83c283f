from fastapi import APIRouter, Depends, HTTPException

from services.propagation_service import PropagationService
from storage.sql_store import SQLStore


def get_store() -> SQLStore:
    from main import store

    return store


def get_propagation() -> PropagationService:
    from main import propagation_service

    return propagation_service


router = APIRouter(prefix="/api/projects")


@router.post("")
def create_project(body: dict, s: SQLStore = Depends(get_store)):
    title = str(body.get("title", "")).strip()
    if not title:
        raise HTTPException(status_code=400, detail="title is required")
    bible = body.get("story_bible")
    if bible is not None and not isinstance(bible, dict):
        raise HTTPException(status_code=400, detail="story_bible must be an object")
    concept = body.get("story_concept")
    if concept is not None and not isinstance(concept, dict):
        raise HTTPException(status_code=400, detail="story_concept must be an object")
    return s.create_project(title, story_concept=concept, story_bible=bible, plot_structure=body.get("plot_structure"))


@router.get("")
def list_projects(s: SQLStore = Depends(get_store)):
    return s.list_projects()


@router.get('/{project_id}')
def get_project(project_id: str, s: SQLStore = Depends(get_store)):
    data = s.get_project(project_id)
    if not data:
        raise HTTPException(status_code=404, detail='Project not found')
    return data


@router.put('/{project_id}/plot-structure')
def update_plot_structure(project_id: str, body: dict, svc: PropagationService = Depends(get_propagation)):
    if "plot_structure" not in body:
        raise HTTPException(status_code=400, detail='plot_structure is required')
    plot = body["plot_structure"]
    if isinstance(plot, dict) and "plot_layers" in plot and not isinstance(plot["plot_layers"], list):
        raise HTTPException(status_code=400, detail='plot_layers must be an array')
    sync = svc.update_plot_structure(project_id, plot)
    return {"success": True, "plot_structure": plot, "snapshot_sync": sync.to_dict()}
