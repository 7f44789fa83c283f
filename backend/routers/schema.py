from fastapi import APIRouter, HTTPException

from schemas.json_schemas import DOCUMENT_SCHEMAS

router = APIRouter(prefix="/api/schema")


@router.get('/documents')
def document_types():
    return {"types": list(DOCUMENT_SCHEMAS.keys())}


@router.get('/documents/{name}')
def document_schema(name: str):
    if name not in DOCUMENT_SCHEMAS:
        raise HTTPException(status_code=404, detail="Unknown document type")
    return DOCUMENT_SCHEMAS[name]
