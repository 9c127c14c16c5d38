import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ..auth import get_current_user_id, require_user_id, resolve_owner
from ..database import get_db
from ..models import ProjectStatus
from .. import crud, schemas

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/projects", tags=["projects"])

@router.get("", response_model=list[schemas.ProjectOut])
def list_all(
    status: Optional[str] = None,
    db: Session = Depends(get_db),
    user_id: str = Depends(require_user_id),
):
    try:
        status = schemas.parse_wire_enum(ProjectStatus, status)
    except ValueError as e:
        raise HTTPException(400, str(e))
    return crud.list_projects(db, user_id, status)

@router.get("/{project_id}", response_model=schemas.ProjectOut)
def get_one(project_id: str, db: Session = Depends(get_db), user_id = Depends(get_current_user_id)):
    obj = crud.get_project(db, project_id, user_id)
    if not obj:
        raise HTTPException(404, "Project not found")
    return obj

@router.post("", response_model=schemas.ProjectOut)
def create(data: schemas.ProjectCreate, db: Session = Depends(get_db), user_id = Depends(get_current_user_id)):
    owner = resolve_owner(db, user_id, data.created_by)
    try:
        obj = crud.create_project(db, data, owner)
    except crud.UnknownIdsError as e:
        raise HTTPException(400, str(e))
    logger.info("project %s created for user %s", obj.id, owner)
    return obj

@router.put("/{project_id}", response_model=schemas.ProjectOut)
def update(project_id: str, data: schemas.ProjectUpdate, db: Session = Depends(get_db), user_id = Depends(get_current_user_id)):
    try:
        obj = crud.update_project(db, project_id, data, user_id)
    except crud.UnknownIdsError as e:
        raise HTTPException(400, str(e))
    if not obj:
        raise HTTPException(404, "Project not found")
    return obj

@router.delete("/{project_id}", response_model=schemas.SuccessOut)
def delete(project_id: str, db: Session = Depends(get_db), user_id = Depends(get_current_user_id)):
    if not crud.delete_project(db, project_id, user_id):
        raise HTTPException(404, "Project not found")
    logger.info("project %s deleted", project_id)
    return schemas.SuccessOut()
