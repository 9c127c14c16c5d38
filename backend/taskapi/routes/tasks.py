import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from ..auth import get_current_user_id, require_user_id, resolve_owner
from ..database import get_db
from ..models import TaskStatus, TaskPriority
from .. import crud, schemas

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/tasks", tags=["tasks"])

@router.get("", response_model=list[schemas.TaskOut])
def list_all(
    status: Optional[str] = None,
    priority: Optional[str] = None,
    project_id: Optional[str] = Query(None, alias="projectId"),
    search: Optional[str] = None,
    tag: List[str] = Query([]),
    db: Session = Depends(get_db),
    user_id: str = Depends(require_user_id),
):
    try:
        status = schemas.parse_wire_enum(TaskStatus, status)
        priority = schemas.parse_wire_enum(TaskPriority, priority)
    except ValueError as e:
        raise HTTPException(400, str(e))
    return crud.list_tasks(db, user_id, status, priority, project_id, search, tag)

@router.get("/summary", response_model=schemas.TaskSummary)
def summary(db: Session = Depends(get_db), user_id: str = Depends(require_user_id)):
    return crud.task_summary(db, user_id)

@router.get("/{task_id}", response_model=schemas.TaskOut)
def get_one(task_id: str, db: Session = Depends(get_db), user_id = Depends(get_current_user_id)):
    obj = crud.get_task(db, task_id, user_id)
    if not obj:
        raise HTTPException(404, "Task not found")
    return obj

@router.post("", response_model=schemas.TaskOut)
def create(data: schemas.TaskCreate, db: Session = Depends(get_db), user_id = Depends(get_current_user_id)):
    owner = resolve_owner(db, user_id, data.created_by)
    try:
        obj = crud.create_task(db, data, owner)
    except crud.UnknownIdsError as e:
        raise HTTPException(400, str(e))
    logger.info("task %s created for user %s", obj.id, owner)
    return obj

@router.put("/{task_id}", response_model=schemas.TaskOut)
def update(task_id: str, data: schemas.TaskUpdate, db: Session = Depends(get_db), user_id = Depends(get_current_user_id)):
    try:
        obj = crud.update_task(db, task_id, data, user_id)
    except crud.UnknownIdsError as e:
        raise HTTPException(400, str(e))
    if not obj:
        raise HTTPException(404, "Task not found")
    return obj

@router.delete("/{task_id}", response_model=schemas.SuccessOut)
def delete(task_id: str, db: Session = Depends(get_db), user_id = Depends(get_current_user_id)):
    if not crud.delete_task(db, task_id, user_id):
        raise HTTPException(404, "Task not found")
    logger.info("task %s deleted", task_id)
    return schemas.SuccessOut()
