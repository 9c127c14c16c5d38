import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..auth import get_current_user_id, require_user_id, resolve_owner
from ..database import get_db
from .. import crud, schemas

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/filter-groups", tags=["filter-groups"])

@router.get("", response_model=list[schemas.FilterGroupOut])
def list_all(db: Session = Depends(get_db), user_id: str = Depends(require_user_id)):
    return crud.list_filter_groups(db, user_id)

# declared before /{group_id} routes so "bulk" is never read as an id
@router.post("/bulk", response_model=schemas.SuccessOut, summary="Replace all of a user's filter groups")
def bulk_replace(data: schemas.FilterGroupBulk, db: Session = Depends(get_db), user_id = Depends(get_current_user_id)):
    owner = resolve_owner(db, user_id, data.user_id)
    try:
        crud.replace_filter_groups(db, owner, data.filter_groups)
    except SQLAlchemyError:
        logger.exception("bulk filter group save failed for user %s", owner)
        raise HTTPException(500, "Failed to save filter groups")
    return schemas.SuccessOut(message="Filter groups saved successfully")

@router.get("/{group_id}", response_model=schemas.FilterGroupOut)
def get_one(group_id: str, db: Session = Depends(get_db), user_id = Depends(get_current_user_id)):
    obj = crud.get_filter_group(db, group_id, user_id)
    if not obj:
        raise HTTPException(404, "Filter group not found")
    return obj

@router.post("", response_model=schemas.FilterGroupOut)
def create(data: schemas.FilterGroupCreate, db: Session = Depends(get_db), user_id = Depends(get_current_user_id)):
    owner = resolve_owner(db, user_id, data.user_id)
    return crud.create_filter_group(db, data, owner)

@router.put("/{group_id}", response_model=schemas.FilterGroupOut)
def update(group_id: str, data: schemas.FilterGroupUpdate, db: Session = Depends(get_db), user_id = Depends(get_current_user_id)):
    obj = crud.update_filter_group(db, group_id, data, user_id)
    if not obj:
        raise HTTPException(404, "Filter group not found")
    return obj

@router.delete("/{group_id}", response_model=schemas.SuccessOut)
def delete(group_id: str, db: Session = Depends(get_db), user_id = Depends(get_current_user_id)):
    if not crud.delete_filter_group(db, group_id, user_id):
        raise HTTPException(404, "Filter group not found")
    return schemas.SuccessOut()
