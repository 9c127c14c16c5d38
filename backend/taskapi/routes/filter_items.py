from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ..auth import get_current_user_id, resolve_owner
from ..database import get_db
from .. import crud, schemas

router = APIRouter(prefix="/api/filter-items", tags=["filter-items"])

@router.post("", response_model=schemas.FilterItemOut)
def create(data: schemas.FilterItemCreate, db: Session = Depends(get_db), user_id = Depends(get_current_user_id)):
    owner = resolve_owner(db, user_id, data.user_id)
    obj = crud.create_filter_item(db, data, owner)
    if not obj:
        raise HTTPException(404, "Filter group not found")
    return obj

@router.put("/{item_id}", response_model=schemas.FilterItemOut)
def update(item_id: str, data: schemas.FilterItemUpdate, db: Session = Depends(get_db), user_id = Depends(get_current_user_id)):
    obj = crud.update_filter_item(db, item_id, data, user_id)
    if not obj:
        raise HTTPException(404, "Filter item not found")
    return obj

@router.delete("/{item_id}", response_model=schemas.SuccessOut)
def delete(item_id: str, db: Session = Depends(get_db), user_id = Depends(get_current_user_id)):
    if not crud.delete_filter_item(db, item_id, user_id):
        raise HTTPException(404, "Filter item not found")
    return schemas.SuccessOut()
