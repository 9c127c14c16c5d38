from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from ..database import get_db
from .. import crud, schemas

router = APIRouter(prefix="/api/users", tags=["users"])

@router.post("", response_model=schemas.UserOut, summary="Find or create a user by email")
def login(data: schemas.UserLogin, db: Session = Depends(get_db)):
    return crud.get_or_create_user(db, data.email, data.name)

@router.get("/{user_id}", response_model=schemas.UserOut)
def get_one(user_id: str, db: Session = Depends(get_db)):
    obj = crud.get_user(db, user_id)
    if not obj:
        raise HTTPException(404, "User not found")
    return obj
