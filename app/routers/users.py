from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session
from typing import List

from ..core.clock import get_clock
from ..crud import UserRepository
from ..database.database import get_db
from ..schemas import schemas
from ..services import driver_service

router = APIRouter(prefix="/users", tags=["Users"])


@router.post("", response_model=schemas.User, status_code=status.HTTP_201_CREATED)
def create_user(user: schemas.UserCreate, db: Session = Depends(get_db), clock=Depends(get_clock)):
    return driver_service.create_user(
        db,
        clock,
        alias=user.alias,
        name=user.name,
        legal_name=user.legal_name,
        license_number=user.license_number,
        license_expiration_date=user.license_expiration_date,
        issuing_state=user.issuing_state,
    )

@router.get("", response_model=List[schemas.User])
def read_users(skip: int = 0, limit: int = 100, db: Session = Depends(get_db)):
    return UserRepository(db).list(skip=skip, limit=limit)

@router.get("/by-alias/{alias}", response_model=schemas.User)
def read_user_by_alias(alias: str, db: Session = Depends(get_db)):
    db_user = UserRepository(db).get_by_alias(alias)
    if db_user is None:
        raise HTTPException(status_code=404, detail="User not found")
    return db_user

@router.get("/{user_id}", response_model=schemas.User)
def read_user(user_id: str, db: Session = Depends(get_db)):
    return driver_service.get_user(db, user_id)
