from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.orm import Session

from carebook.routes.common import get_db
from carebook.services import doctor_service

router = APIRouter(tags=['departments'])


class DepartmentResponse(BaseModel):
    id: int
    name: str
    description: str | None = None

    class Config:
        from_attributes = True


@router.get('', response_model=list[DepartmentResponse])
def list_departments(db: Session = Depends(get_db)):
    return doctor_service.list_departments(db)
