import logging
from typing import Any
from uuid import UUID
from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from app.api import deps
from app.models.auth import User
from app.models.lms import CourseMaterial
from app.services import classes as class_service
from app.services.storage import LocalStorage, get_storage

logger = logging.getLogger(__name__)

router = APIRouter()


@router.delete("/{material_id}")
def delete_material(
    material_id: UUID,
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.allow_staff),
    storage: LocalStorage = Depends(get_storage),
) -> Any:
    material = db.query(CourseMaterial).filter(CourseMaterial.id == material_id).first()
    if not material:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Material not found")

    class_service.ensure_class_owner(material.class_, current_user)

    key = material.storage_path
    db.delete(material)
    db.commit()
    storage.delete(key)
    logger.info("Material %s deleted by %s", material_id, current_user.email)
    return {"message": "Material deleted successfully"}
