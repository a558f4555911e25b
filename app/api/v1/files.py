import logging
from typing import Any
from uuid import UUID
from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status
from sqlalchemy.orm import Session

from app.api import deps
from app.models.auth import User
from app.models.lms import AssignmentFile, AssignmentSubmission, SubmissionFile, SubmissionStatus
from app.schemas.lms import FileUploadResponse
from app.services import assignments as assignment_service
from app.services import classes as class_service
from app.services.storage import LocalStorage, build_key, get_storage, read_upload

logger = logging.getLogger(__name__)

router = APIRouter()


def _own_open_submission(db: Session, submission_id, user: User) -> AssignmentSubmission:
    submission = db.query(AssignmentSubmission).filter(
        AssignmentSubmission.id == submission_id
    ).first()
    if not submission:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Submission not found")
    if submission.student_id != user.id:
        logger.warning("User %s tried to modify submission %s", user.id, submission.id)
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You can only attach files to your own submission",
        )
    if submission.status == SubmissionStatus.graded:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="This submission has already been graded",
        )
    return submission


# ==================== ASSIGNMENT FILES ====================


@router.post(
    "/assignment-files",
    response_model=FileUploadResponse,
    status_code=status.HTTP_201_CREATED,
)
async def upload_assignment_file(
    assignment_id: UUID = Form(...),
    file: UploadFile = File(...),
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.allow_staff),
    storage: LocalStorage = Depends(get_storage),
) -> Any:
    """Attach a file to an assignment"""
    assignment = assignment_service.get_assignment_or_404(db, assignment_id)
    class_service.ensure_class_owner(assignment.class_, current_user)

    data = await read_upload(file)
    key = build_key("assignments", assignment.id, file.filename)

    with storage.staged(key, data) as file_url:
        record = AssignmentFile(
            assignment_id=assignment.id,
            file_name=file.filename,
            file_size=len(data),
            file_type=file.content_type,
            file_url=file_url,
            storage_path=key,
        )
        db.add(record)
        db.commit()

    return {"id": record.id, "file_url": record.file_url, "file_name": record.file_name}


@router.delete("/assignment-files/{file_id}")
def delete_assignment_file(
    file_id: UUID,
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.allow_staff),
    storage: LocalStorage = Depends(get_storage),
) -> Any:
    record = db.query(AssignmentFile).filter(AssignmentFile.id == file_id).first()
    if not record:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="File not found")
    class_service.ensure_class_owner(record.assignment.class_, current_user)

    key = record.storage_path
    db.delete(record)
    db.commit()
    storage.delete(key)
    return {"message": "File deleted successfully"}


# ==================== SUBMISSION FILES ====================


@router.post(
    "/submission-files",
    response_model=FileUploadResponse,
    status_code=status.HTTP_201_CREATED,
)
async def upload_submission_file(
    submission_id: UUID = Form(...),
    file: UploadFile = File(...),
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.allow_student),
    storage: LocalStorage = Depends(get_storage),
) -> Any:
    """Attach a file to the student's own submission"""
    submission = _own_open_submission(db, submission_id, current_user)

    data = await read_upload(file)
    key = build_key("submissions", submission.id, file.filename)

    with storage.staged(key, data) as file_url:
        record = SubmissionFile(
            submission_id=submission.id,
            file_name=file.filename,
            file_size=len(data),
            file_type=file.content_type,
            file_url=file_url,
            storage_path=key,
        )
        db.add(record)
        db.commit()

    return {"id": record.id, "file_url": record.file_url, "file_name": record.file_name}


@router.delete("/submission-files/{file_id}")
def delete_submission_file(
    file_id: UUID,
    db: Session = Depends(deps.get_db),
    current_user: User = Depends(deps.allow_student),
    storage: LocalStorage = Depends(get_storage),
) -> Any:
    record = db.query(SubmissionFile).filter(SubmissionFile.id == file_id).first()
    if not record:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="File not found")
    _own_open_submission(db, record.submission_id, current_user)

    key = record.storage_path
    db.delete(record)
    db.commit()
    storage.delete(key)
    return {"message": "File deleted successfully"}
