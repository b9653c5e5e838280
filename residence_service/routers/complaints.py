from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status
from sqlalchemy.orm import Session

from .. import complaints, models, schemas
from ..auth import admin_only, get_current_user
from ..database import get_db
from ..storage import LocalBlobStore, get_blob_store

router = APIRouter(prefix="/complaints", tags=["complaints"])

ComplaintEnvelope = schemas.ApiResponse[schemas.ComplaintRead]


def complaint_envelope(complaint: models.Complaint, message: str) -> ComplaintEnvelope:
    return schemas.ApiResponse(data=schemas.ComplaintRead.model_validate(complaint), message=message)


@router.get("/categories", response_model=schemas.ApiResponse[List[schemas.ComplaintCategoryRead]])
def list_categories(
    db: Session = Depends(get_db),
    _: models.User = Depends(get_current_user),
):
    return schemas.ApiResponse(
        data=complaints.list_categories(db),
        message="Complaint categories retrieved successfully",
    )


@router.get("", response_model=schemas.ApiResponse[schemas.Page[schemas.ComplaintRead]])
def list_complaints(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=10, ge=1, le=100),
    complaint_status: Optional[models.ComplaintStatus] = Query(default=None, alias="status"),
    priority: Optional[models.ComplaintPriority] = None,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    """
    List complaints, newest first.

    Access
    ------
    - Admin: all complaints.
    - Resident: own complaints only.
    """
    result = complaints.list_complaints(
        db,
        current_user,
        status=complaint_status,
        priority=priority,
        page=page,
        limit=limit,
    )
    return schemas.ApiResponse(data=result)


@router.post("", response_model=ComplaintEnvelope, status_code=status.HTTP_201_CREATED)
def create_complaint(
    category_id: int = Form(..., ge=1),
    title: str = Form(..., min_length=5, max_length=200),
    description: str = Form(..., min_length=10, max_length=2000),
    priority: models.ComplaintPriority = Form(default=models.ComplaintPriority.MEDIUM),
    image: Optional[UploadFile] = File(default=None),
    db: Session = Depends(get_db),
    store: LocalBlobStore = Depends(get_blob_store),
    current_user: models.User = Depends(get_current_user),
):
    """
    File a new complaint (multipart form).

    Parameters
    ----------
    category_id : int
        Existing complaint category.
    title, description : str
        Summary (5-200 chars) and details (10-2000 chars).
    priority : ComplaintPriority
        Defaults to medium.
    image : Optional[UploadFile]
        Optional picture of the issue, stored through the blob store.
    """
    complaint = complaints.create_complaint(
        db,
        current_user,
        category_id,
        title,
        description,
        priority=priority,
        image=image,
        store=store,
    )
    return complaint_envelope(complaint, "Complaint created successfully")


@router.get("/{complaint_id}", response_model=ComplaintEnvelope)
def get_complaint(
    complaint_id: int,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    complaint = complaints.get_complaint_or_404(db, current_user, complaint_id)
    return complaint_envelope(complaint, "Complaint retrieved successfully")


@router.put("/{complaint_id}", response_model=ComplaintEnvelope)
def update_complaint(
    complaint_id: int,
    changes: schemas.ComplaintUpdate,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    """
    Update title, description or priority of a complaint.

    Access
    ------
    - Owner of the complaint.
    - Admin for any complaint (admins may also set admin_notes).
    """
    complaint = complaints.update_complaint(db, current_user, complaint_id, changes)
    return complaint_envelope(complaint, "Complaint updated successfully")


@router.put("/{complaint_id}/status", response_model=ComplaintEnvelope)
def update_complaint_status(
    complaint_id: int,
    status_in: schemas.ComplaintStatusUpdate,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(admin_only),
):
    """
    Admin: move a complaint to a new status.

    Moving to resolved records the resolution time.
    """
    complaint = complaints.update_complaint_status(
        db,
        current_user,
        complaint_id,
        status_in.status,
        admin_notes=status_in.admin_notes,
    )
    return complaint_envelope(complaint, "Complaint status updated successfully")
