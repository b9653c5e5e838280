import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from fastapi import UploadFile
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from common.cache import get_cached_json, set_cached_json

from . import models, policy, schemas
from .errors import ForbiddenError, InternalError, NotFoundError
from .pagination import paginate
from .storage import LocalBlobStore, get_blob_store

logger = logging.getLogger(__name__)

CATEGORIES_CACHE_KEY = "complaints:categories"


def _commit(db: Session, what: str) -> None:
    try:
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Failed to %s", what)
        raise InternalError(f"Failed to {what}") from exc


def list_categories(db: Session) -> List[Dict[str, Any]]:
    cached = get_cached_json(CATEGORIES_CACHE_KEY)
    if cached is not None:
        return cached

    categories = db.query(models.ComplaintCategory).order_by(models.ComplaintCategory.name).all()
    data = [schemas.ComplaintCategoryRead.model_validate(c).model_dump() for c in categories]
    set_cached_json(CATEGORIES_CACHE_KEY, data, ttl_seconds=300)
    return data


def get_complaint_or_404(db: Session, actor: models.User, complaint_id: int) -> models.Complaint:
    """
    Fetch a complaint visible to ``actor``.

    Residents only ever see their own complaints; anything else is
    reported as missing.
    """
    complaint = db.query(models.Complaint).filter(models.Complaint.id == complaint_id).first()
    if complaint is None or not policy.can_manage_complaint(actor, complaint):
        raise NotFoundError("Complaint not found")
    return complaint


def list_complaints(
    db: Session,
    actor: models.User,
    status: Optional[models.ComplaintStatus] = None,
    priority: Optional[models.ComplaintPriority] = None,
    page: int = 1,
    limit: int = 10,
) -> schemas.Page:
    query = db.query(models.Complaint)

    if not policy.is_admin(actor):
        query = query.filter(models.Complaint.user_id == actor.id)
    if status is not None:
        query = query.filter(models.Complaint.status == status)
    if priority is not None:
        query = query.filter(models.Complaint.priority == priority)

    query = query.order_by(models.Complaint.created_at.desc(), models.Complaint.id.desc())
    return paginate(query, page, limit, schemas.ComplaintRead)


def create_complaint(
    db: Session,
    actor: models.User,
    category_id: int,
    title: str,
    description: str,
    priority: models.ComplaintPriority = models.ComplaintPriority.MEDIUM,
    image: Optional[UploadFile] = None,
    store: Optional[LocalBlobStore] = None,
) -> models.Complaint:
    """
    File a complaint for ``actor``, storing the optional image attachment
    through the blob store once the category is known to exist.
    """
    category = (
        db.query(models.ComplaintCategory)
        .filter(models.ComplaintCategory.id == category_id)
        .first()
    )
    if category is None:
        raise NotFoundError("Complaint category not found")

    store = store or get_blob_store()
    image_url = None
    if image is not None:
        image_url = store.save(image)

    complaint = models.Complaint(
        user_id=actor.id,
        category_id=category.id,
        title=title,
        description=description,
        priority=priority,
        image_url=image_url,
    )
    db.add(complaint)
    try:
        _commit(db, "create complaint")
    except InternalError:
        # no row points at the upload any more
        if image_url is not None:
            store.delete(image_url)
        raise
    db.refresh(complaint)
    logger.info("Complaint %s filed by user %s", complaint.id, actor.id)
    return complaint


def update_complaint(
    db: Session,
    actor: models.User,
    complaint_id: int,
    changes: schemas.ComplaintUpdate,
) -> models.Complaint:
    """
    Apply a partial update from the owner or an administrator.

    Raises
    ------
    NotFoundError
        If the complaint does not exist.
    ForbiddenError
        If the actor neither owns it nor is an administrator, or a resident
        tries to set admin notes.
    """
    complaint = db.query(models.Complaint).filter(models.Complaint.id == complaint_id).first()
    if complaint is None:
        raise NotFoundError("Complaint not found")
    if not policy.can_manage_complaint(actor, complaint):
        raise ForbiddenError("Access denied")

    updates = changes.model_dump(exclude_unset=True)
    if "admin_notes" in updates and not policy.is_admin(actor):
        raise ForbiddenError("Only administrators can set admin notes")

    for field, value in updates.items():
        setattr(complaint, field, value)

    _commit(db, "update complaint")
    db.refresh(complaint)
    return complaint


def update_complaint_status(
    db: Session,
    actor: models.User,
    complaint_id: int,
    status: models.ComplaintStatus,
    admin_notes: Optional[str] = None,
) -> models.Complaint:
    if not policy.is_admin(actor):
        raise ForbiddenError("Admin access required")

    complaint = db.query(models.Complaint).filter(models.Complaint.id == complaint_id).first()
    if complaint is None:
        raise NotFoundError("Complaint not found")

    complaint.status = status
    if admin_notes:
        complaint.admin_notes = admin_notes
    if status == models.ComplaintStatus.RESOLVED:
        complaint.resolved_at = datetime.now(timezone.utc)

    _commit(db, "update complaint status")
    db.refresh(complaint)
    logger.info("Complaint %s moved to %s by admin %s", complaint_id, status.value, actor.id)
    return complaint
