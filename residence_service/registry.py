from typing import Any, Dict, List

from sqlalchemy.orm import Session

from common.cache import get_cached_json, set_cached_json

from . import models, schemas
from .database import begin_write
from .errors import NotFoundError

ACTIVE_FACILITIES_CACHE_KEY = "facilities:active"


def get_active_facility(db: Session, facility_id: int, for_update: bool = False) -> models.Facility:
    """
    Look up an active facility by id.

    Parameters
    ----------
    db : Session
        Database session.
    facility_id : int
        Facility identifier.
    for_update : bool
        Lock the facility row until the surrounding transaction ends (the
        whole database on SQLite). Booking creation uses this so that
        concurrent creators for the same facility run their conflict check
        one at a time.

    Returns
    -------
    Facility
        The active facility.

    Raises
    ------
    NotFoundError
        If the facility does not exist or is inactive.
    """
    query = (
        db.query(models.Facility)
        .filter(models.Facility.id == facility_id)
        .filter(models.Facility.is_active.is_(True))
    )
    if for_update:
        begin_write(db)
        query = query.with_for_update()

    facility = query.first()
    if facility is None:
        raise NotFoundError("Facility not found or inactive")
    return facility


def list_active_facilities(db: Session) -> List[Dict[str, Any]]:
    """
    Return all active facilities ordered by name, serialized for the API.

    The result is cached in redis (when configured) for a minute.
    """
    cached = get_cached_json(ACTIVE_FACILITIES_CACHE_KEY)
    if cached is not None:
        return cached

    facilities = (
        db.query(models.Facility)
        .filter(models.Facility.is_active.is_(True))
        .order_by(models.Facility.name)
        .all()
    )
    data = [schemas.FacilityRead.model_validate(f).model_dump(mode="json") for f in facilities]
    set_cached_json(ACTIVE_FACILITIES_CACHE_KEY, data, ttl_seconds=60)
    return data
