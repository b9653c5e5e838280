import logging
from datetime import time

from sqlalchemy.orm import Session

from common.cache import delete_prefix

from . import models

logger = logging.getLogger(__name__)

DEFAULT_CATEGORIES = [
    ("Maintenance", "General maintenance issues and repairs"),
    ("Plumbing", "Water leaks, pipe issues, and plumbing problems"),
    ("Electrical", "Power outages, faulty wiring, and electrical issues"),
    ("HVAC", "Heating, ventilation, and air conditioning problems"),
    ("Noise", "Noise complaints and disturbances"),
    ("Security", "Security concerns and safety issues"),
    ("Cleaning", "Common area cleaning and sanitation"),
    ("Other", "Other issues not covered by specific categories"),
]

# name, description, capacity, requires_approval, opens, closes
DEFAULT_FACILITIES = [
    ("Swimming Pool", "Community swimming pool with lifeguard on duty", 50, False, time(6, 0), time(22, 0)),
    ("Meeting Room A", "Large meeting room for community events", 30, True, time(8, 0), time(20, 0)),
    ("Meeting Room B", "Small meeting room for private gatherings", 15, True, time(8, 0), time(20, 0)),
    ("Gym", "Fully equipped fitness center", 25, False, time(5, 0), time(23, 0)),
    ("Tennis Court", "Outdoor tennis court", 4, False, time(6, 0), time(21, 0)),
    ("BBQ Area", "Outdoor barbecue and picnic area", 20, True, time(10, 0), time(20, 0)),
]


def seed_defaults(db: Session) -> int:
    """
    Insert the default complaint categories and facilities that are missing.

    Existing rows (matched by name) are left untouched, so this is safe to
    run on every startup.

    Returns
    -------
    int
        Number of rows inserted.
    """
    existing_categories = {name for (name,) in db.query(models.ComplaintCategory.name).all()}
    existing_facilities = {name for (name,) in db.query(models.Facility.name).all()}

    inserted = 0
    for name, description in DEFAULT_CATEGORIES:
        if name not in existing_categories:
            db.add(models.ComplaintCategory(name=name, description=description))
            inserted += 1

    for name, description, capacity, requires_approval, opens, closes in DEFAULT_FACILITIES:
        if name not in existing_facilities:
            db.add(
                models.Facility(
                    name=name,
                    description=description,
                    capacity=capacity,
                    requires_approval=requires_approval,
                    operating_hours_start=opens,
                    operating_hours_end=closes,
                )
            )
            inserted += 1

    if inserted:
        db.commit()
        delete_prefix("facilities:")
        delete_prefix("complaints:")
        logger.info("Seeded %d default rows", inserted)
    return inserted
