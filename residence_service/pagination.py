import math
from typing import Type

from pydantic import BaseModel
from sqlalchemy.orm import Query

from . import schemas


def paginate(query: Query, page: int, limit: int, item_schema: Type[BaseModel]) -> schemas.Page:
    """
    Run ``query`` for one page and wrap the rows with paging metadata.

    ``page`` is 1-based; ``total_pages`` is ``ceil(total / limit)``.
    """
    total = query.order_by(None).count()
    rows = query.offset((page - 1) * limit).limit(limit).all()
    return schemas.Page(
        items=[item_schema.model_validate(row) for row in rows],
        page=page,
        limit=limit,
        total=total,
        total_pages=math.ceil(total / limit),
    )
