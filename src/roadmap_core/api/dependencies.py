"""Shared FastAPI dependencies and error translation."""
import logging
from contextlib import contextmanager
from typing import Iterator

from fastapi import Depends, HTTPException, status
from sqlalchemy.orm import Session

from ..database import get_db
from ..engine import RoadmapEngine
from ..errors import (
    CatalogIntegrityError,
    ConcurrentModificationError,
    InvalidTransitionError,
    NotFoundError,
)

logger = logging.getLogger("roadmap-core.api")


def get_engine(db: Session = Depends(get_db)) -> RoadmapEngine:
    """Roadmap engine bound to the request's database session."""
    return RoadmapEngine(db)


@contextmanager
def roadmap_errors() -> Iterator[None]:
    """Translate engine errors into HTTP responses.

    - NotFoundError -> 404
    - InvalidTransitionError -> 409 (with allowed transitions)
    - ConcurrentModificationError -> 409 (retryable)
    - CatalogIntegrityError -> 500
    """
    try:
        yield
    except NotFoundError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except InvalidTransitionError as e:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={
                "message": str(e),
                "current_status": e.current_status,
                "requested_status": e.requested_status,
                "allowed_transitions": e.allowed_transitions,
            },
        )
    except ConcurrentModificationError as e:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={"message": str(e), "retryable": True},
        )
    except CatalogIntegrityError as e:
        logger.error(f"Phase catalog is malformed: {e}", exc_info=True)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))
