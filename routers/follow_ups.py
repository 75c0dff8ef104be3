from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from typing import List, Optional

import models
import schemas
from database import get_db
from dependencies import get_current_user
from utils.scoping import follow_up_filter

router = APIRouter()

@router.get("", response_model=List[schemas.FollowUp])
def list_follow_ups(
    status: Optional[schemas.TaskStatus] = schemas.TaskStatus.PENDING,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    """Liste les relances visibles par l'utilisateur, en attente par défaut."""
    query = db.query(models.FollowUp).filter(follow_up_filter(current_user))
    if status is not None:
        query = query.filter(models.FollowUp.status == models.TaskStatus(status.value))
    return query.order_by(models.FollowUp.due_date, models.FollowUp.id).all()
