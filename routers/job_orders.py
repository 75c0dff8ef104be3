from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session, joinedload

import models
import schemas
from database import get_db
from dependencies import get_page_user
from utils.scoping import job_lead_filter

router = APIRouter()

# Rôles autorisés à choisir un responsable pour un job order
MANAGER_PICKER_ROLES = (models.UserRole.admin, models.UserRole.manager, models.UserRole.executive)
# Rôles proposés comme responsables
MANAGER_CANDIDATE_ROLES = (models.UserRole.executive, models.UserRole.manager, models.UserRole.telecaller)

def job_lead_helper(job_lead: models.JobLead) -> schemas.JobLead:
    return schemas.JobLead(
        id=job_lead.id,
        job_id=job_lead.job_id,
        lead_id=job_lead.lead_id,
        status=job_lead.status.value,
        job_title=job_lead.job.title if job_lead.job else None,
        lead_name=job_lead.lead.name if job_lead.lead else None,
    )

@router.get("/pending", response_model=schemas.PendingJobOrdersPage)
def pending_job_orders_page(
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_page_user),
):
    """Données de la page des job orders en attente."""
    branches = []
    if current_user.role == models.UserRole.admin:
        branches = (
            db.query(models.Branch)
            .filter(models.Branch.is_active.is_(True))
            .order_by(models.Branch.name)
            .all()
        )

    available_managers = []
    if current_user.role in MANAGER_PICKER_ROLES:
        available_managers = (
            db.query(models.User)
            .filter(
                models.User.role.in_(MANAGER_CANDIDATE_ROLES),
                models.User.status != models.UserStatus.blocked,
            )
            .order_by(models.User.name)
            .all()
        )

    pending_leads = (
        db.query(models.JobLead)
        .options(joinedload(models.JobLead.job), joinedload(models.JobLead.lead))
        .filter(models.JobLead.status == models.TaskStatus.PENDING, job_lead_filter(current_user))
        .order_by(models.JobLead.id)
        .all()
    )

    return {
        "user_role": current_user.role.value,
        "user_id": current_user.id,
        "branches": branches,
        "available_managers": available_managers,
        "pending_leads": [job_lead_helper(jl) for jl in pending_leads],
    }
