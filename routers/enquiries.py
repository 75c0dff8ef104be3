from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session
from typing import List
import logging

import models
import schemas
from database import get_db
from dependencies import get_current_user, get_current_manager_user
from utils import view_cache
from utils.scoping import enquiry_filter

router = APIRouter()

ENQUIRIES_VIEW = "/enquiries"

# --- Fonctions Utilitaires ---

def validate_assignment(request: schemas.AssignmentRequest) -> List[int]:
    """
    Valide la demande d'assignation dans l'ordre du formulaire et retourne les ids ciblés.
    Aucune écriture n'est tentée si la validation échoue.
    """
    if not request.user_id:
        raise HTTPException(status_code=400, detail="Please select a user")
    if not request.start_date:
        raise HTTPException(status_code=400, detail="Please select a start date")
    if not request.end_date:
        raise HTTPException(status_code=400, detail="Please select an end date")
    if request.start_date > request.end_date:
        raise HTTPException(status_code=400, detail="Start date cannot be after end date")

    if request.enquiry_ids:
        # Assignation groupée (prioritaire sur l'id unique)
        return list(dict.fromkeys(request.enquiry_ids))
    if request.enquiry_id:
        return [request.enquiry_id]
    raise HTTPException(status_code=400, detail="No enquiry selected")

def assign_enquiries(db: Session, current_user: models.User, request: schemas.AssignmentRequest) -> int:
    """Écrit l'assigné et la période de validité sur toutes les enquêtes, en une seule transaction."""
    enquiry_ids = validate_assignment(request)

    assignee = db.query(models.User).filter(
        models.User.id == request.user_id,
        models.User.status == models.UserStatus.active,
    ).first()
    if not assignee:
        raise HTTPException(status_code=404, detail="Selected user not found")

    visible = db.query(models.Enquiry.id).filter(
        models.Enquiry.id.in_(enquiry_ids), enquiry_filter(current_user)
    ).count()
    if visible != len(enquiry_ids):
        raise HTTPException(status_code=404, detail="One or more enquiries were not found")

    try:
        updated = (
            db.query(models.Enquiry)
            .filter(models.Enquiry.id.in_(enquiry_ids))
            .update(
                {
                    models.Enquiry.assigned_to_user_id: assignee.id,
                    models.Enquiry.assignment_start_date: request.start_date,
                    models.Enquiry.assignment_end_date: request.end_date,
                },
                synchronize_session=False,
            )
        )
        if updated != len(enquiry_ids):
            raise SQLAlchemyError(f"{updated} enquête(s) mise(s) à jour sur {len(enquiry_ids)}")
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logging.error(f"Échec de l'assignation des enquêtes {enquiry_ids}: {e}")
        raise HTTPException(status_code=500, detail="Failed to assign enquiry")

    view_cache.invalidate(ENQUIRIES_VIEW)
    logging.info(f"{updated} enquête(s) assignée(s) à l'utilisateur {assignee.id} par {current_user.email}")
    return updated

def enquiry_cache_key(user: models.User, unassigned: bool) -> tuple:
    # Le rôle et l'agence font partie de la clé: un changement de rôle change la portée
    return (user.id, user.role.value, user.branch_id, unassigned)

# --- Routes ---

@router.get("", response_model=List[schemas.Enquiry])
def list_enquiries(
    unassigned: bool = False,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    """Liste les enquêtes visibles par l'utilisateur (mêmes règles que les compteurs)."""
    cache_key = enquiry_cache_key(current_user, unassigned)
    cached = view_cache.get_view(ENQUIRIES_VIEW, cache_key)
    if cached is not None:
        return cached

    query = db.query(models.Enquiry).filter(enquiry_filter(current_user))
    if unassigned:
        query = query.filter(models.Enquiry.assigned_to_user_id.is_(None))
    enquiries = [schemas.Enquiry.from_orm(e) for e in query.order_by(models.Enquiry.id).all()]

    view_cache.set_view(ENQUIRIES_VIEW, cache_key, enquiries)
    return enquiries

@router.post("", response_model=schemas.Enquiry, status_code=201)
def create_enquiry(
    enquiry: schemas.EnquiryCreate,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    """Crée une enquête non assignée. Par défaut, elle est rattachée à l'agence du créateur."""
    data = enquiry.dict()
    if data["branch_id"] is None:
        data["branch_id"] = current_user.branch_id
    new_enquiry = models.Enquiry(**data)
    db.add(new_enquiry)
    db.commit()
    db.refresh(new_enquiry)
    view_cache.invalidate(ENQUIRIES_VIEW)
    return new_enquiry

@router.get("/assignable-users", response_model=List[schemas.AssignableUser])
def list_assignable_users(
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_manager_user),
):
    """Utilisateurs actifs proposés dans la boîte de dialogue d'assignation."""
    return (
        db.query(models.User)
        .filter(models.User.status == models.UserStatus.active)
        .order_by(models.User.name)
        .all()
    )

@router.post("/assign", response_model=schemas.ActionResult)
def assign(
    request: schemas.AssignmentRequest,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_manager_user),
):
    """Assigne une enquête ou un lot d'enquêtes à un utilisateur pour une période donnée."""
    updated = assign_enquiries(db, current_user, request)
    if updated > 1:
        message = f"{updated} enquiries assigned successfully"
    else:
        message = "Enquiry assigned successfully"
    return {"success": True, "message": message}

@router.post("/{enquiry_id}/close", response_model=schemas.Enquiry)
def close_enquiry(
    enquiry_id: int,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    enquiry = db.query(models.Enquiry).filter(
        models.Enquiry.id == enquiry_id, enquiry_filter(current_user)
    ).first()
    if not enquiry:
        raise HTTPException(status_code=404, detail="Enquiry not found")
    enquiry.status = models.EnquiryStatus.closed
    db.commit()
    db.refresh(enquiry)
    view_cache.invalidate(ENQUIRIES_VIEW)
    return enquiry
