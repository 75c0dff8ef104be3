from concurrent.futures import ThreadPoolExecutor
from fastapi import APIRouter, Depends
from sqlalchemy.orm import sessionmaker
import logging

import models
import schemas
from database import get_session_factory
from dependencies import get_current_user, get_optional_user, MANAGERIAL_ROLES
from utils.navigation import compose_sidebar
from utils.scoping import enquiry_filter, job_lead_filter, follow_up_filter

router = APIRouter()

# --- Requêtes de comptage ---
# Chaque comptage ouvre sa propre session: ils sont exécutés en parallèle.

def count_unassigned_enquiries(session_factory: sessionmaker, user: models.User) -> int:
    """Enquêtes non assignées: tout pour l'admin, l'agence pour le manager, 0 pour les autres."""
    if user.role not in MANAGERIAL_ROLES:
        return 0
    with session_factory() as db:
        return (
            db.query(models.Enquiry)
            .filter(models.Enquiry.assigned_to_user_id.is_(None), enquiry_filter(user))
            .count()
        )

def count_pending_job_leads(session_factory: sessionmaker, user: models.User) -> int:
    with session_factory() as db:
        return (
            db.query(models.JobLead)
            .filter(models.JobLead.status == models.TaskStatus.PENDING, job_lead_filter(user))
            .count()
        )

def count_pending_follow_ups(session_factory: sessionmaker, user: models.User) -> int:
    with session_factory() as db:
        return (
            db.query(models.FollowUp)
            .filter(models.FollowUp.status == models.TaskStatus.PENDING, follow_up_filter(user))
            .count()
        )

COUNT_QUERIES = {
    "enquiries": count_unassigned_enquiries,
    "job_orders_pending": count_pending_job_leads,
    "follow_ups": count_pending_follow_ups,
}

def get_dashboard_counts(user: models.User | None, session_factory: sessionmaker) -> schemas.DashboardCounts:
    """
    Lance les trois comptages en parallèle et les combine.
    Un comptage en échec est journalisé et vaut 0: la page reste affichable.
    """
    if user is None:
        return schemas.DashboardCounts()

    with ThreadPoolExecutor(max_workers=len(COUNT_QUERIES)) as executor:
        futures = {
            name: executor.submit(query, session_factory, user)
            for name, query in COUNT_QUERIES.items()
        }

    counts = {}
    for name, future in futures.items():
        try:
            counts[name] = future.result()
        except Exception as e:
            logging.error(f"Échec du comptage '{name}' pour l'utilisateur {user.id}: {e}")
            counts[name] = 0
    return schemas.DashboardCounts(**counts)

# --- Routes ---

@router.get("/counts", response_model=schemas.DashboardCounts)
def dashboard_counts(
    current_user: models.User = Depends(get_current_user),
    session_factory: sessionmaker = Depends(get_session_factory),
):
    """Compteurs affichés en badge dans la barre latérale."""
    return get_dashboard_counts(current_user, session_factory)

@router.get("/sidebar")
def dashboard_sidebar(
    current_user: models.User | None = Depends(get_optional_user),
    session_factory: sessionmaker = Depends(get_session_factory),
):
    """Barre latérale complète. Sans session, les compteurs sont à 0 et aucun utilisateur n'est renvoyé."""
    counts = get_dashboard_counts(current_user, session_factory)
    role = current_user.role.value if current_user else None
    sidebar = compose_sidebar(role, counts.dict())
    sidebar["counts"] = counts
    sidebar["user"] = schemas.User.from_orm(current_user) if current_user else None
    return sidebar
