from fastapi import APIRouter, Depends
from jose import jwt
from jose.exceptions import JOSEError
import requests
import logging

import config
import models
import schemas
from dependencies import get_current_user
from routers.configuration import load_proposal_api_config
from utils import view_cache

router = APIRouter()

PROPOSALS_VIEW = "/proposals"

# Transitions de statut autorisées (brouillon -> envoyée -> acceptée / refusée)
ALLOWED_TRANSITIONS = {
    schemas.ProposalStatus.DRAFT: {schemas.ProposalStatus.SUBMITTED},
    schemas.ProposalStatus.SUBMITTED: {schemas.ProposalStatus.APPROVED, schemas.ProposalStatus.REJECTED},
}


class ExternalAPIError(Exception):
    pass


def url_joiner(base_url, path):
    """Joins a base URL and a path, handling trailing slashes."""
    return f"{base_url.rstrip('/')}/{path.lstrip('/')}"

# --- Fonctions Utilitaires API externe ---

def generate_auth_token(secret: str | None) -> str:
    """Signe un jeu de claims vide avec le secret partagé (pas d'expiration)."""
    try:
        if not secret:
            raise ValueError("JWT_SECRET is not defined")
        return jwt.encode({}, secret, algorithm=config.ALGORITHM)
    except (ValueError, JOSEError) as e:
        logging.error(f"Erreur lors de la signature du token: {e}")
        raise ExternalAPIError("Failed to generate auth token") from e

def fetch_external(endpoint: str, method: str = "GET", payload: dict | None = None):
    """
    Appelle l'API des propositions avec un token Bearer signé à chaque appel.
    Retourne le JSON décodé, ou None si la réponse n'est pas du JSON (ex: 204).
    """
    api_config = load_proposal_api_config()
    token = generate_auth_token(api_config["JWT_SECRET"])
    headers = {
        "Content-Type": "application/json",
        "Authorization": f"Bearer {token}",
    }
    url = url_joiner(api_config["PROPOSAL_API_URL"], endpoint)

    response = requests.request(
        method, url, headers=headers, json=payload, timeout=api_config["PROPOSAL_API_TIMEOUT"]
    )
    if not response.ok:
        logging.error(f"External API Error ({response.status_code} {response.reason}): {response.text}")
        raise ExternalAPIError(f"External API Error: {response.reason}")

    content_type = response.headers.get("content-type", "")
    if "application/json" in content_type:
        return response.json()
    return None

def item_total(item: dict) -> float:
    return round(float(item["quantity"]) * float(item["unitPrice"]), 2)

def proposal_total(items: list) -> float:
    return round(sum(item_total(item) for item in items), 2)

def _failure(error: Exception, default_message: str) -> dict:
    if isinstance(error, ExternalAPIError):
        return {"success": False, "message": str(error)}
    logging.error(f"{default_message}: {error}")
    return {"success": False, "message": default_message}

def _items_payload(items) -> list:
    return [item.dict(by_alias=True) for item in items]

# --- Actions ---
# Chaque action retourne {success, data?, message?} et ne lève jamais d'exception vers l'appelant.

def get_proposals(search: str | None = None) -> dict:
    try:
        data = view_cache.get_view(PROPOSALS_VIEW, "all")
        if data is None:
            data = fetch_external("/proposals")
            view_cache.set_view(PROPOSALS_VIEW, "all", data)
    except (ExternalAPIError, requests.exceptions.RequestException) as e:
        return _failure(e, "Failed to fetch proposals")

    if search and isinstance(data, list):
        term = search.lower()
        data = [
            p for p in data
            if term in (p.get("proposalNo") or "").lower() or term in (p.get("clientName") or "").lower()
        ]
    return {"success": True, "data": data}

def get_proposal_by_id(proposal_id: str) -> dict:
    try:
        data = fetch_external(f"/proposals/{proposal_id}")
        return {"success": True, "data": data}
    except (ExternalAPIError, requests.exceptions.RequestException) as e:
        return _failure(e, "Failed to fetch proposal")

def create_proposal(proposal: schemas.ProposalCreate, created_by: str | None = None) -> dict:
    try:
        # L'API externe ne connaît pas nos utilisateurs: on fournit le créateur explicitement
        payload = proposal.dict(by_alias=True, exclude_none=True)
        payload["createdByUser"] = created_by or config.PROPOSAL_CREATED_BY

        data = fetch_external("/proposals", method="POST", payload=payload)
        view_cache.invalidate(PROPOSALS_VIEW)
        return {"success": True, "data": data, "message": "Proposal created successfully"}
    except (ExternalAPIError, requests.exceptions.RequestException) as e:
        return _failure(e, "Failed to create proposal")

def sync_proposal_items(proposal_id: str, items: list) -> None:
    """
    Remplace toutes les lignes d'une proposition: suppression de chaque ligne existante,
    puis création de chaque nouvelle ligne.

    Les lignes reçues n'ont pas d'id, on ne peut donc pas les apparier aux lignes
    existantes. Les appels sont strictement séquentiels: le serveur recalcule le total
    à chaque ligne (lecture-somme-écriture) et des appels parallèles écraseraient ce total.
    Un lecteur concurrent peut voir une partie des anciennes lignes puis une partie des
    nouvelles, jamais un mélange des deux.
    """
    current = fetch_external(f"/proposals/{proposal_id}") or {}
    current_items = current.get("items") or []

    for item in current_items:
        fetch_external(f"/proposals/items/{item['id']}", method="DELETE")

    for item in items:
        fetch_external(f"/proposals/{proposal_id}/items", method="POST", payload=item)

def check_status_transition(proposal_id: str, new_status: schemas.ProposalStatus) -> dict | None:
    """Retourne un résultat d'échec si la transition n'est pas autorisée, None sinon."""
    current = get_proposal_by_id(proposal_id)
    if not current["success"]:
        return current

    try:
        current_status = schemas.ProposalStatus((current["data"] or {}).get("status"))
    except ValueError:
        return {"success": False, "message": "Proposal has an unknown status"}

    if new_status not in ALLOWED_TRANSITIONS.get(current_status, set()):
        return {
            "success": False,
            "message": f"Cannot change status from {current_status.value} to {new_status.value}",
        }
    return None

def update_proposal(proposal_id: str, proposal: schemas.ProposalUpdate) -> dict:
    # Le statut suit le même cycle de vie que via /status
    if proposal.status is not None:
        refused = check_status_transition(proposal_id, proposal.status)
        if refused:
            return refused

    try:
        update_data = proposal.dict(by_alias=True, exclude_none=True, exclude={"items"})
        if "status" in update_data:
            update_data["status"] = proposal.status.value

        # 1. Mise à jour des champs de base
        if update_data:
            fetch_external(f"/proposals/{proposal_id}", method="PUT", payload=update_data)

        # 2. Synchronisation des lignes si elles sont fournies
        if proposal.items is not None:
            new_items = _items_payload(proposal.items)
            sync_proposal_items(proposal_id, new_items)

            refreshed = fetch_external(f"/proposals/{proposal_id}") or {}
            expected = proposal_total(new_items)
            actual = round(float(refreshed.get("totalAmount") or 0), 2)
            if actual != expected:
                logging.error(
                    f"Total incohérent pour la proposition {proposal_id}: {actual} au lieu de {expected}"
                )
                view_cache.invalidate(PROPOSALS_VIEW)
                return {"success": False, "message": "Proposal total is out of sync with its items"}

        view_cache.invalidate(PROPOSALS_VIEW)
        return {"success": True, "message": "Proposal updated successfully"}
    except (ExternalAPIError, requests.exceptions.RequestException) as e:
        view_cache.invalidate(PROPOSALS_VIEW)
        return _failure(e, "Failed to update proposal")

def delete_proposal(proposal_id: str) -> dict:
    try:
        fetch_external(f"/proposals/{proposal_id}", method="DELETE")
        view_cache.invalidate(PROPOSALS_VIEW)
        return {"success": True, "message": "Proposal deleted successfully"}
    except (ExternalAPIError, requests.exceptions.RequestException) as e:
        return _failure(e, "Failed to delete proposal")

def change_proposal_status(proposal_id: str, new_status: schemas.ProposalStatus) -> dict:
    return update_proposal(proposal_id, schemas.ProposalUpdate(status=new_status))

# --- Routes ---

@router.get("", response_model=schemas.ProposalActionResult)
def list_proposals(search: str | None = None, current_user: models.User = Depends(get_current_user)):
    """Liste les propositions, avec recherche par numéro ou nom du client."""
    return get_proposals(search)

@router.post("", response_model=schemas.ProposalActionResult)
def create(proposal: schemas.ProposalCreate, current_user: models.User = Depends(get_current_user)):
    return create_proposal(proposal, created_by=current_user.name)

@router.get("/{proposal_id}", response_model=schemas.ProposalActionResult)
def read(proposal_id: str, current_user: models.User = Depends(get_current_user)):
    return get_proposal_by_id(proposal_id)

@router.put("/{proposal_id}", response_model=schemas.ProposalActionResult)
def update(proposal_id: str, proposal: schemas.ProposalUpdate, current_user: models.User = Depends(get_current_user)):
    """Met à jour une proposition et, si fournies, remplace ses lignes."""
    return update_proposal(proposal_id, proposal)

@router.delete("/{proposal_id}", response_model=schemas.ProposalActionResult)
def delete(proposal_id: str, current_user: models.User = Depends(get_current_user)):
    return delete_proposal(proposal_id)

@router.post("/{proposal_id}/status", response_model=schemas.ProposalActionResult)
def change_status(
    proposal_id: str,
    change: schemas.ProposalStatusChange,
    current_user: models.User = Depends(get_current_user),
):
    return change_proposal_status(proposal_id, change.status)
