import json
from fastapi import APIRouter, Depends, HTTPException

import config
import schemas
from dependencies import get_current_admin_user

CONFIG_FILE = "config.json"

router = APIRouter()

def load_config():
    try:
        with open(CONFIG_FILE, 'r') as f:
            return json.load(f)
    except (FileNotFoundError, json.JSONDecodeError):
        return {}

def save_config(config_data):
    with open(CONFIG_FILE, 'w') as f:
        json.dump(config_data, f, indent=2)

def load_proposal_api_config():
    """Configuration de l'API des propositions: config.json a priorité sur l'environnement."""
    stored = load_config()
    return {
        "PROPOSAL_API_URL": stored.get("PROPOSAL_API_URL") or config.PROPOSAL_API_URL,
        "JWT_SECRET": stored.get("JWT_SECRET") or config.PROPOSAL_API_SECRET,
        "PROPOSAL_API_TIMEOUT": stored.get("PROPOSAL_API_TIMEOUT") or config.PROPOSAL_API_TIMEOUT,
    }

@router.get("/proposal-api", dependencies=[Depends(get_current_admin_user)])
def get_proposal_api_config():
    # Le secret partagé n'est jamais renvoyé
    current = load_proposal_api_config()
    return {"PROPOSAL_API_URL": current["PROPOSAL_API_URL"], "JWT_SECRET_SET": bool(current["JWT_SECRET"])}

@router.post("/proposal-api", dependencies=[Depends(get_current_admin_user)])
def update_proposal_api_config(new_config: schemas.ProposalApiConfig):
    if not new_config.PROPOSAL_API_URL.startswith(("http://", "https://")):
        raise HTTPException(status_code=400, detail="PROPOSAL_API_URL must be an http(s) URL.")

    current_config = load_config()
    current_config["PROPOSAL_API_URL"] = new_config.PROPOSAL_API_URL
    if new_config.JWT_SECRET:
        current_config["JWT_SECRET"] = new_config.JWT_SECRET
    save_config(current_config)
    return {"message": "Proposal API configuration updated successfully."}
