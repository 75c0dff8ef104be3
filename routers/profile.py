from fastapi import APIRouter, Depends, HTTPException, Response
from sqlalchemy.orm import Session

import models
import schemas
from database import get_db
from dependencies import (
    get_current_user,
    get_page_user,
    verify_password,
    hash_password,
    create_session_token,
)
from routers.auth import set_session_cookie

router = APIRouter()

@router.get("", response_model=schemas.User)
def read_profile(current_user: models.User = Depends(get_page_user)):
    """Page du profil. Sans session, redirection vers la connexion."""
    return current_user

@router.put("", response_model=schemas.User)
def update_profile(
    profile: schemas.ProfileUpdate,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    """Met à jour le nom et l'email de l'utilisateur connecté."""
    if profile.email != current_user.email:
        taken = db.query(models.User).filter(models.User.email == profile.email).first()
        if taken:
            raise HTTPException(status_code=400, detail="Email already in use")

    current_user.name = profile.name
    current_user.email = profile.email
    db.commit()
    db.refresh(current_user)
    return current_user

@router.post("/change-password")
def change_password(
    data: schemas.ChangePassword,
    response: Response,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
):
    """
    Change le mot de passe. Avec revoke_other_sessions, les autres sessions sont invalidées
    et un nouveau token est renvoyé pour la session courante.
    """
    if data.new_password != data.confirm_password:
        raise HTTPException(status_code=400, detail="Passwords don't match")
    if not verify_password(data.current_password, current_user.hashed_password):
        raise HTTPException(status_code=400, detail="Current password is incorrect")

    current_user.hashed_password = hash_password(data.new_password)
    if data.revoke_other_sessions:
        current_user.session_version += 1
    db.commit()
    db.refresh(current_user)

    result = {"success": True, "message": "Password changed successfully"}
    if data.revoke_other_sessions:
        token = create_session_token(current_user)
        set_session_cookie(response, token)
        result["access_token"] = token
    return result
