from fastapi import APIRouter, HTTPException, Depends, Response, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.orm import Session
import logging

import models
import schemas
from config import ACCESS_TOKEN_EXPIRE_MINUTES, SESSION_COOKIE_NAME
from database import get_db
from dependencies import (
    get_current_user,
    verify_password,
    create_session_token,
)

router = APIRouter()

def set_session_cookie(response: Response, token: str):
    response.set_cookie(
        key=SESSION_COOKIE_NAME,
        value=token,
        httponly=True,
        samesite="lax",
        max_age=ACCESS_TOKEN_EXPIRE_MINUTES * 60,
    )

@router.post("/login", response_model=schemas.TokenWithUser)
def login(response: Response, form_data: OAuth2PasswordRequestForm = Depends(), db: Session = Depends(get_db)):
    """
    Connecte l'utilisateur et retourne un token JWT (également posé en cookie).
    """
    user = db.query(models.User).filter(models.User.email == form_data.username).first()

    if not user or not verify_password(form_data.password, user.hashed_password):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if user.status != models.UserStatus.active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=f"Your account is inactive (status: {user.status.value}). Please contact an administrator."
        )

    access_token = create_session_token(user)
    set_session_cookie(response, access_token)
    logging.info(f"Connexion de l'utilisateur {user.email}")

    return {"access_token": access_token, "token_type": "bearer", "user": user}

@router.post("/logout")
def logout(response: Response):
    response.delete_cookie(SESSION_COOKIE_NAME)
    return {"message": "Logged out"}

@router.get("/me", response_model=schemas.User)
def read_users_me(current_user: models.User = Depends(get_current_user)):
    """
    Retourne les informations de l'utilisateur actuellement connecté.
    """
    return current_user
