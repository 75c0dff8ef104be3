from fastapi import APIRouter, Depends, HTTPException, Response
from sqlalchemy.orm import Session
from typing import List

import models
import schemas
from database import get_db
from dependencies import get_current_admin_user, hash_password
from routers.enquiries import ENQUIRIES_VIEW
from utils import view_cache

router = APIRouter()

def get_user_or_404(db: Session, user_id: int) -> models.User:
    db_user = db.query(models.User).filter(models.User.id == user_id).first()
    if not db_user:
        raise HTTPException(status_code=404, detail="User not found")
    return db_user

def check_branch(db: Session, branch_id: int | None):
    if branch_id is None:
        return
    if not db.query(models.Branch).filter(models.Branch.id == branch_id).first():
        raise HTTPException(status_code=400, detail="Please select a branch")

# --- Utilisateurs ---

@router.post("/users", summary="Create a user", response_model=schemas.User, status_code=201)
def create_user(
    user: schemas.UserCreate,
    db: Session = Depends(get_db),
    current_admin: models.User = Depends(get_current_admin_user)
):
    if user.password != user.confirm_password:
        raise HTTPException(status_code=400, detail="Passwords don't match")
    if db.query(models.User).filter(models.User.email == user.email).first():
        raise HTTPException(status_code=400, detail="Email already in use")
    check_branch(db, user.branch_id)

    new_user = models.User(
        name=user.name,
        email=user.email,
        hashed_password=hash_password(user.password),
        role=models.UserRole(user.role.value),
        status=models.UserStatus(user.status.value),
        branch_id=user.branch_id,
    )
    db.add(new_user)
    db.commit()
    db.refresh(new_user)
    return new_user

@router.get("/users", summary="List users", response_model=List[schemas.User])
def list_users(
    db: Session = Depends(get_db),
    current_admin: models.User = Depends(get_current_admin_user)
):
    return db.query(models.User).order_by(models.User.id).all()

@router.get("/users/{user_id}", summary="Get a user by id", response_model=schemas.User)
def get_user(
    user_id: int,
    db: Session = Depends(get_db),
    current_admin: models.User = Depends(get_current_admin_user)
):
    return get_user_or_404(db, user_id)

@router.put("/users/{user_id}", summary="Update a user", response_model=schemas.User)
def update_user(
    user_id: int,
    user_update: schemas.UserUpdate,
    db: Session = Depends(get_db),
    current_admin: models.User = Depends(get_current_admin_user)
):
    db_user = get_user_or_404(db, user_id)

    # Crée un dictionnaire avec les champs à mettre à jour
    update_data = user_update.dict(exclude_unset=True)
    if not update_data:
        raise HTTPException(status_code=400, detail="Nothing to update")

    # Si un nouveau mot de passe est fourni, le hasher
    password = update_data.pop("password", None)
    if password:
        db_user.hashed_password = hash_password(password)

    if "email" in update_data and update_data["email"] != db_user.email:
        if db.query(models.User).filter(models.User.email == update_data["email"]).first():
            raise HTTPException(status_code=400, detail="Email already in use")
    if "branch_id" in update_data:
        check_branch(db, update_data["branch_id"])
    if update_data.get("role") is not None:
        update_data["role"] = models.UserRole(update_data["role"].value)
    if update_data.get("status") is not None:
        update_data["status"] = models.UserStatus(update_data["status"].value)

    for key, value in update_data.items():
        setattr(db_user, key, value)
    db.commit()
    db.refresh(db_user)
    # Rôle, agence ou statut changent la portée des listes d'enquêtes
    view_cache.invalidate(ENQUIRIES_VIEW)
    return db_user

@router.delete("/users/{user_id}", summary="Delete a user", status_code=204)
def delete_user(
    user_id: int,
    db: Session = Depends(get_db),
    current_admin: models.User = Depends(get_current_admin_user)
):
    db_user = get_user_or_404(db, user_id)
    if db_user.id == current_admin.id:
        raise HTTPException(status_code=400, detail="You cannot delete your own account")

    # Les enquêtes et leads assignés redeviennent non assignés
    db.query(models.Enquiry).filter(models.Enquiry.assigned_to_user_id == user_id).update(
        {models.Enquiry.assigned_to_user_id: None}, synchronize_session=False
    )
    db.query(models.Lead).filter(models.Lead.assigned_to_user_id == user_id).update(
        {models.Lead.assigned_to_user_id: None}, synchronize_session=False
    )
    db.delete(db_user)
    db.commit()
    view_cache.invalidate(ENQUIRIES_VIEW)
    return Response(status_code=204)

@router.patch("/users/{user_id}/role", summary="Change a user's role", response_model=schemas.User)
def update_user_role(
    user_id: int,
    role_update: schemas.UserRoleUpdate,
    db: Session = Depends(get_db),
    current_admin: models.User = Depends(get_current_admin_user)
):
    db_user = get_user_or_404(db, user_id)
    db_user.role = models.UserRole(role_update.role.value)
    db.commit()
    db.refresh(db_user)
    view_cache.invalidate(ENQUIRIES_VIEW)
    return db_user

# --- Agences ---

@router.post("/branches", summary="Create a branch", response_model=schemas.Branch, status_code=201)
def create_branch(
    branch: schemas.BranchCreate,
    db: Session = Depends(get_db),
    current_admin: models.User = Depends(get_current_admin_user)
):
    if db.query(models.Branch).filter(models.Branch.name == branch.name).first():
        raise HTTPException(status_code=400, detail="Branch already exists")
    new_branch = models.Branch(**branch.dict())
    db.add(new_branch)
    db.commit()
    db.refresh(new_branch)
    return new_branch

@router.get("/branches", summary="List branches", response_model=List[schemas.Branch])
def list_branches(
    db: Session = Depends(get_db),
    current_admin: models.User = Depends(get_current_admin_user)
):
    return db.query(models.Branch).order_by(models.Branch.name).all()
