from fastapi import Depends, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError, jwt
from passlib.context import CryptContext
from sqlalchemy.orm import Session
from datetime import datetime, timedelta

import models
from config import SECRET_KEY, ALGORITHM, ACCESS_TOKEN_EXPIRE_MINUTES, SESSION_COOKIE_NAME
from database import get_db

# --- CONFIGURATION SÉCURITÉ ---
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
# auto_error=False: le token peut aussi venir du cookie de session
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/login", auto_error=False)

MANAGERIAL_ROLES = (models.UserRole.admin, models.UserRole.manager)


class LoginRequired(Exception):
    """Levée par les pages quand aucune session n'est trouvée (redirection vers la connexion)."""


# --- FONCTIONS UTILITAIRES ---
def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)

def hash_password(password: str) -> str:
    return pwd_context.hash(password)

def create_access_token(data: dict, expires_delta: timedelta | None = None):
    to_encode = data.copy()
    expire_time = datetime.utcnow() + (expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire_time})
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)

def create_session_token(user: models.User) -> str:
    """Token de session: l'id comme sujet et la version de session pour la révocation."""
    return create_access_token(
        data={"sub": str(user.id), "role": user.role.value, "ver": user.session_version}
    )

def resolve_session(token: str | None, db: Session) -> models.User | None:
    """Décode le token JWT et retourne l'utilisateur actif correspondant, ou None."""
    if not token:
        return None
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        return None
    user_id = payload.get("sub")
    if user_id is None or not str(user_id).isdigit():
        return None

    user = db.query(models.User).filter(models.User.id == int(user_id)).first()
    if user is None or user.status != models.UserStatus.active:
        return None
    # Un token émis avant une révocation des sessions n'est plus valide
    if payload.get("ver", 0) != user.session_version:
        return None
    return user

# --- DÉPENDANCES FASTAPI ---

def get_session_token(request: Request, bearer: str | None = Depends(oauth2_scheme)) -> str | None:
    """Récupère le token depuis l'en-tête Authorization, sinon depuis le cookie."""
    return bearer or request.cookies.get(SESSION_COOKIE_NAME)

def get_optional_user(
    token: str | None = Depends(get_session_token),
    db: Session = Depends(get_db),
) -> models.User | None:
    return resolve_session(token, db)

def get_current_user(user: models.User | None = Depends(get_optional_user)) -> models.User:
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user

def get_page_user(user: models.User | None = Depends(get_optional_user)) -> models.User:
    """Variante pour les pages: sans session, on redirige vers la page de connexion."""
    if user is None:
        raise LoginRequired()
    return user

def get_current_admin_user(current_user: models.User = Depends(get_current_user)) -> models.User:
    """Vérifie que l'utilisateur actuel est un administrateur."""
    if current_user.role != models.UserRole.admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="This operation requires administrator privileges"
        )
    return current_user

def require_roles(*roles: models.UserRole):
    """Fabrique une dépendance qui n'accepte que les rôles donnés."""
    def checker(current_user: models.User = Depends(get_current_user)) -> models.User:
        if current_user.role not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="You are not allowed to perform this operation"
            )
        return current_user
    return checker

get_current_manager_user = require_roles(*MANAGERIAL_ROLES)
