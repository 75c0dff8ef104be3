# Imports from standard library or third-party packages
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import RedirectResponse

# Imports from this project
from config import DEFAULT_ADMIN_EMAIL, DEFAULT_ADMIN_PASSWORD, LOG_LEVEL, LOGIN_URL
from database import create_db_and_tables, SessionLocal
from dependencies import LoginRequired, hash_password
import models
from routers import (
    auth,
    profile,
    admin,
    configuration,
    dashboard,
    enquiries,
    follow_ups,
    job_orders,
    proposals,
)

logging.basicConfig(level=LOG_LEVEL, format='%(asctime)s - %(levelname)s - %(message)s')

def create_default_admin():
    """Crée un utilisateur administrateur par défaut s'il n'existe pas."""
    db = SessionLocal()
    try:
        admin_user = db.query(models.User).filter(models.User.email == DEFAULT_ADMIN_EMAIL).first()
        if not admin_user:
            new_admin = models.User(
                email=DEFAULT_ADMIN_EMAIL,
                name="admin",
                hashed_password=hash_password(DEFAULT_ADMIN_PASSWORD),
                role=models.UserRole.admin,
                status=models.UserStatus.active
            )
            db.add(new_admin)
            db.commit()
            logging.info(f"Administrateur par défaut créé: {DEFAULT_ADMIN_EMAIL}")
    finally:
        db.close()

def create_app():
    """Crée et configure l'instance de l'application FastAPI."""
    app = FastAPI(
        title="CRM API",
        description="API de gestion des enquêtes, job orders, relances et propositions",
        version="1.0.0"
    )

    # Événements de démarrage
    @app.on_event("startup")
    def on_startup():
        create_db_and_tables()
        create_default_admin()

    # Pages sans session: redirection vers la connexion
    @app.exception_handler(LoginRequired)
    async def login_required_handler(request: Request, exc: LoginRequired):
        return RedirectResponse(LOGIN_URL, status_code=303)

    # Configuration CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],  # Doit être restreint en production
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Inclusion des routeurs
    app.include_router(auth.router, prefix="/auth", tags=["Authentication"])
    app.include_router(profile.router, prefix="/profile", tags=["Profile"])
    app.include_router(admin.router, prefix="/admin", tags=["Admin"])
    app.include_router(configuration.router, prefix="/config", tags=["Configuration"])
    app.include_router(dashboard.router, prefix="/dashboard", tags=["Dashboard"])
    app.include_router(enquiries.router, prefix="/enquiries", tags=["Enquiries"])
    app.include_router(follow_ups.router, prefix="/follow-ups", tags=["Follow-ups"])
    app.include_router(job_orders.router, prefix="/job-orders", tags=["Job Orders"])
    app.include_router(proposals.router, prefix="/proposals", tags=["Proposals"])

    @app.get("/", tags=["Root"])
    def read_root():
        return {"message": "CRM backend is running"}

    return app
