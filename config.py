# config.py
"""
Fichier de configuration centralisée pour le backend CRM.
Les valeurs viennent des variables d'environnement (chargées depuis .env par main.py),
avec des valeurs par défaut pour le développement local.
"""
import os

from dotenv import load_dotenv

load_dotenv()

# Base de données relationnelle (SQLite en local, PostgreSQL en production)
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./crm_app.db")

# Configuration de la sécurité JWT (JSON Web Token) pour les sessions utilisateur
SECRET_KEY = os.getenv("SECRET_KEY", "change-me-crm-session-secret")  # IMPORTANT: à remplacer en production
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "480"))
SESSION_COOKIE_NAME = "access_token"
LOGIN_URL = os.getenv("LOGIN_URL", "/login")

# API externe des propositions commerciales
PROPOSAL_API_URL = os.getenv("PROPOSAL_API_URL", "http://localhost:3001/api")
PROPOSAL_API_SECRET = os.getenv("JWT_SECRET")  # secret partagé avec l'API externe
PROPOSAL_API_TIMEOUT = float(os.getenv("PROPOSAL_API_TIMEOUT", "15"))
PROPOSAL_CREATED_BY = "CRM System User"

# Durée de vie des vues mises en cache (listes d'enquêtes, propositions)
VIEW_CACHE_TTL_SECONDS = int(os.getenv("VIEW_CACHE_TTL_SECONDS", "60"))

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Administrateur créé au démarrage s'il n'existe pas
DEFAULT_ADMIN_EMAIL = os.getenv("DEFAULT_ADMIN_EMAIL", "admin@example.com")
DEFAULT_ADMIN_PASSWORD = os.getenv("DEFAULT_ADMIN_PASSWORD", "admin12345")

COMPANY_NAME = os.getenv("COMPANY_NAME", "CRM")
