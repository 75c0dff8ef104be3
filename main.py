# main.py: Point d'entrée du backend CRM (uvicorn main:app).
# Les variables d'environnement sont chargées avant tout import du projet.

import os

from dotenv import load_dotenv

load_dotenv()

from database import create_db_and_tables
import models  # enregistre les tables CRM auprès de Base
from app_factory import create_app

# Idempotent: les tables existantes ne sont pas recréées
create_db_and_tables()

app = create_app()

if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host=os.getenv("HOST", "127.0.0.1"), port=int(os.getenv("PORT", "8000")))
