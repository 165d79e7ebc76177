"""
Configuration de l'application / Application configuration.
Utilise pydantic-settings pour charger depuis .env ou variables d'environnement.
"""

import os
import socket

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Application
    APP_NAME: str = "Outdoor RentalManager"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = True

    # Database - SQLite par défaut pour le développement
    # Database - SQLite by default for development
    DATABASE_URL: str = "sqlite+aiosqlite:///./billboards.db"

    # CORS - origines autorisées / allowed origins
    CORS_ORIGINS: list[str] = ["http://localhost:5173", "http://localhost:3000"]

    # JWT (scope entreprise) / JWT (company scoping)
    SECRET_KEY: str = "change-me-in-production"
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 30

    # Rate Limiting
    RATE_LIMIT_ENABLED: bool = True
    RATE_LIMIT_BOOKING: str = "30/minute"
    RATE_LIMIT_DEFAULT: str = "60/minute"

    # Calendrier bi-semaines / Bi-week calendar
    CALENDAR_MIN_YEAR: int = 2020
    CALENDAR_MAX_YEAR: int = 2100

    # Réconciliation Proposition <-> Locations / Proposal <-> Rental reconciliation
    RECONCILIATION_ENABLED: bool = True
    RECONCILIATION_INTERVAL_MINUTES: int = 10
    RECONCILIATION_LEASE_SECONDS: int = 300
    INSTANCE_ID: str = f"{socket.gethostname()}-{os.getpid()}"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


settings = Settings()
