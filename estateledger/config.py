# estateledger/config.py
from decimal import Decimal
from functools import lru_cache
from pathlib import Path
from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict
from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    # --- Database ---
    database_url: str = "sqlite:///estateledger.db"

    # --- Logging ---
    log_level: str = "INFO"
    json_logs: bool = False

    # --- CORS ---
    cors_origins: List[str] = ["http://localhost:3000", "http://localhost:9002"]

    # --- Billing ---
    # Handover on or before this day of the month bills the handover month itself.
    grace_period_day: int = 10
    management_fee_rate: Decimal = Decimal("0.05")
    currency_label: str = "Ksh"

    # --- Document Generation ---
    pdf_output_dir: str = "uploads/pdfs"
    company_name: str = "Estate Ledger Property Management"


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()

# Ensure path directory exists (for SQLite)
if settings.database_url.startswith("sqlite:///"):
    db_path = Path(settings.database_url.replace("sqlite:///", ""))
    db_path.parent.mkdir(parents=True, exist_ok=True)

# --- SQLAlchemy setup ---
engine = create_engine(
    settings.database_url,
    connect_args={"check_same_thread": False}
    if settings.database_url.startswith("sqlite")
    else {},
)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()
