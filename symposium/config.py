"""
Central configuration via pydantic-settings.
All secrets are read from environment variables / .env file.
"""
from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Database ──────────────────────────────────────────────────────────────
    DATABASE_URL: str = "sqlite+aiosqlite:///./symposium.db"

    @property
    def async_database_url(self) -> str:
        """
        Hosting providers inject DATABASE_URL as 'postgresql://...'
        SQLAlchemy async requires 'postgresql+asyncpg://...'
        This property fixes the prefix automatically.
        """
        url = self.DATABASE_URL
        if url.startswith("postgresql://") or url.startswith("postgres://"):
            return url.replace("://", "+asyncpg://", 1)
        return url

    # ── Dashboard access (two tiers) ──────────────────────────────────────────
    ADMIN_SECRET: str = ""
    VIEWER_SECRET: str = ""

    # ── Payment proofs ────────────────────────────────────────────────────────
    BLOB_DIR: str = "./blobs"
    MAX_PROOF_BYTES: int = 5 * 1024 * 1024
    REGISTRATION_FEE: int = 50

    # UPI payee shown in the payment QR (optional)
    UPI_PAYEE_VPA: str = ""
    UPI_PAYEE_NAME: str = "Symposium Registrations"

    # ── Reports ───────────────────────────────────────────────────────────────
    REPORT_PREFIX: str = "symposium_report"

    # ─────────────────────────────────────────────────────────────────────────

    @property
    def upi_enabled(self) -> bool:
        return bool(self.UPI_PAYEE_VPA)


settings = Settings()
