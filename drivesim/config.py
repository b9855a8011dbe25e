"""
Application Configuration — Pydantic Settings

Centralized configuration management using environment variables.
Loads from .env file automatically with sensible defaults.
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Priority: Environment variables > .env file > defaults
    """

    # === API Configuration ===
    PROJECT_NAME: str = "Drive Simulation Core"

    # === CORS Configuration ===
    CORS_ORIGINS: list[str] = [
        "http://localhost:5173",
        "http://localhost:3000",
        "http://localhost:8080",
        "http://127.0.0.1:5173",
        "http://127.0.0.1:3000",
        "http://127.0.0.1:8080",
    ]

    # === Simulation Timing ===
    SIMULATION_UPDATE_INTERVAL_MS: int = 1000  # PLC session tick
    VFD_TICK_INTERVAL_MS: int = 100            # Drive state machine tick

    # === Buffers ===
    HISTORY_CAPACITY: int = 1000
    ALERT_LOG_CAPACITY: int = 100

    # === ML Anomaly Monitor ===
    ML_MIN_TRAINING_SAMPLES: int = 20

    # === Environment ===
    ENVIRONMENT: str = "local"  # local, development, staging, production
    LOG_LEVEL: str = "INFO"

    # === Settings Configuration ===
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )


# Singleton instance
settings = Settings()
