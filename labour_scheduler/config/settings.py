"""Labour scheduler configuration settings.

Loads configuration from environment variables with sensible defaults.
Productivity constants live here so every allocation strategy shares
one source of truth.
"""

import os
from typing import Optional
from dataclasses import dataclass, field
from dotenv import load_dotenv

# Load .env file for non-secret configuration (emulator hosts, constants, etc.)
load_dotenv()


@dataclass
class Settings:
    """Application settings loaded from environment variables."""

    # Labour capacity constants
    hours_per_unit: float = field(default_factory=lambda: float(os.getenv("LABOUR_HOURS_PER_UNIT", "8")))
    installers_per_van: int = field(default_factory=lambda: int(os.getenv("INSTALLERS_PER_VAN", "2")))
    suggested_crew_hours: float = field(default_factory=lambda: float(os.getenv("SUGGESTED_CREW_HOURS", "6.4")))
    quote_hours_per_day: float = field(default_factory=lambda: float(os.getenv("QUOTE_HOURS_PER_DAY", "48")))
    default_job_window_days: int = field(default_factory=lambda: int(os.getenv("DEFAULT_JOB_WINDOW_DAYS", "7")))

    # Firebase Configuration
    firebase_project_id: Optional[str] = field(default_factory=lambda: os.getenv("FIREBASE_PROJECT_ID"))
    use_firebase_emulators: bool = field(default_factory=lambda: os.getenv("USE_FIREBASE_EMULATORS", "false").lower() == "true")
    firestore_emulator_host: str = field(default_factory=lambda: os.getenv("FIRESTORE_EMULATOR_HOST", "localhost:8081"))

    # Logging
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))

    def validate(self) -> None:
        """Validate capacity constants.

        Raises:
            ValueError: If a constant would make the capacity formula meaningless.
        """
        if self.hours_per_unit <= 0:
            raise ValueError("LABOUR_HOURS_PER_UNIT must be positive")
        if self.installers_per_van < 1:
            raise ValueError("INSTALLERS_PER_VAN must be at least 1")
        if self.quote_hours_per_day <= 0:
            raise ValueError("QUOTE_HOURS_PER_DAY must be positive")
        if self.suggested_crew_hours <= 0:
            raise ValueError("SUGGESTED_CREW_HOURS must be positive")

    @property
    def is_emulator_mode(self) -> bool:
        """Check if running in emulator mode."""
        return self.use_firebase_emulators


# Singleton settings instance
settings = Settings()
