"""
Claims Lifecycle Configuration
Settings for claim numbering, SLA limits and logging.
Source: https://docs.pydantic.dev/latest/concepts/pydantic_settings/
Verified: 2025-12-18
"""

from typing import Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from src.core.enums import ClaimStatus

DEFAULT_CLAIM_NUMBER_SALT = "claims-manager-dev-fallback"

# Business days allowed per claim status; statuses not listed have no limit
DEFAULT_SLA_LIMITS: dict[ClaimStatus, int] = {
    ClaimStatus.DRAFT: 1,
    ClaimStatus.VALIDATION: 1,
    ClaimStatus.SUBMITTED: 8,
    ClaimStatus.PENDING_INFO: 3,
}


class ClaimsSettings(BaseSettings):
    """
    Claims lifecycle configuration settings.

    Every value can be overridden with a CLAIMS_ prefixed environment
    variable, e.g. CLAIMS_CLAIM_NUMBER_SALT or
    CLAIMS_SLA_LIMITS='{"SUBMITTED": 10}'.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        env_prefix="CLAIMS_",
    )

    # =========================================================================
    # Application
    # =========================================================================
    ENVIRONMENT: Literal["development", "staging", "production", "testing"] = Field(
        default="development",
        description="Deployment environment",
    )

    # =========================================================================
    # Claim Numbering
    # =========================================================================
    CLAIM_NUMBER_SALT: str = Field(
        default=DEFAULT_CLAIM_NUMBER_SALT,
        min_length=1,
        description="Salt for hashids claim-number encoding (override in production)",
    )
    CLAIM_NUMBER_MIN_LENGTH: int = Field(
        default=8,
        ge=1,
        le=32,
        description="Minimum length of the encoded part of a claim number",
    )
    CLAIM_NUMBER_ALPHABET: str = Field(
        default="ABCDEFGHJKLMNPQRSTUVWXYZ23456789",
        description="Encoding alphabet without ambiguous characters (no 0/O, 1/I/L)",
    )
    CLAIM_NUMBER_PREFIX: str = Field(
        default="RECL_",
        description="Prefix prepended to every encoded claim number",
    )

    # =========================================================================
    # SLA
    # =========================================================================
    SLA_LIMITS: dict[ClaimStatus, int] = Field(
        default_factory=lambda: dict(DEFAULT_SLA_LIMITS),
        description="Business-day limit per claim status (JSON object in env)",
    )
    SLA_AT_RISK_RATIO: float = Field(
        default=0.75,
        gt=0.0,
        le=1.0,
        description="Fraction of the limit from which a stage is flagged at risk",
    )

    # =========================================================================
    # Logging
    # =========================================================================
    LOG_LEVEL: str = Field(default="INFO", description="Logging level")
    LOG_JSON: bool = Field(default=False, description="Emit JSON log lines")
    LOG_FILE: Optional[str] = Field(default=None, description="Optional log file path")

    # =========================================================================
    # Validators
    # =========================================================================
    @field_validator("CLAIM_NUMBER_ALPHABET")
    @classmethod
    def validate_alphabet(cls, v: str) -> str:
        """Hashids needs at least 16 distinct characters."""
        if len(set(v)) != len(v):
            raise ValueError("Claim number alphabet must not repeat characters")
        if len(v) < 16:
            raise ValueError("Claim number alphabet needs at least 16 characters")
        return v

    @field_validator("SLA_LIMITS")
    @classmethod
    def validate_sla_limits(cls, v: dict[ClaimStatus, int]) -> dict[ClaimStatus, int]:
        """Limits are whole business days, never negative."""
        for status, limit in v.items():
            if limit < 0:
                raise ValueError(f"SLA limit for {status.value} must be >= 0, got {limit}")
        return v

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Normalize and check the log level name."""
        level = v.upper()
        if level not in {"TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level

    @property
    def uses_default_salt(self) -> bool:
        """Check if the development fallback salt is still in use."""
        return self.CLAIM_NUMBER_SALT == DEFAULT_CLAIM_NUMBER_SALT

    @property
    def is_production(self) -> bool:
        """Check if running in production."""
        return self.ENVIRONMENT == "production"


# Singleton instance
_claims_settings: Optional[ClaimsSettings] = None


def get_claims_settings() -> ClaimsSettings:
    """
    Get cached claims settings instance.

    Returns:
        ClaimsSettings instance
    """
    global _claims_settings
    if _claims_settings is None:
        _claims_settings = ClaimsSettings()
    return _claims_settings
