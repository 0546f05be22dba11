"""Application configuration settings."""

import os
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Optional


@dataclass
class AssignmentPolicySettings:
    """Assignment validation policy."""

    # How far in the past a new assignment may start
    max_backdate_years: int = 1

    # Longest allowed assignment, measured from start_date
    max_duration_years: int = 5

    # Acting (PLT) appointments
    acting_max_months: int = 6
    max_acting_holders: int = 2


@dataclass
class HierarchySettings:
    """Hierarchy traversal configuration."""

    # Hop cap when walking a reporting chain
    max_chain_hops: int = 20

    # Chains deeper than this are reported as warnings by the integrity check
    max_depth: int = 10


@dataclass
class Settings:
    """Main application settings."""

    # Application info
    app_name: str = "Organization Management API"
    app_version: str = "1.0.0"
    debug: bool = False

    # Database
    database_url: str = ""
    database_pool_size: int = 5
    database_max_overflow: int = 10
    database_isolation_level: str = "SERIALIZABLE"

    # Assignment policy
    assignment_policy: AssignmentPolicySettings = field(default_factory=AssignmentPolicySettings)

    # Hierarchy
    hierarchy: HierarchySettings = field(default_factory=HierarchySettings)

    @classmethod
    def from_env(cls) -> "Settings":
        """Create settings from environment variables."""
        return cls(
            app_name=os.getenv("APP_NAME", "Organization Management API"),
            app_version=os.getenv("APP_VERSION", "1.0.0"),
            debug=os.getenv("DEBUG", "false").lower() == "true",
            database_url=os.getenv(
                "DATABASE_URL",
                f"postgresql://{os.getenv('DB_USER', 'postgres')}:{os.getenv('DB_PASSWORD', '')}@"
                f"{os.getenv('DB_HOST', 'localhost')}:{os.getenv('DB_PORT', '5432')}/"
                f"{os.getenv('DB_NAME', 'hr_org')}"
            ),
            database_pool_size=int(os.getenv("DB_POOL_SIZE", "5")),
            database_max_overflow=int(os.getenv("DB_MAX_OVERFLOW", "10")),
            database_isolation_level=os.getenv("DB_ISOLATION_LEVEL", "SERIALIZABLE"),
            assignment_policy=AssignmentPolicySettings(
                max_backdate_years=int(os.getenv("ASSIGNMENT_MAX_BACKDATE_YEARS", "1")),
                max_duration_years=int(os.getenv("ASSIGNMENT_MAX_DURATION_YEARS", "5")),
                acting_max_months=int(os.getenv("ASSIGNMENT_ACTING_MAX_MONTHS", "6")),
                max_acting_holders=int(os.getenv("ASSIGNMENT_MAX_ACTING_HOLDERS", "2")),
            ),
            hierarchy=HierarchySettings(
                max_chain_hops=int(os.getenv("HIERARCHY_MAX_CHAIN_HOPS", "20")),
                max_depth=int(os.getenv("HIERARCHY_MAX_DEPTH", "10")),
            ),
        )


# Singleton settings instance
_settings: Optional[Settings] = None


@lru_cache()
def get_settings() -> Settings:
    """Get application settings (cached)."""
    global _settings
    if _settings is None:
        _settings = Settings.from_env()
    return _settings

