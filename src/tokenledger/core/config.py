import logging
from pathlib import Path
from pydantic import BaseModel, Field, field_validator


class TokenLedgerConfig(BaseModel):
    """Base configuration for token ledger components.

    Holds defaults; load_config_from_env builds one from environment variables.
    """
    # Database Configuration
    db_path: Path = Field(
        default=Path.home() / ".tokenledger" / "ledger.db",
        description="Path to the SQLite database file"
    )

    # Token Defaults
    default_decimals: int = Field(
        default=18,
        description="Display decimals used when a ledger is created without one"
    )

    # Notification Configuration
    event_history_size: int = Field(
        default=1000,
        description="Number of recent events each notification manager keeps"
    )

    # Logging Configuration
    log_level: str = Field(
        default="INFO",
        description="Log level name for the command line tools"
    )

    @field_validator('default_decimals')
    def validate_default_decimals(cls, value):
        """Validate decimals fit a 256-bit amount."""
        if value < 0 or value > 77:
            raise ValueError("Decimals must be between 0 and 77")
        return value

    @field_validator('event_history_size')
    def validate_event_history_size(cls, value):
        """Validate event history size is non-negative."""
        if value < 0:
            raise ValueError("Event history size cannot be negative")
        return value

    @field_validator('log_level')
    def validate_log_level(cls, value):
        """Validate the log level is a known logging level name."""
        value = value.upper()
        if not isinstance(logging.getLevelName(value), int):
            raise ValueError(f"Unknown log level: {value}")
        return value

    # Environment variables are mapped by load_config_from_env
    model_config = {
        "arbitrary_types_allowed": True,
        "validate_assignment": True,
    }


# Global config instance with default values
config = TokenLedgerConfig()

def load_config_from_env() -> TokenLedgerConfig:
    """Load configuration from environment variables.

    Returns:
        TokenLedgerConfig: Configuration instance with values from environment
    """
    import os

    env_settings = {}

    env_mappings = {
        "TOKENLEDGER_DB_PATH": "db_path",
        "TOKENLEDGER_DEFAULT_DECIMALS": "default_decimals",
        "TOKENLEDGER_EVENT_HISTORY_SIZE": "event_history_size",
        "TOKENLEDGER_LOG_LEVEL": "log_level",
    }

    for env_var, field_name in env_mappings.items():
        if env_var in os.environ:
            value = os.environ[env_var]

            # Handle type conversions
            if field_name == "db_path":
                value = Path(value)
            elif field_name in ["default_decimals", "event_history_size"]:
                value = int(value)

            env_settings[field_name] = value

    return TokenLedgerConfig(**env_settings)
