# tenant_relay/settings.py
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
from typing import Optional
import logging
from pathlib import Path

# Configure logging for settings module
logger = logging.getLogger(__name__)
if not logging.getLogger().hasHandlers():
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s SETTINGS.PY - [%(levelname)s] - %(message)s'
    )

# This settings.py file is at <project>/tenant_relay/settings.py
PROJECT_ROOT = Path(__file__).parent.parent.resolve()
DOTENV_PATH = PROJECT_ROOT / ".env"

if DOTENV_PATH.exists():
    logger.info(f"SETTINGS.PY: .env file FOUND at explicit path: {DOTENV_PATH}")
else:
    logger.info(
        f"SETTINGS.PY: .env file NOT FOUND at explicit path: {DOTENV_PATH}. "
        "Will rely on OS env vars or defaults."
    )


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    app_name: str = "Tenant Relay"
    debug_mode: bool = False
    log_level: str = "INFO"

    # Primary tenant record storage
    storage_backend: str = Field(
        default="sqlite",
        description="Tenant document backend: 'sqlite' or 'memory'."
    )
    sqlite_db_path: str = "./tenant_relay_data.sqlite3"
    store_timeout_seconds: float = Field(
        default=5.0,
        description="Deadline applied to every tenant backend call."
    )

    # Redis secondary index
    secondary_index_enabled: bool = False
    secondary_index_key_prefix: str = "relay:tenant"
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_db: int = 0
    redis_password: Optional[str] = None

    # Security settings
    admin_api_key: Optional[str] = Field(
        default=None,
        description="API Key for accessing admin routes."
    )
    relay_encryption_key: Optional[str] = Field(
        default=None,
        description="Fernet key used to encrypt provider secrets written through the admin API."
    )

    # New-tenant notifications
    notification_webhook_url: Optional[str] = None
    notification_mailbox: Optional[str] = None
    notification_timeout_seconds: float = 10.0

    # Ambient conversational runtime credentials, used when a tenant has none
    voiceflow_api_key: Optional[str] = None
    voiceflow_version: Optional[str] = None
    default_company_name: Optional[str] = None

    model_config = SettingsConfigDict(
        env_file=DOTENV_PATH if DOTENV_PATH.exists() else None,
        extra="ignore",
        env_file_encoding='utf-8'
    )


settings = Settings()

# Sensitive values are masked
logger.info(
    f"SETTINGS.PY: storage_backend='{settings.storage_backend}', "
    f"secondary_index_enabled={settings.secondary_index_enabled}, "
    f"debug_mode={settings.debug_mode}"
)
logger.info(
    f"SETTINGS.PY: admin_api_key={'********' if settings.admin_api_key else 'None'}, "
    f"voiceflow_api_key={'********' if settings.voiceflow_api_key else 'None'}"
)
