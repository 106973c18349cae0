# vehicle_service/config.py
from typing import List, Optional
from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache

class Settings(BaseSettings):
    # MongoDB settings
    MONGODB_URI: str = "mongodb://localhost:27017"
    MONGODB_DB_NAME: str = "vehicle_management"

    # Server settings
    HOST: str = "0.0.0.0"
    PORT: int = 8000
    RELOAD: bool = True
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    # API settings
    API_PREFIX: str = "/api/v2"

    # JWT settings, shared with the identity service that issues the tokens
    JWT_SECRET: str = "change-me"
    JWT_ALGORITHM: str = "HS256"

    # Shop-Ware partner API
    SHOPWARE_API_URL: Optional[str] = None
    SHOPWARE_TENANT_ID: Optional[str] = None
    SHOPWARE_X_API_PARTNER_ID: Optional[str] = None
    SHOPWARE_X_API_SECRET: Optional[str] = None
    SHOPWARE_TIMEOUT_SECONDS: float = 10.0

    # Sibling microservices
    USER_BASE_URL: Optional[str] = None
    TENANT_SERVICE_URL: Optional[str] = None
    DIRECTORY_TIMEOUT_SECONDS: float = 5.0

    # Usage events
    REDIS_URL: str = "redis://localhost:6379/0"
    USAGE_QUEUE_NAME: str = "usage-events"
    USAGE_EVENT_JOB: str = "billing.jobs.record_usage_event"

    # Roles that skip the ownership check on ownership-sensitive routes
    OWNERSHIP_OVERRIDE_ROLES: str = "platformAdmin,tenantAdmin"

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    @property
    def ownership_override_roles(self) -> List[str]:
        return [role.strip() for role in self.OWNERSHIP_OVERRIDE_ROLES.split(",") if role.strip()]

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.lower() == "production"

    @property
    def shopware_configured(self) -> bool:
        return all([
            self.SHOPWARE_API_URL,
            self.SHOPWARE_TENANT_ID,
            self.SHOPWARE_X_API_PARTNER_ID,
            self.SHOPWARE_X_API_SECRET,
        ])

@lru_cache()
def get_settings():
    return Settings()
