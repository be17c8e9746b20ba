from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List

from dotenv import load_dotenv

load_dotenv()



class Settings(BaseSettings):
    fe_host: str = "http://localhost:3000"
    supabase_url: str = ""                 # will read from .env
    supabase_service_key: str = ""         # will read from .env
    supabase_jwt_secret: str = ""          # will read from .env
    sensay_api_url_base: str = "https://api.sensay.io/v1"
    sensay_organization_secret: str = Field(
        default="",
        validation_alias=AliasChoices("sensay_organization_secret", "sensay_api_key"),
    )
    sensay_api_version: str = "2025-03-25"
    sensay_replica_id: str = ""    # discovered from the replicas listing when empty
    sensay_model: str = "sensay-default"
    sensay_request_timeout: float = 15.0
    tasks_table: str = "tasks"
    cors_origins: List[str] = []   # will be set from fe_host if not provided
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 8000

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
        populate_by_name=True,
    )

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        # set cors_origins default to fe_host if empty
        if not self.cors_origins:
            self.cors_origins = [self.fe_host]
        self.sensay_api_url_base = self.sensay_api_url_base.rstrip("/")

    def missing_sensay_config(self) -> list[str]:
        """Names of the upstream settings that are required but empty."""
        missing = []
        if not self.sensay_api_url_base:
            missing.append("SENSAY_API_URL_BASE")
        if not self.sensay_organization_secret:
            missing.append("SENSAY_ORGANIZATION_SECRET")
        return missing
