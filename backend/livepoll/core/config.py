from typing import List

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    MONGO_URI: str = Field("mongodb://localhost:27017")
    MONGO_DB: str = Field("polling_application")


    JWT_SECRET: str = Field("thisisthemostsecuresecret")
    JWT_ALGORITHM: str = Field("HS256")
    JWT_EXP_SECONDS: int = Field(3600)


    # WebAuthn relying party
    RP_ID: str = Field("localhost")
    RP_ORIGIN: str = Field("http://localhost:3000")
    RP_NAME: str = Field("Live Poll")


    # Live updates
    SUBSCRIBER_QUEUE_SIZE: int = Field(100)
    PING_INTERVAL_SECONDS: float = Field(10.0)


    CORS_ORIGINS: str = Field("*")
    APP_HOST: str = Field("0.0.0.0")
    APP_PORT: int = Field(8080)
    ENV: str = Field("development")
    LOG_LEVEL: str = Field("INFO")

    def cors_origins_list(self) -> List[str]:
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]


settings = Settings()
