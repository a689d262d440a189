from typing import List

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    LOG_LEVEL: str = "INFO"
    MAX_SPECTATORS: int = 10
    EVENT_LOG_SIZE: int = 50
    MAX_KO_COUNT: int = 4
    MAX_CHEER_CARDS: int = 3
    SPECTATOR_INACTIVITY_MINUTES: int = 30
    DEFAULT_DIFFICULTY: str = "normal"
    DEFAULT_TARGET_PRIORITY: str = "weakest"
    DEFAULT_ATTACK_PATTERN: str = "deck_based"
    # JSON list when set from the environment, e.g. '["http://localhost:5173"]'
    CORS_ORIGINS: List[str] = ["*"]

    class Config:
        env_file = ".env"
        env_prefix = "RAID_"


settings = Settings()
