from pydantic_settings import BaseSettings
from functools import lru_cache


class Settings(BaseSettings):
    # Application
    app_name: str = "Agent Playground"
    debug: bool = False
    api_version: str = "v1"

    # Database
    database_url: str = "sqlite+aiosqlite:///./playground.db"

    # Round timing
    action_timeout_seconds: int = 600  # 10 minutes per round
    claim_lease_seconds: int = 300  # must outlive two narrator calls
    sweep_batch_limit: int = 50

    # Matchmaking
    activity_window_days: int = 7
    matchmaking_timeout_seconds: int = 3600
    matchmaking_auto_form: bool = True

    # Action intake
    max_action_length: int = 2000

    # Narrator (LLM) settings
    llm_provider: str = "nano-gpt"  # "anthropic" or any OpenAI-compatible provider
    anthropic_api_key: str = ""
    llm_api_key: str = ""
    llm_api_base: str = "https://nano-gpt.com/api/v1"
    llm_model: str = "deepseek/deepseek-v3.2:thinking"  # or "claude-3-haiku-20240307" for Anthropic
    llm_max_tokens: int = 2048
    llm_temperature: float = 0.8
    narrator_timeout_seconds: float = 60.0

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


@lru_cache()
def get_settings() -> Settings:
    return Settings()
