from pathlib import Path

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    app_name: str = "DocChat"
    debug: bool = False

    # Paths
    db_path: Path = Path(__file__).resolve().parent.parent.parent / "docchat.db"

    # LLM
    llm_provider: str = "gemini"  # gemini | openrouter
    gemini_api_key: str = ""
    openrouter_api_key: str = ""
    openrouter_base_url: str = "https://openrouter.ai/api/v1"
    default_model: str = ""  # empty: the provider's own default

    # Document index (LlamaCloud)
    llama_cloud_api_key: str = ""
    llama_cloud_base_url: str = "https://api.cloud.llamaindex.ai/api/v1"
    llama_cloud_project_name: str = "Default"
    llama_cloud_index_name: str = "UNRAVEL"

    # Identity provider
    auth_url: str = ""
    auth_api_key: str = ""
    session_cookie: str = "sb-access-token"

    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    cors_origins: list[str] = ["*"]

    model_config = {
        "env_file": str(Path(__file__).resolve().parent.parent.parent / ".env"),
        "env_prefix": "DOCCHAT_",
    }


settings = Settings()
