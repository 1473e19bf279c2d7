from pydantic_settings import BaseSettings


class ServerSettings(BaseSettings):
    host: str = "127.0.0.1"
    port: int = 8000

    whisper_model: str = "base"
    whisper_device: str = "cpu"
    whisper_compute_type: str = "int8"
    whisper_language: str | None = None
    max_upload_bytes: int = 25 * 1024 * 1024

    translator: str = "gemini"
    gemini_api_key: str = ""
    gemini_model: str = "gemini-1.5-pro-002"
    translate_attempts: int = 3
    retry_base_delay_sec: float = 1.0

    rate_limit_per_interval: int = 60
    rate_limit_interval_sec: float = 60.0
    rate_limit_max_tokens: int = 500

    model_config = {"env_prefix": "LIVECAP_"}
