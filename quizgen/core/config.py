import logging

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # App
    app_name: str = "QuizGen"
    debug: bool = False
    environment: str = "development"  # development, production
    log_level: str = ""  # DEBUG, INFO, WARNING, ERROR, CRITICAL (empty = auto based on environment)
    log_to_file: bool = True  # Enable file logging

    # Frontend
    frontend_url: str = "http://localhost:5173"

    # CORS (comma-separated origins, empty = defaults for the environment)
    allowed_origins: str = ""

    # Anthropic Claude
    anthropic_api_key: str = ""
    claude_model: str = "claude-sonnet-4-5-20250929"
    quiz_max_tokens: int = 2000
    quiz_temperature: float = 0.7
    max_prompt_chars: int = 60000  # Study text beyond this is truncated before prompting

    # Uploads
    max_upload_size_mb: int = 10

    # PDF text extraction thresholds
    pdf_min_output_chars: int = 10
    pdf_byte_walk_trigger_chars: int = 50
    pdf_byte_walk_max_bytes: int = 500_000
    pdf_byte_walk_max_chars: int = 10_000
    pdf_plain_text_max_matches: int = 50
    pdf_min_alpha_ratio: float = 0.3
    pdf_heuristic_alpha_ratio: float = 0.5  # plain-text scan and byte walk
    pdf_inflate_streams: bool = True
    pdf_max_inflated_bytes: int = 2 * 1024 * 1024
    pdf_result_cache_size: int = 64  # 0 disables the extraction cache

    # Rate limits (slowapi syntax)
    upload_rate_limit: str = "20/minute"
    generate_rate_limit: str = "10/minute"

    class Config:
        env_file = ".env"
        extra = "ignore"

    @property
    def max_upload_size_bytes(self) -> int:
        return self.max_upload_size_mb * 1024 * 1024


settings = Settings()

if settings.environment == "production" and not settings.anthropic_api_key:
    # Text extraction still works without a key; only quiz generation fails.
    logging.getLogger(__name__).warning(
        "ANTHROPIC_API_KEY is not set; quiz generation will be unavailable"
    )
