"""Application configuration loaded from environment variables."""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # ── Discord ──────────────────────────────────────────────────────────────
    DISCORD_TOKEN: str = ""
    # The single privileged identity: runs operator commands, receives reports.
    TEACHER_ID: str = "1374070945412546643"

    # ── Storage ──────────────────────────────────────────────────────────────
    LESSON_FILE_PATH: str = "./data/lessons.json"
    XP_SAVE_PATH: str = "./data/student_xp.json"
    DEFAULT_LESSON_ID: str = "default"

    # ── DeepSeek (OpenAI-compatible, primary) ────────────────────────────────
    DEEPSEEK_API_KEY: str = ""
    DEEPSEEK_BASE_URL: str = "https://api.deepseek.com/v1"
    DEEPSEEK_MODEL: str = "deepseek-chat"

    # ── Oracle GenAI (OCI request signing) ────────────────────────────────────
    OCI_CONFIG_FILE: str = "~/.oci/config"
    OCI_CONFIG_PROFILE: str = "DEFAULT"
    # Optional explicit endpoint. If blank, derived from the region in config.
    ORACLE_GENAI_BASE_URL: str = ""
    ORACLE_GENAI_MODEL: str = "meta.llama-3.1-70b-instruct"
    ORACLE_GENAI_COMPARTMENT_ID: str = ""

    # ── Anthropic Claude (backup) ─────────────────────────────────────────────
    ANTHROPIC_API_KEY: str = ""
    ANTHROPIC_MODEL: str = "claude-3-5-haiku-20241022"

    LLM_TEMPERATURE: float = 0.7
    LLM_MAX_TOKENS: int = 800

    # ── Discussion timing (seconds) ──────────────────────────────────────────
    INTRO_DELAY_SECONDS: float = 5.0
    STAGE_DEADLINE_SECONDS: float = 300.0
    COVERAGE_ADVANCE_DELAY_SECONDS: float = 10.0
    HINT_ADVANCE_DELAY_SECONDS: float = 15.0
    STAGE_TRANSITION_DELAY_SECONDS: float = 5.0
    RESET_CONFIRM_SECONDS: float = 10.0

    # ── XP ───────────────────────────────────────────────────────────────────
    INSIGHT_POINTS: int = 10
    PARTICIPATION_POINTS: int = 2
    LEADERBOARD_SIZE: int = 10

    # ── Reports ──────────────────────────────────────────────────────────────
    TRANSCRIPT_CHUNK_SIZE: int = 1900
    TRANSCRIPT_INLINE_LIMIT: int = 2000

    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()
