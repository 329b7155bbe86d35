import os
from typing import Optional

from pydantic import BaseModel

DEFAULT_MODEL = "gemini-1.5-flash"
DEFAULT_DATABASE_URL = "sqlite:///./exam_engine.db"


class Settings(BaseModel):
    """
    Explicit configuration, threaded into the callers that need it.
    The engine modules never read the environment themselves.
    """

    gemini_api_key: Optional[str] = None
    llm_model: str = DEFAULT_MODEL
    llm_timeout_seconds: float = 60.0
    database_url: str = DEFAULT_DATABASE_URL
    # 0 disables the short / numbers-only question filter
    min_question_chars: int = 0

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            gemini_api_key=os.environ.get("GEMINI_API_KEY") or None,
            llm_model=os.environ.get("LLM_MODEL") or DEFAULT_MODEL,
            llm_timeout_seconds=float(os.environ.get("LLM_TIMEOUT_SECONDS", "60")),
            database_url=os.environ.get("DATABASE_URL") or DEFAULT_DATABASE_URL,
            min_question_chars=int(os.environ.get("MIN_QUESTION_CHARS", "0")),
        )
