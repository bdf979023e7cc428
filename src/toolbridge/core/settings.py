"""Application settings read from the environment and `.env`."""
from typing import List, Literal, Optional

from pydantic import SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..common.types import ConfigurationError

GEMINI_OPENAI_ENDPOINT = "https://generativelanguage.googleapis.com/v1beta/openai/"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Tool server
    MCP_SERVER: Optional[str] = None
    MCP_SERVER_COMMAND: Optional[str] = None
    MCP_SERVER_ARGS: List[str] = []

    # Chat model
    LLM_API_KEY: Optional[SecretStr] = None
    LLM_API_URL: Optional[str] = GEMINI_OPENAI_ENDPOINT
    LLM_MODEL: str = "gemini-2.5-flash"
    LLM_TIMEOUT: float = 120.0

    # Agent
    AGENT_NAME: str = "DatabaseRetrievalAgent"
    RECURSION_LIMIT: int = 25
    TOOL_TIMEOUT: float = 30.0
    STRICT_ARGUMENTS: bool = False
    DUPLICATE_TOOLS: Literal["last_wins", "reject"] = "last_wins"

    # Runtime
    LOG_LEVEL: str = "INFO"
    AUTH_SECRET: Optional[SecretStr] = None

    def missing_required(self) -> List[str]:
        """Names of required settings that are not set."""
        missing = []
        if not self.MCP_SERVER and not self.MCP_SERVER_COMMAND:
            missing.append("MCP_SERVER")
        if self.LLM_API_KEY is None or not self.LLM_API_KEY.get_secret_value():
            missing.append("LLM_API_KEY")
        if not self.LLM_MODEL:
            missing.append("LLM_MODEL")
        return missing

    def validate_required(self) -> None:
        """Raise ConfigurationError naming every missing required setting."""
        missing = self.missing_required()
        if missing:
            raise ConfigurationError(
                f"Missing required configuration: {', '.join(missing)}",
                missing=missing,
            )


settings = Settings()
