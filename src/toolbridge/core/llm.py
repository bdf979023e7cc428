"""Chat model construction."""
import logging

from langchain_core.language_models.chat_models import BaseChatModel
from langchain_openai import ChatOpenAI

from .settings import Settings

logger = logging.getLogger(__name__)


def get_model(settings: Settings) -> BaseChatModel:
    """Create the chat model for an OpenAI-compatible endpoint.

    Retries are disabled so upstream errors surface on the turn that caused
    them instead of being replayed.
    """
    logger.info(f"Creating chat model {settings.LLM_MODEL} at {settings.LLM_API_URL}")
    return ChatOpenAI(
        model=settings.LLM_MODEL,
        api_key=settings.LLM_API_KEY,
        base_url=settings.LLM_API_URL,
        timeout=settings.LLM_TIMEOUT,
        max_retries=0,
    )
