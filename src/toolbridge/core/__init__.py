from .llm import get_model
from .settings import Settings, settings

__all__ = ["Settings", "get_model", "settings"]
