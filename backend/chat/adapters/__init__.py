from .openai_adapter import OpenAiAssistantAdapter

__all__ = ["OpenAiAssistantAdapter"]
