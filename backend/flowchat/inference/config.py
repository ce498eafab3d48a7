from flowchat.config import LLM_API_KEY, LLM_BASE_URL, LLM_MODEL, LLM_TEMPERATURE, LLM_TIMEOUT
from .chat_completions_client import ChatCompletionsClient


def get_llm_client() -> ChatCompletionsClient:
    return ChatCompletionsClient(
        base_url=LLM_BASE_URL,
        model=LLM_MODEL,
        temperature=LLM_TEMPERATURE,
        api_key=LLM_API_KEY,
        timeout=LLM_TIMEOUT,
    )
