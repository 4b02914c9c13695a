from langchain_core.language_models import BaseChatModel
from langchain_openai import ChatOpenAI


def create_chat_model(
    model_name: str = "gpt-4o",
    temperature: float = 0.7,
    provider: str = "openai",
    api_key: str | None = None,
) -> BaseChatModel:
    """Initialize a LangChain chat model for ``llm`` nodes.

    Args:
        model_name: The name of the model to use (e.g., 'gpt-4o', 'gpt-4o-mini').
        temperature: Sampling temperature.
        provider: The provider to use (currently only 'openai' supported).
        api_key: Explicit API key; when omitted the provider client reads its
            own environment configuration.
    """
    if provider == "openai":
        if api_key is None:
            return ChatOpenAI(model=model_name, temperature=temperature)
        return ChatOpenAI(model=model_name, temperature=temperature, api_key=api_key)

    raise ValueError(f"Unsupported provider: {provider}")
