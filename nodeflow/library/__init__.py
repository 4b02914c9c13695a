from nodeflow.library.llm import create_chat_model

__all__ = ["create_chat_model"]
