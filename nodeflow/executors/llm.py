"""LLM node executor backed by a LangChain chat model."""

from __future__ import annotations

import sys
from typing import Any

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import BaseMessage, HumanMessage, SystemMessage

from nodeflow.domain.errors import TerminalExecutionError
from nodeflow.executors.base import NodeExecutor


class LLMExecutor(NodeExecutor):
    """Runs a chat model over the node's text (and optional image) inputs.

    Ports:
        in_system: System instructions (falls back to ``params["system_prompt"]``)
        in_text: User text (falls back to ``params["prompt"]``)
        in_image: Optional image URL sent as multimodal content
        out_text: Model reply

    Without a model the executor returns a deterministic mock reply, which
    keeps workflows runnable offline.
    """

    input_ports = {"in_system": "text", "in_text": "text", "in_image": "image"}
    output_ports = {"out_text": "text"}

    def __init__(self, llm: BaseChatModel | None = None) -> None:
        self.llm = llm

    async def execute(self, inputs: dict[str, Any], params: dict[str, Any]) -> dict[str, Any]:
        system_text = str(inputs.get("in_system") or params.get("system_prompt") or "")
        input_text = str(inputs.get("in_text") or params.get("prompt") or "")
        image_url = inputs.get("in_image")

        if self.llm is None:
            prefix = "[Enhanced]" if system_text else "[Processed]"
            return {"out_text": f"{prefix} {input_text}"}

        if not input_text and not image_url:
            raise TerminalExecutionError("LLM node requires text or image input")

        messages = self._build_messages(system_text, input_text, image_url)
        sys.stderr.write(f"[LLM] Invoking {type(self.llm).__name__} with {len(messages)} messages\n")
        sys.stderr.flush()

        response = await self.llm.ainvoke(messages)
        content = response.content
        if isinstance(content, list):
            content = "".join(
                part.get("text", "") if isinstance(part, dict) else str(part) for part in content
            )
        return {"out_text": content}

    @staticmethod
    def _build_messages(system_text: str, input_text: str, image_url: Any) -> list[BaseMessage]:
        messages: list[BaseMessage] = []
        if system_text:
            messages.append(SystemMessage(content=system_text))
        if image_url:
            messages.append(
                HumanMessage(
                    content=[
                        {"type": "text", "text": input_text},
                        {"type": "image_url", "image_url": {"url": str(image_url)}},
                    ]
                )
            )
        else:
            messages.append(HumanMessage(content=input_text))
        return messages
