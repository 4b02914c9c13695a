"""Built-in node executors."""

from __future__ import annotations

from nodeflow.executors.base import FunctionExecutor, NodeExecutor
from nodeflow.executors.builtin import InputExecutor, OutputExecutor, VariableExecutor
from nodeflow.executors.llm import LLMExecutor
from nodeflow.executors.media import ExtractFrameExecutor, ImageGenExecutor, VideoGenExecutor

__all__ = [
    "ExtractFrameExecutor",
    "FunctionExecutor",
    "ImageGenExecutor",
    "InputExecutor",
    "LLMExecutor",
    "NodeExecutor",
    "OutputExecutor",
    "VariableExecutor",
    "VideoGenExecutor",
]
