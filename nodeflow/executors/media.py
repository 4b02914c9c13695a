"""Mock media-generation executors.

These return deterministic placeholder URLs. Real providers are plugged in by
registering a different executor for the same node type.
"""

from __future__ import annotations

from typing import Any
from urllib.parse import quote

from nodeflow.executors.base import NodeExecutor

SAMPLE_VIDEO_URL = "https://sample-videos.com/video321/mp4/720/big_buck_bunny_720p_1mb.mp4"


def _prompt(inputs: dict[str, Any], params: dict[str, Any]) -> str:
    return str(inputs.get("in_text") or params.get("prompt") or "")


class ImageGenExecutor(NodeExecutor):
    input_ports = {"in_text": "text", "in_image": "image"}
    output_ports = {"out_image": "image"}

    async def execute(self, inputs: dict[str, Any], params: dict[str, Any]) -> dict[str, Any]:
        seed = quote(_prompt(inputs, params)[:30] or "default", safe="")
        return {"out_image": f"https://picsum.photos/seed/{seed}/400/300"}


class VideoGenExecutor(NodeExecutor):
    input_ports = {"in_text": "text", "in_image": "image"}
    output_ports = {"out_video": "video"}

    async def execute(self, inputs: dict[str, Any], params: dict[str, Any]) -> dict[str, Any]:
        return {"out_video": SAMPLE_VIDEO_URL}


class ExtractFrameExecutor(NodeExecutor):
    input_ports = {"in_video": "video"}
    output_ports = {"out_image": "image"}

    async def execute(self, inputs: dict[str, Any], params: dict[str, Any]) -> dict[str, Any]:
        return {"out_image": "https://picsum.photos/seed/frame/400/300"}
