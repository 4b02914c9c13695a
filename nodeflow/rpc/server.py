"""Minimal stdio RPC server for nodeflow.

Protocol:
- JSON per line over stdin/stdout.
- Requests: {"id": number, "method": string, "params"?: object}
- Responses: {"id": number, "result"?: any, "error"?: {"message": string, "code": number}}

Error codes follow HTTP semantics: 400 for requests that fail shape or graph
validation, 500 for unexpected faults. A run whose nodes fail is not an RPC
error; it comes back as a result with ``success: false``.
"""

from __future__ import annotations

import asyncio
import json
import sys
from typing import Any

from pydantic import BaseModel, ValidationError

from nodeflow import __version__
from nodeflow.config import EngineConfig
from nodeflow.domain.models import RunWorkflowRequest
from nodeflow.execution.engine import ExecutionEngine

BAD_REQUEST = 400
INTERNAL_ERROR = 500


class RpcError(Exception):
    """An error reported back to the caller with an HTTP-style code."""

    def __init__(self, message: str, code: int = BAD_REQUEST) -> None:
        super().__init__(message)
        self.message = message
        self.code = code


class _RunWorkflowParams(RunWorkflowRequest):
    config: EngineConfig | None = None


def main() -> None:
    """Run the RPC loop reading stdin and writing stdout."""

    engine = ExecutionEngine()
    sys.stderr.write("[RPC] nodeflow RPC server ready\n")
    sys.stderr.flush()

    for line in sys.stdin:
        line = line.strip()
        if not line:
            continue

        try:
            request = json.loads(line)
        except json.JSONDecodeError:
            continue

        response = handle_request(request, engine)
        sys.stdout.write(json.dumps(response, ensure_ascii=False, default=str) + "\n")
        sys.stdout.flush()

        if response.get("result") == "shutdown":
            return


def handle_request(request: Any, engine: ExecutionEngine | None = None) -> dict[str, Any]:
    """Handle one RPC request.

    Args:
        request: Parsed JSON object.
        engine: Engine used for workflow methods (a default one if omitted).

    Returns:
        RPC response dict.
    """

    if not isinstance(request, dict):
        return {"id": -1, "error": {"message": "Invalid request", "code": BAD_REQUEST}}

    request_id = request.get("id")
    method = request.get("method")

    if not isinstance(request_id, int) or not isinstance(method, str):
        return {"id": -1, "error": {"message": "Invalid request fields", "code": BAD_REQUEST}}

    if method == "hello":
        return {"id": request_id, "result": f"hello from nodeflow {__version__}"}

    if method == "ping":
        return {"id": request_id, "result": "pong"}

    if method == "shutdown":
        return {"id": request_id, "result": "shutdown"}

    if method == "validate_workflow":
        try:
            params = _parse_params(request.get("params"), RunWorkflowRequest)
            report = (engine or ExecutionEngine()).validate(params.nodes, params.edges, params.variables)
            return {
                "id": request_id,
                "result": {
                    "valid": report.ok,
                    "order": report.order,
                    "errors": [str(error) for error in report.errors],
                },
            }
        except RpcError as exc:
            return {"id": request_id, "error": {"message": exc.message, "code": exc.code}}
        except Exception as exc:  # noqa: BLE001 - return structured RPC errors
            return {"id": request_id, "error": {"message": _format_error(exc), "code": INTERNAL_ERROR}}

    if method == "run_workflow":
        try:
            params = _parse_params(request.get("params"), _RunWorkflowParams)
            run_engine = engine or ExecutionEngine()
            if params.config is not None:
                run_engine = ExecutionEngine(registry=run_engine.registry, config=params.config)

            result = asyncio.run(run_engine.execute(params.nodes, params.edges, params.variables))
            if result.rejected:
                raise RpcError(result.error or "Workflow rejected", BAD_REQUEST)
            return {"id": request_id, "result": result.model_dump(mode="json", by_alias=True)}
        except RpcError as exc:
            return {"id": request_id, "error": {"message": exc.message, "code": exc.code}}
        except Exception as exc:  # noqa: BLE001 - return structured RPC errors
            sys.stderr.write(f"[RPC] run_workflow failed: {_format_error(exc)}\n")
            sys.stderr.flush()
            return {"id": request_id, "error": {"message": _format_error(exc), "code": INTERNAL_ERROR}}

    return {"id": request_id, "error": {"message": f"Unknown method: {method}", "code": BAD_REQUEST}}


def _parse_params(value: Any, model: type[BaseModel]) -> Any:
    if value is None:
        # Pydantic will produce a helpful error.
        value = {}
    if not isinstance(value, dict):
        raise RpcError("params must be an object")

    try:
        return model.model_validate(value)
    except ValidationError as exc:
        # Keep errors readable for the editor/UI.
        raise RpcError(f"Validation failed: {exc.errors(include_url=False)}") from exc


def _format_error(exc: Exception) -> str:
    message = str(exc).strip() or exc.__class__.__name__
    return message


if __name__ == "__main__":
    main()
