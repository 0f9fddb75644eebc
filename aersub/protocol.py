"""Line-delimited JSON request dispatcher for the AerSub runtime."""

import json
import logging
from typing import Any, Callable, Dict, Optional, TextIO

from . import gpu_probe
from .exceptions import OutputStreamError
from .models import RpcRequest, RpcResponse
from .subtitle_generator import transcribe
from .utils import display_text

logger = logging.getLogger(__name__)

MAX_REQUEST_ID = 2 ** 64 - 1

Handler = Callable[[Any, "EventStream"], Any]

class EventStream:
    """
    Writes response and event lines to the protocol output stream.

    Every line is flushed immediately. Any failure to write or flush is raised
    as OutputStreamError.
    """

    def __init__(self, stream: TextIO):
        self.stream = stream

    def _write_line(self, message: dict) -> None:
        line = display_text(json.dumps(message, ensure_ascii=False))
        try:
            self.stream.write(line)
            self.stream.write("\n")
            self.stream.flush()
        except (OSError, ValueError) as e:
            raise OutputStreamError(f"Could not write to output stream: {e}") from e

    def write_response(self, response: RpcResponse) -> None:
        self._write_line(response.to_dict())

    def write_event(self, event: str, payload: Any) -> None:
        self._write_line({"event": event, "payload": payload})

    def log(self, message: str) -> None:
        """Emits a progress message as a "log" event."""
        self.write_event("log", message)

def _reject_constant(name: str) -> Any:
    raise ValueError(f"invalid number {name}")

def decode_request(line: str) -> RpcRequest:
    """
    Decodes one request line.

    Raises:
        ValueError: If the line is not valid JSON or lacks a usable id/method.
    """
    data = json.loads(line, parse_constant=_reject_constant)
    if not isinstance(data, dict):
        raise ValueError(f"expected an object, got {type(data).__name__}")
    if "id" not in data:
        raise ValueError("missing field `id`")
    if "method" not in data:
        raise ValueError("missing field `method`")
    request_id = data["id"]
    if isinstance(request_id, bool) or not isinstance(request_id, int) or not 0 <= request_id <= MAX_REQUEST_ID:
        raise ValueError(f"invalid id {request_id!r}, expected a non-negative integer")
    method = data["method"]
    if not isinstance(method, str):
        raise ValueError(f"invalid method {method!r}, expected a string")
    params = data.get("params", {})
    return RpcRequest(id=request_id, method=method, params=params)

def default_handlers() -> Dict[str, Handler]:
    return {
        "ping": lambda params, events: gpu_probe.ping_with_gpu_info(),
        "list_devices": lambda params, events: gpu_probe.list_devices(),
        "smoke_test": lambda params, events: gpu_probe.smoke_test(),
        "transcribe": transcribe,
    }

class RuntimeServer:
    """Reads requests one line at a time and answers each with one response line."""

    def __init__(self, handlers: Optional[Dict[str, Handler]] = None):
        self.handlers = handlers if handlers is not None else default_handlers()

    def handle_request(self, request: RpcRequest, events: EventStream) -> Any:
        """
        Routes a request to its handler and returns the handler's result.

        Raises:
            ValueError: If no handler is registered for the method.
        """
        handler = self.handlers.get(request.method)
        if handler is None:
            raise ValueError(f"Unknown method: {request.method}")
        return handler(request.params, events)

    def _respond(self, request: RpcRequest, events: EventStream) -> RpcResponse:
        logger.debug(f"Handling request {request.id}: {request.method}")
        try:
            result = self.handle_request(request, events)
        except OutputStreamError:
            raise
        except Exception as e:
            logger.error(f"Request {request.id} ({request.method}) failed: {e}")
            return RpcResponse(id=request.id, error=str(e))
        return RpcResponse(id=request.id, result=result)

    def serve(self, input_stream: TextIO, output_stream: TextIO) -> None:
        """
        Serves requests until the input stream ends.

        Raises:
            OutputStreamError: If a response or event cannot be written.
            OSError: If reading the input stream fails.
        """
        events = EventStream(output_stream)
        logger.info("Runtime server ready, waiting for requests")
        for line in input_stream:
            if not line.strip():
                continue
            try:
                request = decode_request(line)
            except ValueError as e:
                logger.warning(f"Rejected malformed request line: {e}")
                events.write_response(RpcResponse(id=0, error=f"Invalid request: {e}"))
                continue
            events.write_response(self._respond(request, events))
        logger.info("Input stream closed, shutting down")
