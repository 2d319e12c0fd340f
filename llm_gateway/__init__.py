from __future__ import annotations  # Re-export llm_gateway public API

from .llm_gateway import (
    HttpClient,
    HttpResponse,
    LlmGatewayError,
    ReasoningCall,
    bind_routes,
    call_json,
    reasoning_runnable,
    route_call,
)

__all__ = [
    "HttpClient",
    "HttpResponse",
    "LlmGatewayError",
    "ReasoningCall",
    "bind_routes",
    "call_json",
    "reasoning_runnable",
    "route_call",
]
