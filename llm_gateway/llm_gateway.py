from __future__ import annotations  # Reasoning request gateway module

import json
import logging
import os
import threading
from typing import Any, Callable, Dict, Optional, Protocol, Sequence, Tuple

from langchain_core.messages import BaseMessage
from langchain_core.runnables import RunnableLambda

from config.registry import bind_model
from config.routes import AppConfig, LlmRoute, resolve_routes


logger = logging.getLogger(__name__)  # Module logger setup


_MODEL_LOCKS: Dict[str, threading.Lock] = {}
_MODEL_LOCKS_GUARD = threading.Lock()


class HttpClient(Protocol):  # Minimal HTTP client protocol
    def post(self, url: str, *, json: Dict[str, Any], headers: Dict[str, str], timeout: float) -> "HttpResponse": ...


class HttpResponse(Protocol):  # Minimal HTTP response protocol
    @property
    def status_code(self) -> int: ...

    def json(self) -> Any: ...

    @property
    def text(self) -> str: ...


class ReasoningCall(Protocol):  # Contract shared by every pipeline
    def __call__(self, messages: Sequence[Dict[str, str]], *, model: str, temperature: float) -> Dict[str, Any]: ...


class LlmGatewayError(RuntimeError):  # Base gateway error
    pass


def _lock_for(cfg: LlmRoute) -> threading.Lock:
    key = cfg.name or f"{cfg.base_url}{cfg.endpoint}"
    with _MODEL_LOCKS_GUARD:
        lock = _MODEL_LOCKS.get(key)
        if lock is None:
            lock = threading.Lock()
            _MODEL_LOCKS[key] = lock
    return lock


def call_json(
    messages: Sequence[Dict[str, str]],
    *,
    cfg: LlmRoute,
    model: Optional[str] = None,
    temperature: Optional[float] = None,
    client: Optional[HttpClient] = None,
) -> Dict[str, Any]:  # Invoke a route and return the parsed JSON object
    def _execute() -> Dict[str, Any]:
        base_messages = _normalize_messages(messages)
        primary = (model or cfg.model).strip()
        preview = _preview(base_messages)
        if len(preview) > 120:
            preview = preview[:117] + "..."
        logger.info("LLM request start route=%s model=%s preview=%s", cfg.name, primary, preview)
        try:
            content = _complete(base_messages, cfg=cfg, model=primary, temperature=temperature, client=client)
        except LlmGatewayError:
            fallback = cfg.fallback_model.strip()
            if not fallback or fallback == primary:
                raise
            logger.warning("LLM primary model '%s' failed, retrying with fallback '%s'", primary, fallback)
            primary = fallback
            content = _complete(base_messages, cfg=cfg, model=primary, temperature=temperature, client=client)
        try:
            parsed = _parse_object(content)
        except (json.JSONDecodeError, LlmGatewayError) as exc:
            if not cfg.repair_json:
                raise LlmGatewayError("LLM payload was not a JSON object") from exc
            logger.warning("LLM output was not JSON, requesting repair: %s", exc)
            repair = [{"role": "user", "content": _repair_prompt(content)}]
            repaired = _complete(repair, cfg=cfg, model=primary, temperature=temperature, client=client)
            try:
                parsed = _parse_object(repaired)
            except json.JSONDecodeError as repair_exc:
                raise LlmGatewayError("LLM payload was not JSON after repair") from repair_exc
        logger.info("LLM request done route=%s model=%s", cfg.name, primary)
        return parsed

    if getattr(cfg, "sequential", False):
        lock = _lock_for(cfg)
        with lock:
            return _execute()
    return _execute()


def route_call(cfg: LlmRoute, *, client: Optional[HttpClient] = None) -> ReasoningCall:  # Adapt a route to the pipeline contract
    def _call(messages: Sequence[Dict[str, str]], *, model: str, temperature: float) -> Dict[str, Any]:
        return call_json(messages, cfg=cfg, model=model or cfg.model, temperature=temperature, client=client)

    return _call


def bind_routes(cfg: AppConfig, keys: Sequence[str], *, client: Optional[HttpClient] = None) -> None:  # Bind gateway calls into the registry
    for key, route in resolve_routes(cfg, keys).items():
        bind_model(key, route_call(route, client=client))


def reasoning_runnable(llm: Callable[..., Dict[str, Any]], *, model: str, temperature: float) -> RunnableLambda:  # Provide runnable interface for LangChain pipelines
    def _invoke(payload: Any) -> Dict[str, Any]:
        messages = _coerce_messages(payload)
        return llm(messages, model=model, temperature=temperature)

    return RunnableLambda(_invoke)


def _complete(
    messages: Sequence[Dict[str, str]],
    *,
    cfg: LlmRoute,
    model: str,
    temperature: Optional[float],
    client: Optional[HttpClient],
) -> str:  # Send one chat completion and return its text content
    payload: Dict[str, Any] = {"model": model, "messages": list(messages)}
    if temperature is not None:
        payload["temperature"] = temperature
    if cfg.response_format:
        payload["response_format"] = {"type": cfg.response_format}
    headers = {"Content-Type": "application/json"}
    if cfg.api_key_env:
        api_key = os.getenv(cfg.api_key_env)
        if api_key:
            headers["Authorization"] = f"Bearer {api_key}"
    headers.update(cfg.extra_headers)
    try:
        response, close_cb = _post(f"{cfg.base_url}{cfg.endpoint}", payload, headers, cfg.timeout_s, client)
    except Exception as exc:  # noqa: BLE001
        logger.error("LLM transport failure: %s", exc)
        raise LlmGatewayError("LLM transport failed") from exc
    try:
        if response.status_code >= 400:
            logger.error("LLM error status: %s", response.status_code)
            raise LlmGatewayError(f"LLM returned status {response.status_code}")
        try:
            data = response.json()
        except Exception as exc:  # noqa: BLE001
            logger.error("Invalid JSON envelope from LLM: %s", exc)
            raise LlmGatewayError("LLM envelope was not JSON") from exc
        return _extract_content(data)
    finally:
        _close_safely(close_cb)


def _post(url: str, payload: Dict[str, Any], headers: Dict[str, str], timeout: float, client: Optional[HttpClient]) -> Tuple[HttpResponse, Optional[Callable[[], None]]]:  # Dispatch HTTP request
    if client is not None:
        response = client.post(url, json=payload, headers=headers, timeout=timeout)
        return response, None
    import httpx

    http_client = httpx.Client(timeout=timeout)
    try:
        response = http_client.post(url, json=payload, headers=headers)
    except Exception:
        http_client.close()
        raise
    return response, http_client.close


def _close_safely(close_cb: Optional[Callable[[], None]]) -> None:  # Close HTTP client callback when provided
    if close_cb is not None:
        close_cb()


def _normalize_messages(messages: Sequence[Dict[str, str]]) -> list[Dict[str, str]]:  # Ensure message payload shape
    normalized: list[Dict[str, str]] = []
    for item in messages:
        if not isinstance(item, dict):
            raise TypeError("Each chat message must be a dict with role/content")
        role = str(item.get("role", "")).strip()
        content = str(item.get("content", ""))
        if not role:
            raise ValueError("Chat message missing role")
        normalized.append({"role": role, "content": content})
    return normalized


def _preview(messages: Sequence[Dict[str, str]]) -> str:  # Build preview string for logging
    for message in messages:
        text = message.get("content", "").strip()
        if text:
            return text.splitlines()[0]
    return ""


def _extract_content(data: Any) -> str:  # Extract message content from LLM response
    if isinstance(data, dict):
        choices = data.get("choices")
        if isinstance(choices, list) and choices:
            message = choices[0].get("message") if isinstance(choices[0], dict) else None
            content = message.get("content") if isinstance(message, dict) else None
            if isinstance(content, str):
                return content
        if isinstance(data.get("content"), str):
            return data["content"]
    raise LlmGatewayError("LLM response missing content")


def _parse_object(content: str) -> Dict[str, Any]:  # Parse fenced or bare JSON into a dict
    parsed = json.loads(_strip_code_fences(content))
    if not isinstance(parsed, dict):
        raise LlmGatewayError("LLM payload was JSON but not an object")
    return parsed


def _strip_code_fences(content: str) -> str:  # Remove common markdown fences from LLM output
    text = content.strip()
    if text.startswith("```"):
        lines = text.splitlines()
        if lines:
            lines = lines[1:]
            while lines and lines[0].strip() == "":
                lines = lines[1:]
            while lines and lines[-1].strip() == "":
                lines = lines[:-1]
            if lines and lines[-1].strip() == "```":
                lines = lines[:-1]
            text = "\n".join(lines).strip()
    return text


def _repair_prompt(content: str) -> str:  # Ask the model to rewrite its own reply as JSON
    return "\n".join(
        [
            "Fix this into valid JSON only. No markdown, no commentary.",
            "Input:",
            content,
        ]
    )


def _coerce_messages(payload: Any) -> Sequence[Dict[str, str]]:  # Convert LangChain payloads into dict messages
    if hasattr(payload, "to_messages"):
        payload = payload.to_messages()
    if isinstance(payload, dict):
        return [payload]
    if isinstance(payload, BaseMessage):
        return [_message_dict(payload)]
    if isinstance(payload, (list, tuple)):
        if all(isinstance(item, dict) for item in payload):
            return list(payload)  # type: ignore[return-value]
        if all(isinstance(item, BaseMessage) for item in payload):
            return [_message_dict(item) for item in payload]
    raise TypeError("Unsupported message payload for reasoning runnable")


def _message_dict(message: BaseMessage) -> Dict[str, str]:  # Map LangChain BaseMessage to role/content dict
    role = message.type
    if role == "human":
        role = "user"
    elif role == "ai":
        role = "assistant"
    content = message.content
    if not isinstance(content, str):
        content = json.dumps(content)
    return {"role": role, "content": content}
