"""Conversion helpers between the unified chat shape and the Gemini API.

The unified request/response shape follows the OpenAI Chat Completions format.
"""

from __future__ import annotations

import json
import logging
import time
import uuid
from collections.abc import AsyncIterator
from typing import Any

from modelgate.transformers.base import UnifiedResponse

logger = logging.getLogger(__name__)

# JSON-schema keywords rejected by Gemini function declarations
UNSUPPORTED_SCHEMA_KEYS = frozenset(
    {"$schema", "additionalProperties", "$id", "$ref", "$defs", "definitions", "default"}
)

FINISH_REASONS = {
    "STOP": "stop",
    "MAX_TOKENS": "length",
    "SAFETY": "content_filter",
    "RECITATION": "content_filter",
    "BLOCKLIST": "content_filter",
    "PROHIBITED_CONTENT": "content_filter",
    "SPII": "content_filter",
}

TOOL_CHOICE_MODES = {"auto": "AUTO", "none": "NONE", "required": "ANY"}


# === Request: unified -> Gemini ===


def _clean_schema(schema: Any) -> Any:
    if isinstance(schema, dict):
        return {k: _clean_schema(v) for k, v in schema.items() if k not in UNSUPPORTED_SCHEMA_KEYS}
    if isinstance(schema, list):
        return [_clean_schema(item) for item in schema]
    return schema


def _image_part(url: str) -> dict[str, Any]:
    # data:<mime>;base64,<payload>
    if url.startswith("data:") and ";base64," in url:
        header, data = url[len("data:") :].split(";base64,", 1)
        return {"inlineData": {"mimeType": header or "application/octet-stream", "data": data}}
    return {"fileData": {"mimeType": "image/*", "fileUri": url}}


def _content_parts(content: Any) -> list[dict[str, Any]]:
    if content is None:
        return []
    if isinstance(content, str):
        return [{"text": content}] if content else []
    parts: list[dict[str, Any]] = []
    for block in content:
        if not isinstance(block, dict):
            continue
        block_type = block.get("type")
        if block_type == "text" and block.get("text"):
            parts.append({"text": block["text"]})
        elif block_type == "image_url":
            image = block.get("image_url") or {}
            url = image.get("url") if isinstance(image, dict) else image
            if isinstance(url, str) and url:
                parts.append(_image_part(url))
    return parts


def _text_of(content: Any) -> str:
    return "".join(part.get("text", "") for part in _content_parts(content))


def _parse_arguments(arguments: Any) -> dict[str, Any]:
    if isinstance(arguments, dict):
        return arguments
    if not arguments:
        return {}
    try:
        parsed = json.loads(arguments)
    except (TypeError, json.JSONDecodeError):
        logger.debug(f"Tool call arguments are not valid JSON: {arguments!r}")
        return {"arguments": arguments}
    return parsed if isinstance(parsed, dict) else {"value": parsed}


def _tool_response(content: Any) -> dict[str, Any]:
    text = content if isinstance(content, str) else _text_of(content)
    try:
        parsed = json.loads(text)
    except (TypeError, json.JSONDecodeError):
        return {"result": text}
    return parsed if isinstance(parsed, dict) else {"result": parsed}


def _build_tool_config(tool_choice: Any) -> dict[str, Any] | None:
    if isinstance(tool_choice, str):
        mode = TOOL_CHOICE_MODES.get(tool_choice)
        return {"functionCallingConfig": {"mode": mode}} if mode else None
    if isinstance(tool_choice, dict):
        name = (tool_choice.get("function") or {}).get("name")
        if name:
            return {"functionCallingConfig": {"mode": "ANY", "allowedFunctionNames": [name]}}
    return None


def build_request_body(request: dict[str, Any]) -> dict[str, Any]:
    """Build a Gemini ``generateContent`` body from a unified request."""
    contents: list[dict[str, Any]] = []
    system_parts: list[dict[str, Any]] = []
    tool_names: dict[str, str] = {}

    for message in request.get("messages") or []:
        role = message.get("role")
        content = message.get("content")

        if role in ("system", "developer"):
            system_parts.extend(_content_parts(content))
            continue

        if role == "tool":
            call_id = message.get("tool_call_id") or ""
            name = message.get("name") or tool_names.get(call_id, call_id or "tool")
            contents.append(
                {
                    "role": "user",
                    "parts": [{"functionResponse": {"name": name, "response": _tool_response(content)}}],
                }
            )
            continue

        parts = _content_parts(content)
        if role == "assistant":
            for call in message.get("tool_calls") or []:
                function = call.get("function") or {}
                if call.get("id") and function.get("name"):
                    tool_names[call["id"]] = function["name"]
                parts.append(
                    {
                        "functionCall": {
                            "name": function.get("name", ""),
                            "args": _parse_arguments(function.get("arguments")),
                        }
                    }
                )
        if parts:
            contents.append({"role": "model" if role == "assistant" else "user", "parts": parts})

    body: dict[str, Any] = {"contents": contents}
    if system_parts:
        body["systemInstruction"] = {"parts": system_parts}

    declarations = []
    for tool in request.get("tools") or []:
        function = tool.get("function") if tool.get("type", "function") == "function" else None
        if not function or not function.get("name"):
            continue
        declaration: dict[str, Any] = {"name": function["name"]}
        if function.get("description"):
            declaration["description"] = function["description"]
        if function.get("parameters"):
            declaration["parameters"] = _clean_schema(function["parameters"])
        declarations.append(declaration)
    if declarations:
        body["tools"] = [{"functionDeclarations": declarations}]

    tool_config = _build_tool_config(request.get("tool_choice"))
    if tool_config:
        body["toolConfig"] = tool_config

    generation_config: dict[str, Any] = {}
    for source, target in (
        ("temperature", "temperature"),
        ("top_p", "topP"),
        ("max_tokens", "maxOutputTokens"),
        ("max_completion_tokens", "maxOutputTokens"),
    ):
        if request.get(source) is not None:
            generation_config[target] = request[source]
    stop = request.get("stop")
    if stop:
        generation_config["stopSequences"] = [stop] if isinstance(stop, str) else list(stop)
    if generation_config:
        body["generationConfig"] = generation_config

    return body


# === Request: Gemini -> unified ===


def transform_request_out(request: dict[str, Any]) -> dict[str, Any]:
    """Convert a Gemini ``generateContent`` body into a unified request."""
    messages: list[dict[str, Any]] = []

    system_text = "".join(
        part.get("text", "") for part in (request.get("systemInstruction") or {}).get("parts", [])
    )
    if system_text:
        messages.append({"role": "system", "content": system_text})

    call_counter = 0
    for content in request.get("contents") or []:
        role = "assistant" if content.get("role") == "model" else "user"
        text_parts: list[str] = []
        tool_calls: list[dict[str, Any]] = []
        for part in content.get("parts") or []:
            if "text" in part:
                text_parts.append(part["text"])
            elif "functionCall" in part:
                call = part["functionCall"]
                call_counter += 1
                tool_calls.append(
                    {
                        "id": f"call_{call_counter}",
                        "type": "function",
                        "function": {
                            "name": call.get("name", ""),
                            "arguments": json.dumps(call.get("args") or {}),
                        },
                    }
                )
            elif "functionResponse" in part:
                response = part["functionResponse"]
                messages.append(
                    {
                        "role": "tool",
                        "name": response.get("name", ""),
                        "tool_call_id": response.get("name", ""),
                        "content": json.dumps(response.get("response") or {}),
                    }
                )
        if text_parts or tool_calls:
            message: dict[str, Any] = {"role": role, "content": "".join(text_parts) or None}
            if tool_calls:
                message["tool_calls"] = tool_calls
            messages.append(message)

    unified: dict[str, Any] = {"messages": messages}
    if request.get("model"):
        unified["model"] = request["model"]

    tools = []
    for tool in request.get("tools") or []:
        for declaration in tool.get("functionDeclarations") or []:
            function = {k: v for k, v in declaration.items() if k in ("name", "description", "parameters")}
            tools.append({"type": "function", "function": function})
    if tools:
        unified["tools"] = tools

    generation_config = request.get("generationConfig") or {}
    for source, target in (
        ("temperature", "temperature"),
        ("topP", "top_p"),
        ("maxOutputTokens", "max_tokens"),
        ("stopSequences", "stop"),
    ):
        if generation_config.get(source) is not None:
            unified[target] = generation_config[source]

    return unified


# === Response: Gemini -> unified ===


def _candidate_message(candidate: dict[str, Any]) -> tuple[str | None, list[dict[str, Any]]]:
    texts: list[str] = []
    tool_calls: list[dict[str, Any]] = []
    for part in (candidate.get("content") or {}).get("parts") or []:
        if part.get("thought"):
            continue
        if "text" in part:
            texts.append(part["text"])
        elif "functionCall" in part:
            call = part["functionCall"]
            tool_calls.append(
                {
                    "id": call.get("id") or f"call_{uuid.uuid4().hex[:24]}",
                    "type": "function",
                    "function": {
                        "name": call.get("name", ""),
                        "arguments": json.dumps(call.get("args") or {}),
                    },
                }
            )
    return ("".join(texts) if texts else None), tool_calls


def _finish_reason(candidate: dict[str, Any], has_tool_calls: bool) -> str | None:
    raw = candidate.get("finishReason")
    if raw is None:
        return None
    if has_tool_calls:
        return "tool_calls"
    return FINISH_REASONS.get(raw, "stop")


def _usage(payload: dict[str, Any]) -> dict[str, int] | None:
    metadata = payload.get("usageMetadata")
    if not metadata:
        return None
    prompt = metadata.get("promptTokenCount", 0)
    completion = metadata.get("candidatesTokenCount", 0)
    return {
        "prompt_tokens": prompt,
        "completion_tokens": completion,
        "total_tokens": metadata.get("totalTokenCount", prompt + completion),
    }


def build_chat_completion(payload: dict[str, Any], completion_id: str | None = None) -> dict[str, Any]:
    """Convert a Gemini ``generateContent`` response into a ``chat.completion``."""
    choices = []
    for index, candidate in enumerate(payload.get("candidates") or []):
        text, tool_calls = _candidate_message(candidate)
        message: dict[str, Any] = {"role": "assistant", "content": text}
        if tool_calls:
            message["tool_calls"] = tool_calls
        choices.append(
            {
                "index": candidate.get("index", index),
                "message": message,
                "finish_reason": _finish_reason(candidate, bool(tool_calls)) or "stop",
            }
        )

    completion: dict[str, Any] = {
        "id": completion_id or payload.get("responseId") or f"chatcmpl-{uuid.uuid4().hex}",
        "object": "chat.completion",
        "created": int(time.time()),
        "model": payload.get("modelVersion", ""),
        "choices": choices,
    }
    usage = _usage(payload)
    if usage:
        completion["usage"] = usage
    return completion


def build_chat_completion_chunk(
    payload: dict[str, Any], completion_id: str, created: int
) -> dict[str, Any]:
    """Convert one streamed Gemini response into a ``chat.completion.chunk``."""
    choices = []
    for index, candidate in enumerate(payload.get("candidates") or []):
        text, tool_calls = _candidate_message(candidate)
        delta: dict[str, Any] = {"role": "assistant"}
        if text:
            delta["content"] = text
        if tool_calls:
            delta["tool_calls"] = [{"index": i, **call} for i, call in enumerate(tool_calls)]
        choices.append(
            {
                "index": candidate.get("index", index),
                "delta": delta,
                "finish_reason": _finish_reason(candidate, bool(tool_calls)),
            }
        )

    chunk: dict[str, Any] = {
        "id": completion_id,
        "object": "chat.completion.chunk",
        "created": created,
        "model": payload.get("modelVersion", ""),
        "choices": choices,
    }
    usage = _usage(payload)
    if usage:
        chunk["usage"] = usage
    return chunk


async def stream_chat_completion_chunks(
    lines: AsyncIterator[str], transformer_name: str
) -> AsyncIterator[str]:
    """Translate Gemini SSE lines into Chat Completions SSE lines.

    Emits ``data: {...}\\n\\n`` per upstream event and terminates with
    ``data: [DONE]\\n\\n``. The upstream iterator is closed when this generator
    finishes, fails or is closed by its consumer.
    """
    completion_id = f"chatcmpl-{uuid.uuid4().hex}"
    created = int(time.time())
    try:
        async for raw_line in lines:
            line = raw_line.strip()
            if not line.startswith("data:"):
                continue
            data = line[len("data:") :].strip()
            if not data or data == "[DONE]":
                continue
            try:
                payload = json.loads(data)
            except json.JSONDecodeError:
                logger.warning(f"{transformer_name}: skipping unparseable stream event: {data[:200]}")
                continue
            chunk = build_chat_completion_chunk(payload, completion_id, created)
            yield f"data: {json.dumps(chunk, ensure_ascii=False)}\n\n"
        yield "data: [DONE]\n\n"
    finally:
        aclose = getattr(lines, "aclose", None)
        if aclose is not None:
            await aclose()


def transform_response_out(response: UnifiedResponse, transformer_name: str) -> UnifiedResponse:
    """Shape a raw Gemini response into the unified response.

    Error responses pass through with their upstream body. The name of the
    adapter that produced the result is recorded in ``metadata["transformer"]``.
    """
    metadata = {**response.metadata, "transformer": transformer_name}

    if response.is_error:
        return UnifiedResponse(
            status_code=response.status_code,
            headers=response.headers,
            body=response.body,
            metadata=metadata,
        )

    if response.stream is not None:
        return UnifiedResponse(
            status_code=response.status_code,
            headers={"content-type": "text/event-stream"},
            stream=stream_chat_completion_chunks(response.stream, transformer_name),
            metadata=metadata,
        )

    return UnifiedResponse(
        status_code=response.status_code,
        headers={"content-type": "application/json"},
        body=build_chat_completion(response.body or {}),
        metadata=metadata,
    )
