from __future__ import annotations

from typing import Any, Dict, Optional

import openai
from google import genai
from google.genai import types as genai_types
from hello_agents import HelloAgentsLLM, ToolAwareSimpleAgent
from loguru import logger

from config import Configuration


class LLMError(RuntimeError):
    """Model call failed. `kind` is the failure category used for logging."""

    def __init__(self, kind: str, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.kind = kind
        self.status_code = status_code


def _init_llm(cfg: Configuration) -> HelloAgentsLLM:
    kw: Dict[str, Any] = {
        "model": cfg.llm_model_id,
        "provider": cfg.provider,
        "temperature": cfg.llm_temperature,
        "max_tokens": cfg.llm_max_tokens,
        "timeout": cfg.llm_timeout,
        "base_url": cfg.chat_base_url(),
    }
    if cfg.llm_api_key:
        kw["api_key"] = cfg.llm_api_key
    return HelloAgentsLLM(**kw)


def _classify(exc: BaseException) -> LLMError:
    # the agent may wrap the client error, so look down the chain
    seen = exc
    while seen is not None:
        if isinstance(seen, openai.APITimeoutError):
            return LLMError("timeout", f"model call timed out: {seen}")
        if isinstance(seen, openai.APIStatusError):
            return LLMError("http_error", f"upstream {seen.status_code}: {seen}", seen.status_code)
        if isinstance(seen, openai.APIConnectionError):
            return LLMError("network_error", f"request error: {seen}")
        seen = seen.__cause__ or seen.__context__
    return LLMError("exception", f"model call failed: {exc}")


def _openai_compatible(cfg: Configuration, system: str, user: str) -> str:
    agent = ToolAwareSimpleAgent(
        name="DateIdeas",
        llm=_init_llm(cfg),
        system_prompt=system,
        enable_tool_calling=False,
    )
    try:
        raw = agent.run(user)
    except Exception as exc:
        raise _classify(exc)
    finally:
        agent.clear_history()
    if not isinstance(raw, str) or not raw.strip():
        raise LLMError("empty_content", "model returned empty content")
    return raw


def _gemini(cfg: Configuration, system: str, user: str) -> str:
    client = genai.Client(
        api_key=cfg.llm_api_key,
        http_options=genai_types.HttpOptions(timeout=int(cfg.llm_timeout * 1000)),
    )
    model_id = cfg.llm_model_id or "gemini-2.0-flash"
    try:
        response = client.models.generate_content(
            model=model_id,
            contents=user,
            config=genai_types.GenerateContentConfig(
                system_instruction=system,
                temperature=cfg.llm_temperature,
                max_output_tokens=cfg.llm_max_tokens,
                response_mime_type="application/json",
            ),
        )
    except Exception as exc:
        raise LLMError("exception", f"gemini call failed: {exc}")
    text = response.text
    if not text or not text.strip():
        raise LLMError("empty_content", "gemini returned empty content")
    return text


def chat_completion(cfg: Configuration, system: str, user: str) -> str:
    """Issue one chat request and return the raw message content."""
    logger.debug("llm call provider={} model={}", cfg.provider, cfg.llm_model_id)
    if cfg.provider == "google":
        return _gemini(cfg, system, user)
    return _openai_compatible(cfg, system, user)
