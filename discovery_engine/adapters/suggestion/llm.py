"""LLM suggestion source over an OpenAI-compatible chat endpoint."""

from __future__ import annotations

import json
from typing import Any, Optional

from openai import OpenAIError
from pydantic import ValidationError

from discovery_engine.domain.enums import ItemType
from discovery_engine.domain.models import RawCandidate
from discovery_engine.infrastructure.llm_factory import LLMHandle, get_llm
from discovery_engine.security.key_manager import get_key_manager
from discovery_engine.shared.exceptions import ToolError
from discovery_engine.tools.interfaces import SuggestionRequest

_KIND_WORDING = {
    ItemType.ATTRACTION: "attractions (museums, landmarks, parks, viewpoints, neighbourhoods)",
    ItemType.RESTAURANT: "restaurants, cafés and food markets",
    ItemType.CUSTOM: "places worth a visit",
}


def build_prompt(params: SuggestionRequest) -> str:
    location = f"{params.city}, {params.region}" if params.region else params.city
    prompt = (
        f"You are a local travel curator for {location}. "
        f"Suggest {params.max_results} real, currently operating {_KIND_WORDING[params.item_type]}. "
        "Order them from most to least worth a first-time visitor's time. "
        "Return a JSON array only. Each element has fields: "
        "name (official name as found on maps), category (one or two words), "
        "description (one sentence), rationale (one sentence on why this traveller should go)."
    )
    if params.exclude_names:
        prompt += " Do not include any of: " + "; ".join(params.exclude_names) + "."
    return prompt


def _strip_fences(content: str) -> str:
    content = content.strip()
    if content.startswith("```"):
        lines = content.split("\n")
        content = "\n".join(lines[1:-1] if lines[-1].strip() == "```" else lines[1:])
    return content.strip()


def parse_candidates(content: str) -> list[RawCandidate]:
    try:
        payload: Any = json.loads(_strip_fences(content))
    except json.JSONDecodeError as exc:
        raise ToolError("llm_suggestion", f"model returned invalid JSON: {exc.msg}") from None

    if isinstance(payload, dict):
        payload = payload.get("suggestions") or payload.get("items") or []
    if not isinstance(payload, list):
        raise ToolError("llm_suggestion", "model returned neither a list nor a suggestions object")

    candidates: list[RawCandidate] = []
    for row in payload:
        if not isinstance(row, dict):
            continue
        try:
            candidates.append(
                RawCandidate(
                    name=str(row.get("name") or "").strip(),
                    category=str(row.get("category") or ""),
                    description=str(row.get("description") or ""),
                    rationale=str(row.get("rationale") or row.get("reason") or ""),
                )
            )
        except ValidationError:
            continue
    return candidates


class LLMSuggestionSource:
    def __init__(self, llm: Optional[LLMHandle] = None):
        self._llm = llm

    def _handle(self) -> LLMHandle:
        llm = self._llm or get_llm()
        if llm is None:
            raise ToolError("llm_suggestion", "no LLM key configured")
        return llm

    def generate_suggestions(self, params: SuggestionRequest) -> list[RawCandidate]:
        llm = self._handle()
        try:
            content = llm.complete(build_prompt(params))
        except OpenAIError as exc:
            safe = get_key_manager().scrub_text(str(exc))
            raise ToolError("llm_suggestion", f"{llm.provider} request failed: {safe}") from None

        candidates = parse_candidates(content)
        if not candidates:
            raise ToolError("llm_suggestion", "model returned no usable suggestions")
        return candidates[: params.max_results]
