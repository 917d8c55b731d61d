"""Creative plan acquisition: request building, provider call, tolerant parsing."""

from __future__ import annotations

import json
import logging
import re
from typing import Any, Iterable, Mapping, Optional

from pydantic import ValidationError

from . import telemetry
from .errors import CampaignStudioError
from .prompt_templates import PlanRequest, build_plan_request
from .providers.common import CredentialInvalidError, PlanningProvider
from .schemas import CampaignBrief, CreativePlan
from .styles import ContentStyle, StyleCatalog, shot_count_hint

_LOG = logging.getLogger("campaign_studio.planning")

_FENCE_RE = re.compile(r"```(?:json)?", re.IGNORECASE)


class PlanningError(CampaignStudioError):
    def __init__(self, message: str, *, cause: Exception | None = None) -> None:
        detail = f"{message}: {cause}" if cause else message
        super().__init__(detail)
        if cause is not None:
            self.__cause__ = cause


class PlanParseError(PlanningError):
    def __init__(self, message: str, *, raw_output: str | None = None, cause: Exception | None = None) -> None:
        detail = message if raw_output is None else f"{message}: {raw_output[:200]}"
        super().__init__(detail)
        self.raw_output = raw_output
        if cause is not None:
            self.__cause__ = cause


def strip_code_fences(text: str) -> str:
    return _FENCE_RE.sub("", text).strip()


def parse_plan_text(text: str) -> dict[str, Any]:
    """Parse provider output as JSON, retrying once with markdown fences removed."""

    trimmed = (text or "").strip()
    if not trimmed:
        raise PlanParseError("Planning provider returned an empty response", raw_output=text)

    last_error: Exception | None = None
    for candidate in _json_candidates(trimmed):
        try:
            payload = json.loads(candidate)
        except json.JSONDecodeError as exc:
            last_error = exc
            continue
        if not isinstance(payload, Mapping):
            raise PlanParseError("Plan payload must be a JSON object", raw_output=trimmed)
        return dict(payload)
    raise PlanParseError("Plan output is not valid JSON", raw_output=trimmed, cause=last_error)


def _json_candidates(text: str) -> Iterable[str]:
    yield text
    stripped = strip_code_fences(text)
    if stripped != text:
        yield stripped


def coerce_plan(raw: Any) -> CreativePlan:
    if isinstance(raw, CreativePlan):
        return raw
    if isinstance(raw, Mapping):
        payload = dict(raw)
    elif isinstance(raw, bytes):
        payload = parse_plan_text(raw.decode("utf-8", errors="ignore"))
    else:
        payload = parse_plan_text(str(raw))
    try:
        return CreativePlan.model_validate(payload)
    except ValidationError as exc:
        raise PlanParseError("Plan payload failed validation", cause=exc) from exc


def generate_plan(
    brief: CampaignBrief,
    style: ContentStyle,
    provider: PlanningProvider,
    *,
    catalog: Optional[StyleCatalog] = None,
) -> tuple[CreativePlan, PlanRequest]:
    """Ask ``provider`` for a creative plan and return it with the request sent."""

    default_count = catalog.default_shot_count if catalog else 5
    request = build_plan_request(brief, style, shot_count_hint(brief, style, default=default_count))
    try:
        raw = provider.request_plan(request)
    except (CredentialInvalidError, PlanningError):
        raise
    except Exception as exc:
        raise PlanningError("Planning request failed", cause=exc) from exc

    plan = coerce_plan(raw)
    if plan.shot_count == 0:
        raise PlanningError("Plan contains no shots")

    _LOG.info("Plan received: style=%s shots=%d", style.id, plan.shot_count)
    telemetry.emit_event(
        "campaign.plan.completed",
        {"style": style.id, "shot_count": plan.shot_count, "requested": request.shot_count},
    )
    return plan, request


__all__ = [
    "PlanningError",
    "PlanParseError",
    "strip_code_fences",
    "parse_plan_text",
    "coerce_plan",
    "generate_plan",
]
