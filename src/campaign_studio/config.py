"""Runtime settings for the campaign studio."""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from typing import Mapping, Optional

from campaign_studio.utils.env import env_flag, env_float, fixture_mode_enabled

DEFAULT_BRIDGE_URL = "http://127.0.0.1:8787/api/google-labs"
DEFAULT_VOICE = "Puck"
DEFAULT_VIDEO_POLL_S = 10.0
DEFAULT_STATUS_ROTATE_S = 8.0


@dataclass(frozen=True)
class StudioSettings:
    """Resolved configuration shared by the orchestrator, CLI and HTTP app."""

    api_key: Optional[str] = None
    bridge_token: Optional[str] = None
    bridge_url: str = DEFAULT_BRIDGE_URL
    high_quality: bool = False
    video_poll_interval_s: float = DEFAULT_VIDEO_POLL_S
    status_rotate_interval_s: float = DEFAULT_STATUS_ROTATE_S
    default_voice: str = DEFAULT_VOICE
    fixture_mode: bool = False

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None) -> "StudioSettings":
        data = env if env is not None else os.environ
        api_key = data.get("GEMINI_API_KEY") or data.get("API_KEY") or None
        token = (data.get("CAMPAIGN_STUDIO_BRIDGE_TOKEN") or "").strip() or None
        poll_s = env_float(data.get("CAMPAIGN_STUDIO_VIDEO_POLL_S"), default=DEFAULT_VIDEO_POLL_S)
        rotate_s = env_float(data.get("CAMPAIGN_STUDIO_STATUS_ROTATE_S"), default=DEFAULT_STATUS_ROTATE_S)
        if poll_s < 0 or rotate_s <= 0:
            raise ValueError("poll and status rotation intervals must be positive")
        return cls(
            api_key=api_key.strip() if api_key else None,
            bridge_token=token,
            bridge_url=(data.get("CAMPAIGN_STUDIO_BRIDGE_URL") or DEFAULT_BRIDGE_URL).rstrip("/"),
            high_quality=env_flag(data.get("CAMPAIGN_STUDIO_HIGH_QUALITY"), default=False),
            video_poll_interval_s=poll_s,
            status_rotate_interval_s=rotate_s,
            default_voice=(data.get("CAMPAIGN_STUDIO_DEFAULT_VOICE") or DEFAULT_VOICE).strip(),
            fixture_mode=fixture_mode_enabled(data),
        )

    def with_overrides(self, **changes: object) -> "StudioSettings":
        cleaned = {key: value for key, value in changes.items() if value is not None}
        return replace(self, **cleaned)


__all__ = ["StudioSettings", "DEFAULT_BRIDGE_URL", "DEFAULT_VOICE"]
