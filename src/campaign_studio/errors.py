"""Exception hierarchy shared by the studio modules."""

from __future__ import annotations


class CampaignStudioError(RuntimeError):
    """Base error for campaign studio failures."""


class BriefValidationError(CampaignStudioError):
    """Raised when a brief is missing an input its style requires."""


class EmptyScriptError(CampaignStudioError):
    """Raised when narration is requested for an empty script."""


class VideoBusyError(CampaignStudioError):
    """Raised when a video job is already running for another shot."""


class ShotNotReadyError(CampaignStudioError):
    """Raised when an action needs a rendered shot that is not available."""


__all__ = [
    "CampaignStudioError",
    "BriefValidationError",
    "EmptyScriptError",
    "VideoBusyError",
    "ShotNotReadyError",
]
