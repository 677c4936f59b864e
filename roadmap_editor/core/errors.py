from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class RoadmapError(Exception):
    """Coded failure shared by loaders, validators, the position store and the edit controller.

    ``file`` names the roadmap or position document and ``path`` the location
    inside it. Errors raised by the edit session have no file; their path is
    the active edit mode.
    """

    code: str
    message: str
    file: Optional[str] = None
    path: Optional[str] = None

    def __str__(self) -> str:
        loc = ":".join(p for p in (self.file, self.path) if p) or "<editor>"
        return f"{loc}: {self.code}: {self.message}"


class RoadmapLoadError(RoadmapError):
    pass


class ConfigError(RoadmapError):
    pass


class PositionStoreError(RoadmapError):
    pass


class CommitError(RoadmapError):
    pass


class EditInProgressError(RoadmapError):
    pass
