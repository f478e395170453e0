from __future__ import annotations

import abc
from dataclasses import dataclass


class CaptureError(Exception):
    """A page could not be rendered into an image."""

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


@dataclass(frozen=True)
class Viewport:
    width: int = 1280
    height: int = 720

    def as_dict(self) -> dict[str, int]:
        return {"width": self.width, "height": self.height}


class BaseCapturer(abc.ABC):
    name: str = "base"

    @abc.abstractmethod
    def capture(self, url: str, *, timeout_ms: int, viewport: Viewport) -> bytes:
        """Render ``url`` and return the encoded image.

        Raises:
            CaptureError: on navigation timeout, network failure or renderer crash.
        """
        raise NotImplementedError
