from .base import BaseCapturer, CaptureError, Viewport

__all__ = ["BaseCapturer", "CaptureError", "Viewport"]
