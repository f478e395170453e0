"""Bookmark manager backend with background page screenshots."""

__version__ = "0.1.0"
