"""PushPlay - desktop video player remote-controlled from your phone."""

from pushplay.__about__ import __version__

__all__ = ["__version__"]
