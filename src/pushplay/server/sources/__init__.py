"""Media sources for PushPlay.

A media source feeds new files into the command router. Which sources are
active is chosen by the ``sources`` setting: network uploads from the phone
(``upload``), a local file picker (``local``), or both.
"""

from pushplay.server.sources.base import MediaSource, SourceRegistry
from pushplay.server.sources.local import LocalFileSource
from pushplay.server.sources.upload import UploadSource

__all__ = [
    "MediaSource",
    "SourceRegistry",
    "LocalFileSource",
    "UploadSource",
]
