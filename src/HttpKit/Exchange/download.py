# === NAVMAP v1 ===
# {
#   "module": "HttpKit.Exchange.download",
#   "purpose": "Resolve the destination file of a response download",
#   "sections": [
#     {
#       "id": "resolve-download-path",
#       "name": "resolve_download_path",
#       "anchor": "function-resolve-download-path",
#       "kind": "function"
#     }
#   ]
# }
# === /NAVMAP ===

"""Resolve the destination file of a response download."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Union
from urllib.parse import unquote

import httpx

from .errors import ConfigurationError, TransportError

__all__ = ["resolve_download_path"]

logger = logging.getLogger(__name__)


def resolve_download_path(path: Union[str, os.PathLike], url: httpx.URL) -> Path:
    """Return the file a download of ``url`` should be written to.

    ``path`` names a directory when it already is one or ends with a path
    separator; the file name is then the last segment of the URL path.  Any
    other ``path`` is taken as the destination file itself.  Missing
    directories are created.

    Args:
        path: Directory, or directory plus file name. Either separator style is accepted.
        url: URL being downloaded.

    Returns:
        Destination file path.

    Raises:
        ConfigurationError: If ``path`` is a directory and the URL path has no file name.
        TransportError: If the directory cannot be created.
    """
    raw = os.fspath(path)
    is_directory = raw.endswith(("/", "\\"))
    target = Path(raw.replace("\\", "/"))
    if target.is_dir():
        is_directory = True

    if is_directory:
        file_name = unquote(url.path.rsplit("/", 1)[-1])
        if not file_name:
            raise ConfigurationError(f"Cannot derive a file name from URL path {url.path!r}")
        directory, target = target, target / file_name
    else:
        directory = target.parent

    if not directory.exists():
        try:
            directory.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise TransportError(f"Failed to create download directory {directory}: {exc}") from exc
        logger.debug("download directory created", extra={"directory": str(directory)})
    return target
