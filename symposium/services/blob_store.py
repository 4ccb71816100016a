"""
Blob storage for payment-proof images.

Two backends share the ``BlobStore`` interface:

- ``LocalBlobStore``: files under settings.BLOB_DIR, written in chunks with
  aiofiles so progress can be reported while the upload runs.
- ``InlineBlobStore``: no storage at all; the image is encoded into a
  ``data:`` URI and the URI itself is the reference.

A blob only counts as stored once ``put`` returns its reference. Anything
written before that (a cancelled or failed upload) is an orphan: it is
logged and left in place.
"""
from __future__ import annotations

import asyncio
import base64
import logging
from pathlib import Path
from typing import Callable, Optional, Protocol

import aiofiles
import aiofiles.os

logger = logging.getLogger(__name__)

# Receives upload progress as a percentage in [0, 100]
ProgressCallback = Callable[[float], None]


class BlobStoreError(Exception):
    """Raised when the backing storage cannot accept or return a blob."""
    pass


class BlobStore(Protocol):
    async def put(
        self,
        path: str,
        data: bytes,
        content_type: str,
        on_progress: Optional[ProgressCallback] = None,
    ) -> str: ...

    async def read(self, ref: str) -> bytes: ...

    async def delete(self, ref: str) -> None: ...


class LocalBlobStore:
    """
    Filesystem-backed blob store.

    Parameters
    ----------
    root       : directory holding all blobs
    chunk_size : bytes written per step (one progress callback per chunk)
    """

    def __init__(self, root: str | Path, chunk_size: int = 64 * 1024) -> None:
        self._root = Path(root)
        self._chunk_size = chunk_size

    def _resolve(self, path: str) -> Path:
        target = (self._root / path).resolve()
        if self._root.resolve() not in target.parents:
            raise BlobStoreError(f"Blob path escapes the store: {path}")
        return target

    async def put(
        self,
        path: str,
        data: bytes,
        content_type: str,
        on_progress: Optional[ProgressCallback] = None,
    ) -> str:
        target = self._resolve(path)
        partial = target.with_name(f".{target.name}.part")
        total = len(data) or 1
        written = 0

        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            async with aiofiles.open(partial, "wb") as f:
                for offset in range(0, len(data), self._chunk_size):
                    chunk = data[offset:offset + self._chunk_size]
                    await f.write(chunk)
                    written += len(chunk)
                    if on_progress:
                        on_progress(written / total * 100)
            await aiofiles.os.rename(partial, target)
        except asyncio.CancelledError:
            logger.warning(
                "Upload of %s cancelled after %d/%d bytes; orphaned blob left at %s",
                path, written, len(data), partial,
            )
            raise
        except OSError as e:
            logger.warning("Upload of %s failed; orphaned blob may remain at %s: %s", path, partial, e)
            raise BlobStoreError(str(e)) from e

        if on_progress and not data:
            on_progress(100.0)
        logger.info("Stored blob %s (%d bytes, %s)", path, len(data), content_type)
        return target.relative_to(self._root.resolve()).as_posix()

    async def read(self, ref: str) -> bytes:
        try:
            async with aiofiles.open(self._resolve(ref), "rb") as f:
                return await f.read()
        except OSError as e:
            raise BlobStoreError(str(e)) from e

    async def delete(self, ref: str) -> None:
        try:
            await aiofiles.os.remove(self._resolve(ref))
        except FileNotFoundError:
            logger.info("Blob %s already gone", ref)
        except OSError as e:
            raise BlobStoreError(str(e)) from e


class InlineBlobStore:
    """Encodes the blob into a data URI; the reference carries the whole image."""

    async def put(
        self,
        path: str,
        data: bytes,
        content_type: str,
        on_progress: Optional[ProgressCallback] = None,
    ) -> str:
        encoded = base64.b64encode(data).decode("ascii")
        if on_progress:
            on_progress(100.0)
        return f"data:{content_type};base64,{encoded}"

    async def read(self, ref: str) -> bytes:
        if not ref.startswith("data:") or ";base64," not in ref:
            raise BlobStoreError("Not an inline blob reference")
        return base64.b64decode(ref.split(";base64,", 1)[1])

    async def delete(self, ref: str) -> None:
        return None
