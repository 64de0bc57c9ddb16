"""
Deliverable file storage on the local filesystem.
"""

import logging
import os
import re
import uuid
from dataclasses import dataclass
from typing import Optional, List, Dict, Any

import aiofiles
import aiofiles.os

from config import settings
from ..exceptions import ValidationError

logger = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


@dataclass
class IncomingFile:
    """An uploaded file already read into memory."""
    filename: str
    content: bytes
    content_type: Optional[str] = None


def safe_filename(filename: str) -> str:
    name = os.path.basename(filename or "").strip() or "file"
    return _UNSAFE_CHARS.sub("_", name)


class DeliverableStorage:
    """Writes deliverable files under <upload_dir>/deliverables/<task_id>/."""

    def __init__(self, root: Optional[str] = None, max_bytes: Optional[int] = None):
        self.root = root or settings.upload_dir
        self.max_bytes = max_bytes if max_bytes is not None else settings.max_upload_bytes

    def validate(self, files: List[IncomingFile]) -> None:
        too_large = [f.filename for f in files if len(f.content) > self.max_bytes]
        if too_large:
            raise ValidationError(
                "Uploaded file is too large",
                errors={"files": [f"{name} exceeds {self.max_bytes} bytes" for name in too_large]},
            )

    async def save(self, task_id: int, files: List[IncomingFile]) -> List[Dict[str, Any]]:
        """Persist files and return DeliverableFileDB column values for each."""
        self.validate(files)
        directory = os.path.join(self.root, "deliverables", str(task_id))
        os.makedirs(directory, exist_ok=True)

        stored = []
        try:
            for incoming in files:
                name = safe_filename(incoming.filename)
                path = os.path.join(directory, f"{uuid.uuid4().hex[:12]}_{name}")
                stored.append({
                    "file_name": name,
                    "file_path": path,
                    "file_size": len(incoming.content),
                    "mime_type": incoming.content_type,
                })
                async with aiofiles.open(path, "wb") as f:
                    await f.write(incoming.content)
                logger.info(f"Stored deliverable file {path} ({len(incoming.content)} bytes)")
        except OSError:
            await self.discard(stored)
            raise
        return stored

    async def discard(self, stored: List[Dict[str, Any]]) -> None:
        """Remove files written by save() whose rows never committed."""
        for entry in stored:
            try:
                await aiofiles.os.remove(entry["file_path"])
                logger.info(f"Discarded deliverable file {entry['file_path']}")
            except FileNotFoundError:
                continue
