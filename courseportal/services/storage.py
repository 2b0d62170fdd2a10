import re
import secrets
import shutil
import time
from pathlib import Path
from typing import BinaryIO

from pydantic import BaseModel

_UNSAFE_CHARACTERS = re.compile(r'[^A-Za-z0-9._-]+')


class StoredFile(BaseModel):
    original_name: str
    stored_name: str
    path: str
    content_type: str | None = None
    size: int


def safe_filename(filename: str | None) -> str:
    name = Path((filename or '').replace('\\', '/')).name
    name = _UNSAFE_CHARACTERS.sub('_', name).strip('._')
    return name or 'upload'


class LocalFileStorage:
    """Writes uploads under one directory, named ``<epoch millis>-<original name>``."""

    def __init__(self, upload_dir: str | Path):
        self.upload_dir = Path(upload_dir)

    def store(self, fileobj: BinaryIO, filename: str | None, content_type: str | None = None) -> StoredFile:
        self.upload_dir.mkdir(parents=True, exist_ok=True)

        name = safe_filename(filename)
        stored_name = f'{time.time_ns() // 1_000_000}-{name}'
        destination = self.upload_dir / stored_name
        try:
            output = destination.open('xb')
        except FileExistsError:
            # Same name uploaded within the same millisecond.
            stored_name = f'{time.time_ns() // 1_000_000}-{secrets.token_hex(4)}-{name}'
            destination = self.upload_dir / stored_name
            output = destination.open('xb')
        with output:
            shutil.copyfileobj(fileobj, output)

        return StoredFile(
            original_name=filename or '',
            stored_name=stored_name,
            path=str(destination),
            content_type=content_type,
            size=destination.stat().st_size,
        )
