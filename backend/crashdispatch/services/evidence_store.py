"""Evidence store: validates and stores accident photos on local disk."""

import asyncio
import logging
import secrets
from dataclasses import dataclass
from pathlib import Path, PurePosixPath

from fastapi.concurrency import run_in_threadpool

from crashdispatch.config import get_settings
from crashdispatch.exceptions import InvalidInputError

logger = logging.getLogger(__name__)
settings = get_settings()

MIME_EXTENSIONS = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "image/gif": ".gif",
    "image/webp": ".webp",
    "video/mp4": ".mp4",
    "video/mpeg": ".mpeg",
}


@dataclass(frozen=True)
class EvidenceFile:
    """An uploaded file as received from the client."""

    filename: str
    content_type: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass(frozen=True)
class UploadResult:
    """Where a stored evidence file can be fetched from."""

    file_url: str
    file_name: str
    file_size: int
    mime_type: str


def _write_file(path: Path, data: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(data)


def _remove_file(path: Path) -> None:
    path.unlink(missing_ok=True)


class LocalEvidenceStore:
    """
    Stores evidence under a local directory served at a public base URL.

    Validation runs for the whole batch before anything is written, so a
    rejected file never leaves partial uploads behind.
    """

    def __init__(
        self,
        storage_dir: str | Path = settings.evidence_storage_dir,
        public_base_url: str = settings.evidence_public_base_url,
        allowed_types: list[str] | None = None,
        max_bytes: int = settings.evidence_max_bytes,
        max_files: int = settings.evidence_max_files,
    ):
        self.storage_dir = Path(storage_dir)
        self.public_base_url = public_base_url.rstrip("/")
        self.allowed_types = set(allowed_types or settings.evidence_allowed_types)
        self.max_bytes = max_bytes
        self.max_files = max_files

    def validate(self, file: EvidenceFile) -> None:
        """Raise InvalidInputError for a disallowed type, empty file or oversize file."""
        if file.content_type not in self.allowed_types:
            allowed = ", ".join(sorted(self.allowed_types))
            raise InvalidInputError(
                f"Invalid file type '{file.content_type}' for {file.filename}. "
                f"Allowed types: {allowed}."
            )
        if file.size == 0:
            raise InvalidInputError(f"File {file.filename} is empty.")
        if file.size > self.max_bytes:
            max_mb = self.max_bytes / (1024 * 1024)
            raise InvalidInputError(
                f"File {file.filename} exceeds maximum size of {max_mb:g}MB."
            )

    async def upload(self, file: EvidenceFile, folder: str = "accidents") -> UploadResult:
        extension = MIME_EXTENSIONS.get(file.content_type) or PurePosixPath(
            file.filename
        ).suffix.lower()
        file_name = f"{folder}/{secrets.token_hex(16)}{extension}"

        await run_in_threadpool(_write_file, self.storage_dir / file_name, file.data)
        logger.info(f"Stored evidence {file.filename} as {file_name} ({file.size} bytes)")

        return UploadResult(
            file_url=f"{self.public_base_url}/{file_name}",
            file_name=file_name,
            file_size=file.size,
            mime_type=file.content_type,
        )

    async def discard(self, uploads: list[UploadResult]) -> None:
        """Remove stored files whose submission did not complete."""
        for upload in uploads:
            await run_in_threadpool(_remove_file, self.storage_dir / upload.file_name)
        if uploads:
            logger.info(f"Discarded {len(uploads)} evidence file(s)")

    async def validate_and_upload(self, file: EvidenceFile) -> UploadResult:
        self.validate(file)
        return await self.upload(file)

    async def validate_and_upload_all(self, files: list[EvidenceFile]) -> list[UploadResult]:
        """Validate every file, then upload them concurrently."""
        if len(files) > self.max_files:
            raise InvalidInputError(
                f"Too many evidence files: {len(files)} (maximum {self.max_files})."
            )
        for file in files:
            self.validate(file)

        return list(await asyncio.gather(*(self.upload(file) for file in files)))
