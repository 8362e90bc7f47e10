"""Local file storage for resumes and knowledge-base documents."""

import logging
import shutil
import uuid
from pathlib import Path, PurePosixPath
from typing import BinaryIO, Optional

logger = logging.getLogger(__name__)


class LocalStorage:
    """
    Local file storage handler.

    Files are addressed by a storage key, a relative POSIX path such as
    ``knowledge_base/<uuid>.pdf``. Keys never escape ``base_path``.
    """

    def __init__(self, base_path: str = "./storage"):
        """
        Initialize local storage.

        Args:
            base_path: Base directory for file storage
        """
        self.base_path = Path(base_path).resolve()
        self.base_path.mkdir(parents=True, exist_ok=True)

    def _resolve(self, key: str) -> Path:
        path = (self.base_path / PurePosixPath(key)).resolve()
        if path != self.base_path and self.base_path not in path.parents:
            raise ValueError(f"Storage key escapes storage root: {key}")
        return path

    def save(
        self,
        file_data: bytes | BinaryIO,
        filename: str,
        subfolder: Optional[str] = None,
    ) -> str:
        """
        Save file to local storage under a collision-free name.

        Args:
            file_data: File data (bytes or file-like object)
            filename: Original file name, only its extension is kept
            subfolder: Optional subfolder path

        Returns:
            Storage key of the saved file
        """
        suffix = PurePosixPath(filename).suffix.lower()
        key = f"{uuid.uuid4().hex}{suffix}"
        if subfolder:
            key = f"{subfolder.strip('/')}/{key}"

        file_path = self._resolve(key)
        file_path.parent.mkdir(parents=True, exist_ok=True)

        if isinstance(file_data, (bytes, bytearray)):
            file_path.write_bytes(file_data)
        else:
            with open(file_path, 'wb') as f:
                shutil.copyfileobj(file_data, f)

        logger.info("Saved file to %s", key)
        return key

    def read(self, key: str) -> bytes:
        file_path = self._resolve(key)
        if not file_path.exists():
            raise FileNotFoundError(f"File not found: {key}")
        return file_path.read_bytes()

    def delete(self, key: str) -> bool:
        """
        Delete file from local storage.

        Returns:
            True if a file was deleted, False if none existed
        """
        file_path = self._resolve(key)
        if not file_path.exists():
            return False

        file_path.unlink()
        logger.info("Deleted file: %s", key)
        return True

    def exists(self, key: str) -> bool:
        return self._resolve(key).exists()

    def list_files(self, subfolder: Optional[str] = None) -> list[str]:
        """List storage keys directly under ``subfolder``."""
        search_path = self._resolve(subfolder) if subfolder else self.base_path
        if not search_path.exists():
            return []

        prefix = f"{subfolder.strip('/')}/" if subfolder else ""
        return sorted(f"{prefix}{f.name}" for f in search_path.iterdir() if f.is_file())
