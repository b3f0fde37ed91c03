"""Temporary upload directories.

Uploaded files are kept only while they are ingested.
"""

import asyncio
import logging
import shutil
from pathlib import Path

logger = logging.getLogger(__name__)


class CleanupManager:
    """Creates and removes per-user temporary directories."""

    @staticmethod
    def create_temp_directory(base_dir: Path, user_id: int) -> Path:
        """Create an isolated temporary directory for a user.

        Raises:
            OSError: If directory cannot be created
        """
        temp_dir = base_dir / str(user_id)
        temp_dir.mkdir(parents=True, exist_ok=True)
        logger.debug(f"Created temp directory: {temp_dir}")
        return temp_dir

    @staticmethod
    def cleanup_directory(dir_path: Path) -> bool:
        """Delete a directory and all its contents. Returns False on failure."""
        try:
            if dir_path.is_dir():
                shutil.rmtree(dir_path)
                logger.info(f"Deleted directory: {dir_path}")
            return True
        except OSError as e:
            logger.error(f"Failed to delete directory {dir_path}: {e}")
            return False

    @staticmethod
    async def cleanup_directory_async(dir_path: Path) -> bool:
        return await asyncio.to_thread(CleanupManager.cleanup_directory, dir_path)
