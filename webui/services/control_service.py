"""Control operations for the desktop shell: scans, folders and settings"""

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Optional

from errors import MediaShelfError, ScanInProgressError
from model import Settings
from scanner import MediaScanner
from storage import StorageManager


@dataclass
class OperationResult:
    """Success/failure result with a human-readable message"""
    success: bool
    message: str = ''
    error: Optional[str] = None
    data: Dict[str, Any] = field(default_factory=dict)
    conflict: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            'success': self.success,
            'message': self.message or None,
            'error': self.error,
            'data': self.data or None,
        }


class ControlService:
    """Wraps the scanner and the storage manager with result-returning operations"""

    def __init__(self, storage: StorageManager, scanner: MediaScanner,
                 status_provider: Optional[Callable[[], Dict[str, Any]]] = None,
                 logger: Optional[logging.Logger] = None):
        self.storage = storage
        self.scanner = scanner
        self.status_provider = status_provider
        self.logger = logger or logging.getLogger(__name__)

    def server_status(self) -> Dict[str, Any]:
        if self.status_provider is None:
            return {'running': False, 'port': None}
        return self.status_provider()

    def scan_media(self, category: str, create_thumbnails: bool = False) -> OperationResult:
        """
        Scan one category

        Returns:
            OperationResult; a scan already running for the category, an
            unknown category or a failed library write give success=False
        """
        self.logger.info(f"Scan request received: type={category}, createThumbnails={create_thumbnails}")
        try:
            report = self.scanner.scan(category, create_thumbnails=create_thumbnails)
        except ScanInProgressError as e:
            self.logger.warning(str(e))
            return OperationResult(success=False, error=str(e), conflict=True)
        except MediaShelfError as e:
            return OperationResult(success=False, error=str(e))
        except OSError as e:
            self.logger.error(f"Failed to save {category} library: {e}")
            return OperationResult(success=False, error=f"Failed to save library: {e}")

        stats = report.stats
        message = f"Scanned {stats.files} files into {report.count} {category} items"
        if stats.recovered or stats.skipped:
            message += f" ({stats.recovered} recovered, {stats.skipped} skipped)"
        return OperationResult(success=True, message=message, data=report.to_dict())

    def get_settings(self) -> Settings:
        return self.storage.get_settings()

    def update_settings(self, settings: Settings) -> OperationResult:
        try:
            saved = self.storage.save_settings(settings)
        except OSError as e:
            self.logger.error(f"Failed to save settings: {e}")
            return OperationResult(success=False, error=f"Failed to save settings: {e}")
        return OperationResult(success=True, message='Settings saved', data=saved.to_dict())

    def add_media_folder(self, category: str, folder: str) -> OperationResult:
        return self._update_folders(self.storage.add_media_folder, category, folder, 'added')

    def remove_media_folder(self, category: str, folder: str) -> OperationResult:
        return self._update_folders(self.storage.remove_media_folder, category, folder, 'removed')

    def _update_folders(self, operation, category: str, folder: str, verb: str) -> OperationResult:
        try:
            settings = operation(category, folder)
        except MediaShelfError as e:
            return OperationResult(success=False, error=str(e))
        except OSError as e:
            self.logger.error(f"Failed to save settings: {e}")
            return OperationResult(success=False, error=f"Failed to save settings: {e}")
        return OperationResult(
            success=True,
            message=f"Folder {verb}: {folder}",
            data={'mediaFolders': settings.to_dict()['mediaFolders']},
        )
