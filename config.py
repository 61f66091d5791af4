#!/usr/bin/env python3
"""
Configuration loader for MediaShelf
Loads server configuration (data directory, logging, thumbnail and scan
settings) from a config.yaml file. User settings edited at runtime (port,
auto-start, watched folders) live in the JSON settings store instead.
"""

import os
import yaml
from pathlib import Path
from typing import Optional, Dict, Any, List
from dataclasses import dataclass, field


DEFAULT_VIDEO_EXTENSIONS = ['.mp4', '.mkv', '.avi', '.mov', '.wmv', '.flv', '.webm', '.m4v']
DEFAULT_AUDIO_EXTENSIONS = ['.mp3', '.flac', '.wav', '.m4a', '.aac', '.ogg', '.wma']


def _as_int(value: Any, default: int) -> int:
    """Coerce a numeric config value to int, falling back to default"""
    if isinstance(value, bool):
        return default
    if isinstance(value, float):
        return int(value)
    if not isinstance(value, int):
        return default
    return value


def _as_extensions(value: Any, default: List[str]) -> List[str]:
    if not isinstance(value, list) or not value:
        return list(default)
    return [ext.lower() if ext.startswith('.') else f".{ext.lower()}" for ext in map(str, value)]


@dataclass
class ThumbnailConfig:
    """Thumbnail generation configuration"""
    ffmpeg_path: str = 'ffmpeg'
    offset_seconds: int = 90
    size: str = '320x180'
    max_workers: int = 4
    timeout: int = 60

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ThumbnailConfig':
        """Create ThumbnailConfig from dictionary"""
        data = data or {}
        # Environment wins over the file, like the API keys of other tools
        ffmpeg_path = os.getenv('MEDIASHELF_FFMPEG') or data.get('ffmpeg_path') or 'ffmpeg'

        size = str(data.get('size', '320x180'))
        if not size.count('x') == 1:
            raise ValueError(f"Invalid thumbnail size '{size}', expected WIDTHxHEIGHT")

        max_workers = _as_int(data.get('max_workers'), 4)
        if max_workers < 1:
            raise ValueError("thumbnails.max_workers must be at least 1")

        return cls(
            ffmpeg_path=ffmpeg_path,
            offset_seconds=_as_int(data.get('offset_seconds'), 90),
            size=size,
            max_workers=max_workers,
            timeout=_as_int(data.get('timeout'), 60)
        )


@dataclass
class ScanConfig:
    """Extension allow-lists for the directory walk"""
    video_extensions: List[str] = field(default_factory=lambda: list(DEFAULT_VIDEO_EXTENSIONS))
    audio_extensions: List[str] = field(default_factory=lambda: list(DEFAULT_AUDIO_EXTENSIONS))

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ScanConfig':
        """Create ScanConfig from dictionary"""
        data = data or {}
        return cls(
            video_extensions=_as_extensions(data.get('video_extensions'), DEFAULT_VIDEO_EXTENSIONS),
            audio_extensions=_as_extensions(data.get('audio_extensions'), DEFAULT_AUDIO_EXTENSIONS)
        )


@dataclass
class ServerConfig:
    """Complete server configuration"""
    data_dir: Path = field(default_factory=lambda: Path.cwd() / 'data')
    log_dir: Optional[Path] = None
    host: str = '0.0.0.0'
    verbose: bool = False
    thumbnails: ThumbnailConfig = field(default_factory=ThumbnailConfig)
    scan: ScanConfig = field(default_factory=ScanConfig)

    def __post_init__(self):
        """Place logs under the data directory if not configured"""
        self.data_dir = Path(self.data_dir)
        if self.log_dir is None:
            self.log_dir = self.data_dir / 'logs'
        else:
            self.log_dir = Path(self.log_dir)

    @property
    def thumbnails_dir(self) -> Path:
        return self.data_dir / 'thumbnails'

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ServerConfig':
        """Create ServerConfig from dictionary"""
        data_dir = os.getenv('MEDIASHELF_DATA_DIR') or data.get('data_dir')
        log_dir = data.get('log_dir')

        return cls(
            data_dir=Path(data_dir).expanduser() if data_dir else Path.cwd() / 'data',
            log_dir=Path(log_dir).expanduser() if log_dir else None,
            host=str(data.get('host') or '0.0.0.0'),
            verbose=bool(data.get('verbose', False)),
            thumbnails=ThumbnailConfig.from_dict(data.get('thumbnails', {})),
            scan=ScanConfig.from_dict(data.get('scan', {}))
        )


def load_config(config_path: Optional[str] = None) -> ServerConfig:
    """
    Load server configuration from YAML file

    Args:
        config_path: Path to config.yaml file. If None, looks for config.yaml
                     in the current directory or script directory, and uses
                     defaults when neither exists.

    Returns:
        ServerConfig object

    Raises:
        FileNotFoundError: If an explicit config_path doesn't exist
        yaml.YAMLError: If config file is invalid YAML
        ValueError: If the file is empty or holds invalid values
    """
    if config_path is None:
        # Try current directory first
        config_file = Path.cwd() / 'config.yaml'

        # If not found, try script directory
        if not config_file.exists():
            config_file = Path(__file__).parent / 'config.yaml'

        if not config_file.exists():
            return ServerConfig.from_dict({})
    else:
        config_file = Path(config_path)
        if not config_file.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_file}")

    with open(config_file, 'r', encoding='utf-8') as f:
        config_data = yaml.safe_load(f)

    if not config_data:
        raise ValueError("Configuration file is empty")
    if not isinstance(config_data, dict):
        raise ValueError("Configuration file must contain a mapping")

    return ServerConfig.from_dict(config_data)
