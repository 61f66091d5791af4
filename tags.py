#!/usr/bin/env python3
"""
Audio tag reading for MediaShelf
Reads embedded tags, duration and cover art with mutagen, and retries failed
files with increasingly permissive parse options (the fallback ladder).
"""

import base64
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union

import mutagen
from mutagen.flac import Picture, StreamInfo, VCFLACDict

from errors import TagReadError


logger = logging.getLogger(__name__)

# FLAC metadata block types
FLAC_STREAMINFO = 0
FLAC_VORBIS_COMMENT = 4


@dataclass
class AudioTags:
    """Tags and stream info extracted from one audio file"""
    title: Optional[str] = None
    artist: Optional[str] = None
    album_artist: Optional[str] = None
    album: Optional[str] = None
    year: Optional[int] = None
    genres: List[str] = field(default_factory=list)
    track_number: Optional[int] = None
    duration: float = 0.0
    pictures: List[bytes] = field(default_factory=list)  # Raw embedded cover images


@dataclass(frozen=True)
class ParseOptions:
    """Options for a single tag-parsing attempt"""
    duration: bool = True
    skip_covers: bool = False
    skip_post_headers: bool = False  # Only read the primary text tags
    include_chapters: bool = True  # False: read nothing past the stream header


@dataclass(frozen=True)
class ParseStrategy:
    name: str
    options: ParseOptions
    flac_only: bool = False


FALLBACK_STRATEGIES = (
    ParseStrategy('default', ParseOptions()),
    ParseStrategy('no-covers', ParseOptions(skip_covers=True)),
    ParseStrategy('minimal', ParseOptions(skip_covers=True, skip_post_headers=True)),
    ParseStrategy(
        'flac-recovery',
        ParseOptions(skip_covers=True, skip_post_headers=True, include_chapters=False),
        flac_only=True,
    ),
)


@dataclass
class TagResult:
    """
    Outcome of reading one file through the fallback ladder

    Either ok with tags and the strategy that succeeded, or not ok with the
    reason the last attempt failed.
    """
    ok: bool
    tags: Optional[AudioTags] = None
    strategy: Optional[str] = None
    reason: Optional[str] = None
    attempts: int = 0

    @property
    def recovered(self) -> bool:
        """True when a fallback strategy, not the first one, succeeded"""
        return self.ok and self.strategy != FALLBACK_STRATEGIES[0].name


class TagReader:
    """
    Interface for tag readers

    read() returns AudioTags or raises TagReadError for the given options.
    """

    def read(self, file_path: Path, options: ParseOptions) -> AudioTags:
        raise NotImplementedError


def applicable_strategies(file_path: Union[str, Path],
                          strategies: Sequence[ParseStrategy] = FALLBACK_STRATEGIES) -> List[ParseStrategy]:
    """Get the strategies that apply to a file (FLAC-only tiers for .flac files)"""
    is_flac = Path(file_path).suffix.lower() == '.flac'
    return [s for s in strategies if is_flac or not s.flac_only]


def read_tags_with_fallback(reader: TagReader, file_path: Union[str, Path],
                            strategies: Sequence[ParseStrategy] = FALLBACK_STRATEGIES) -> TagResult:
    """
    Read tags trying each applicable strategy in order until one succeeds

    Args:
        reader: Tag reader
        file_path: Audio file
        strategies: Ordered strategies (defaults to FALLBACK_STRATEGIES)

    Returns:
        TagResult; never raises for TagReadError
    """
    path = Path(file_path)
    reason = None
    attempts = 0

    for strategy in applicable_strategies(path, strategies):
        attempts += 1
        try:
            tags = reader.read(path, strategy.options)
        except TagReadError as e:
            reason = e.reason
            logger.debug(f"Strategy '{strategy.name}' failed for {path.name}: {e.reason}")
            continue
        return TagResult(ok=True, tags=tags, strategy=strategy.name, attempts=attempts)

    return TagResult(ok=False, reason=reason or 'no applicable strategy', attempts=attempts)


# Tag key -> field, for ID3 frames, Vorbis comments, MP4 atoms and the
# mutagen "easy" interfaces
TAG_MAPPINGS = {
    # ID3 (MP3)
    'TIT2': 'title',
    'TPE1': 'artist',
    'TPE2': 'album_artist',
    'TALB': 'album',
    'TRCK': 'track_number',
    'TYER': 'year',
    'TDRC': 'year',
    'TCON': 'genre',
    # Vorbis (FLAC, OGG) and easy ID3/MP4
    'title': 'title',
    'artist': 'artist',
    'albumartist': 'album_artist',
    'album artist': 'album_artist',
    'album': 'album',
    'tracknumber': 'track_number',
    'date': 'year',
    'genre': 'genre',
    # MP4 (M4A)
    '©nam': 'title',
    '©ART': 'artist',
    'aART': 'album_artist',
    '©alb': 'album',
    '©day': 'year',
    '©gen': 'genre',
    'trkn': 'track_number',
}


def _values(value: Any) -> List[Any]:
    """Flatten a tag value (frame, list, scalar) to a list of raw values"""
    if hasattr(value, 'genres'):  # ID3 TCON
        return list(value.genres)
    if hasattr(value, 'text'):
        value = value.text
    if isinstance(value, (list, tuple)) and not _is_number_pair(value):
        return list(value)
    return [value]


def _is_number_pair(value: Any) -> bool:
    return isinstance(value, tuple) and len(value) == 2 and all(isinstance(v, int) for v in value)


def _parse_number(value: Any) -> Optional[int]:
    if _is_number_pair(value):
        value = value[0]
    value = str(value)
    if '/' in value:
        value = value.split('/')[0]
    try:
        return int(value.strip())
    except ValueError:
        return None


def _parse_year(value: Any) -> Optional[int]:
    try:
        return int(str(value).strip()[:4])
    except ValueError:
        return None


def extract_tags(audio_tags: Any) -> Dict[str, Any]:
    """
    Extract common fields from a mutagen tag container

    Args:
        audio_tags: audio.tags of a mutagen file (ID3, VComment, MP4Tags, Easy*)

    Returns:
        Dict with any of: title, artist, album_artist, album, year,
        track_number, genres
    """
    fields: Dict[str, Any] = {}
    if not audio_tags:
        return fields

    for tag_key, field_name in TAG_MAPPINGS.items():
        try:
            raw = audio_tags[tag_key]
        except (KeyError, ValueError):
            # Vorbis comment dicts reject non-ASCII keys such as the MP4 atoms
            continue
        values = [v for v in _values(raw) if v not in (None, '')]
        if not values:
            continue

        if field_name == 'genre':
            fields.setdefault('genres', [str(v) for v in values])
        elif field_name == 'track_number':
            number = _parse_number(values[0])
            if number is not None:
                fields.setdefault('track_number', number)
        elif field_name == 'year':
            year = _parse_year(values[0])
            if year is not None:
                fields.setdefault('year', year)
        else:
            fields.setdefault(field_name, str(values[0]))

    return fields


def extract_pictures(audio: Any) -> List[bytes]:
    """Get raw embedded cover images from a mutagen file, in tag order"""
    pictures: List[bytes] = []
    tags = getattr(audio, 'tags', None)

    # FLAC picture blocks
    for picture in getattr(audio, 'pictures', None) or []:
        pictures.append(bytes(picture.data))

    if tags is None:
        return pictures

    # ID3 APIC frames
    if hasattr(tags, 'getall'):
        for frame in tags.getall('APIC'):
            pictures.append(bytes(frame.data))

    # MP4 cover atoms
    if 'covr' in tags:
        for cover in tags['covr']:
            pictures.append(bytes(cover))

    # Ogg Vorbis/Opus base64 picture blocks
    if 'metadata_block_picture' in tags:
        for encoded in tags['metadata_block_picture']:
            pictures.append(bytes(Picture(base64.b64decode(encoded)).data))

    return pictures


class MutagenTagReader(TagReader):
    """Tag reader backed by mutagen"""

    def read(self, file_path: Path, options: ParseOptions) -> AudioTags:
        if not options.include_chapters and file_path.suffix.lower() == '.flac':
            return self._read_flac_recovery(file_path)

        try:
            # The easy interfaces only expose the primary text tags
            audio = mutagen.File(str(file_path), easy=options.skip_post_headers)
            if audio is None:
                raise TagReadError(file_path, 'unsupported audio format')

            fields = extract_tags(audio.tags)
            duration = 0.0
            if options.duration and audio.info is not None and getattr(audio.info, 'length', None):
                duration = float(audio.info.length)

            pictures = []
            if not options.skip_covers:
                pictures = extract_pictures(audio)
        except TagReadError:
            raise
        except Exception as e:
            raise TagReadError(file_path, f"{type(e).__name__}: {e}") from e

        return AudioTags(duration=duration, pictures=pictures, **fields)

    def _read_flac_recovery(self, file_path: Path) -> AudioTags:
        """
        Walk the FLAC metadata blocks by hand, keeping only STREAMINFO and the
        first VORBIS_COMMENT block

        Picture, cuesheet and application blocks are skipped unparsed. A
        comment block that cannot be decoded leaves the text tags empty.
        """
        info = None
        fields: Dict[str, Any] = {}
        try:
            with open(file_path, 'rb') as f:
                if f.read(4) != b'fLaC':
                    raise TagReadError(file_path, 'missing fLaC marker')

                last = False
                while not last:
                    header = f.read(4)
                    if len(header) < 4:
                        break
                    last = bool(header[0] & 0x80)
                    block_type = header[0] & 0x7F
                    data = f.read(int.from_bytes(header[1:], 'big'))

                    if info is None:
                        if block_type != FLAC_STREAMINFO:
                            raise TagReadError(file_path, 'first metadata block is not STREAMINFO')
                        info = StreamInfo(data)
                    elif block_type == FLAC_VORBIS_COMMENT and not fields:
                        try:
                            fields = extract_tags(VCFLACDict(data))
                        except Exception as e:
                            logger.debug(f"Ignoring unreadable comment block in {file_path.name}: {e}")
        except TagReadError:
            raise
        except Exception as e:
            raise TagReadError(file_path, f"{type(e).__name__}: {e}") from e

        if info is None:
            raise TagReadError(file_path, 'missing STREAMINFO block')

        duration = info.total_samples / float(info.sample_rate) if info.sample_rate else 0.0
        return AudioTags(duration=duration, **fields)
