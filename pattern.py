#!/usr/bin/env python3
"""
Pattern matching and extraction for MediaShelf
Turns raw media file paths into movie and episode records without any I/O.
"""

import os
import re
import time
from pathlib import Path
from typing import Optional, Tuple, Union

from model import Episode, MovieItem
from util import generate_id


PathLike = Union[str, Path]

UNKNOWN_SHOW = 'Unknown Show'

# Quality, source and codec tokens removed from names as whole words
QUALITY_TOKENS = [
    r'1080p', r'720p', r'480p', r'2160p', r'4K',
    r'HDTV', r'WEB-?DL', r'WEB-?RIP', r'BluRay', r'BRRip', r'DVDRip',
    r'PROPER', r'REPACK',
    r'x264', r'x265', r'HEVC',
    r'AAC', r'AC3', r'DTS',
]
QUALITY_PATTERN = re.compile(r'\b(?:' + '|'.join(QUALITY_TOKENS) + r')\b', re.IGNORECASE)

# Bracketed release tags: [GROUP], [1080p]
BRACKET_PATTERN = re.compile(r'\[.*?\]')
# Parenthesized groups other than a bare 4-digit year: (Extended Cut), (x264)
PAREN_PATTERN = re.compile(r'\((?!\d{4}\))[^)]*\)')
SEASON_EPISODE_PATTERN = re.compile(r'[Ss](\d+)[Ee](\d+)')

# Year: parenthesized first, then a bare 4-digit token
YEAR_PATTERN = re.compile(r'\((\d{4})\)|\b(\d{4})\b')
# Every optionally-parenthesized 4-digit run, stripped from movie titles
YEAR_STRIP_PATTERN = re.compile(r'\(?\d{4}\)?')

# Season folder names: "Season 04", "Season 4", "S04", "S4"
SEASON_FOLDER_PATTERN = re.compile(r'(?:Season|S)\s*(\d+)', re.IGNORECASE)
EPISODE_PATTERNS = [
    re.compile(r'S(\d+)E(\d+)', re.IGNORECASE),  # S01E01 (season + episode)
    re.compile(r'(?:E|Episode|Ep)\s*(\d+)', re.IGNORECASE),  # E01, Episode 1, Ep 1 (episode only)
]
# Separators left between an episode marker and its title: " - Title"
TITLE_SEPARATOR_PATTERN = re.compile(r'^[\s\-_:.]+')


def sanitize_name(name: str) -> str:
    """Clean a file name for display and pattern matching.

    Removes bracketed tags, parenthesized groups that are not a 4-digit year,
    and quality/codec tokens; turns dots and underscores into spaces; collapses
    whitespace; and rewrites any S#E# marker in zero-padded S##E## form.

    Args:
        name: File name, normally without its extension

    Returns:
        Sanitized name
    """
    sanitized = BRACKET_PATTERN.sub('', name)
    sanitized = PAREN_PATTERN.sub('', sanitized)

    sanitized = re.sub(r'[._]', ' ', sanitized)
    sanitized = QUALITY_PATTERN.sub('', sanitized)

    sanitized = re.sub(r'\s+', ' ', sanitized).strip()

    return SEASON_EPISODE_PATTERN.sub(
        lambda m: f"S{m.group(1).zfill(2)}E{m.group(2).zfill(2)}",
        sanitized
    )


def extract_year(text: str) -> Optional[int]:
    """Get the first parenthesized or bare 4-digit year in text"""
    match = YEAR_PATTERN.search(text)
    if not match:
        return None
    return int(match.group(1) or match.group(2))


def classify_movie(file_path: PathLike, now: Optional[int] = None) -> MovieItem:
    """
    Build a movie record from a file path

    Args:
        file_path: Absolute path of the movie file
        now: Added timestamp in milliseconds (defaults to the current time)

    Returns:
        MovieItem with title and optional year parsed from the file name
    """
    path = Path(file_path)
    file_name = path.stem
    sanitized = sanitize_name(file_name)

    year = extract_year(sanitized)

    # All 4-digit runs go, not just the one taken as the year
    title = YEAR_STRIP_PATTERN.sub('', sanitized)
    title = re.sub(r'\s+', ' ', title).strip()

    return MovieItem(
        id=generate_id(str(file_path)),
        title=title or file_name,
        original_file_name=file_name,
        file_path=str(file_path),
        added_timestamp=now if now is not None else int(time.time() * 1000),
        year=year,
    )


def _title_after(text: str, end: int, episode_num: int) -> str:
    title = TITLE_SEPARATOR_PATTERN.sub('', text[end:]).strip()
    return title or f"Episode {episode_num}"


def extract_season_from_folder(folder_name: str) -> Optional[int]:
    """Get a season number from a season folder name, or None"""
    match = SEASON_FOLDER_PATTERN.search(folder_name)
    return int(match.group(1)) if match else None


def extract_episode_info(sanitized: str, file_name: str,
                         season: Optional[int]) -> Tuple[int, int, str]:
    """Extract season, episode number and title from a sanitized file name

    Tiers, in order:
    1. S##E##: episode from the match; season from the match only when the
       folder did not already give one
    2. E##, Episode ##, Ep ##: episode from the match, season defaults to 1
    3. nothing: episode 0, title is the raw file name, season defaults to 1

    Args:
        sanitized: Sanitized file name
        file_name: Raw file name without extension
        season: Season number found in the folder structure, if any

    Returns:
        (season_num, episode_num, title)
    """
    match = EPISODE_PATTERNS[0].search(sanitized)
    if match:
        if season is None:
            season = int(match.group(1))
        episode_num = int(match.group(2))
        return season, episode_num, _title_after(sanitized, match.end(), episode_num)

    match = EPISODE_PATTERNS[1].search(sanitized)
    if match:
        episode_num = int(match.group(1))
        title = _title_after(sanitized, match.end(), episode_num)
    else:
        episode_num = 0
        title = file_name

    if season is None:
        season = 1
    return season, episode_num, title


def classify_episode(file_path: PathLike, library_root: PathLike) -> Episode:
    """
    Build an episode record from a file path inside a TV library folder

    The first folder below the library root is the show name; a second folder
    may carry the season number (which then wins over the file name).

    Args:
        file_path: Absolute path of the episode file
        library_root: Configured TV folder the file was found under

    Returns:
        Episode record
    """
    path = Path(file_path)
    file_name = path.stem
    sanitized = sanitize_name(file_name)

    relative = os.path.relpath(str(file_path), str(library_root))
    parts = Path(relative).parts

    show_name = parts[0] if len(parts) > 1 else UNKNOWN_SHOW

    season = None
    if len(parts) > 2:
        season = extract_season_from_folder(parts[1])

    season, episode_num, title = extract_episode_info(sanitized, file_name, season)

    return Episode(
        id=generate_id(str(file_path)),
        show_name=show_name or UNKNOWN_SHOW,
        season=season,
        number=episode_num,
        title=title,
        file_name=sanitized,
        file_path=str(file_path),
    )
