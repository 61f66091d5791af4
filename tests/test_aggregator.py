#!/usr/bin/env python3
"""
Library aggregation tests: grouping, ordering and thumbnail inheritance.
"""

import sys
from pathlib import Path

# Add parent directory to path to import modules
sys.path.insert(0, str(Path(__file__).parent.parent))

from aggregator import (
    UNKNOWN_ALBUM,
    UNKNOWN_ARTIST,
    MovieAggregator,
    MusicAggregator,
    TVAggregator,
    album_key,
)
from model import Episode
from pattern import classify_movie
from tags import AudioTags
from util import generate_id


def make_episode(show, season, number, thumbnail=None, name=None):
    file_path = f"/tv/{show}/S{season}E{number}-{name or number}.mkv"
    return Episode(
        id=generate_id(file_path),
        show_name=show,
        season=season,
        number=number,
        title=f"Episode {number}",
        file_name=Path(file_path).stem,
        file_path=file_path,
        thumbnail=thumbnail,
    )


class TestMovieAggregator:

    def test_keeps_walk_order(self):
        aggregator = MovieAggregator()
        for name in ["B.mkv", "A.mkv", "C.mkv"]:
            aggregator.add(classify_movie(f"/movies/{name}", now=0))
        assert [m.title for m in aggregator.finalize()] == ["B", "A", "C"]


class TestTVAggregator:

    def test_groups_and_sorts(self):
        aggregator = TVAggregator()
        for episode in [
            make_episode("Show", 2, 3),
            make_episode("Show", 1, 2),
            make_episode("Show", 2, 1),
            make_episode("Show", 1, 1),
            make_episode("Other", 1, 1),
        ]:
            aggregator.add(episode)

        shows = aggregator.finalize()
        assert [s.name for s in shows] == ["Show", "Other"]

        show = shows[0]
        assert show.id == generate_id("Show")
        assert [s.number for s in show.seasons] == [1, 2]
        assert [e.number for e in show.seasons[0].episodes] == [1, 2]
        assert [e.number for e in show.seasons[1].episodes] == [1, 3]

    def test_equal_numbers_keep_encounter_order(self):
        aggregator = TVAggregator()
        aggregator.add(make_episode("Show", 1, 0, name="first"))
        aggregator.add(make_episode("Show", 1, 0, name="second"))
        episodes = aggregator.finalize()[0].seasons[0].episodes
        assert [Path(e.file_path).stem for e in episodes] == ["S1E0-first", "S1E0-second"]

    def test_season_thumbnail_from_first_episode_with_one(self):
        aggregator = TVAggregator()
        aggregator.add(make_episode("Show", 2, 1))
        aggregator.add(make_episode("Show", 2, 2, thumbnail="b.png"))
        aggregator.add(make_episode("Show", 2, 3, thumbnail="c.png"))
        show = aggregator.finalize()[0]
        assert show.seasons[0].thumbnail == "b.png"

    def test_show_thumbnail_only_from_season_one(self):
        aggregator = TVAggregator()
        aggregator.add(make_episode("Show", 2, 1, thumbnail="s2.png"))
        show = aggregator.finalize()[0]
        assert show.thumbnail is None

        aggregator.add(make_episode("Show", 1, 1, thumbnail="s1.png"))
        show = aggregator.finalize()[0]
        assert show.thumbnail == "s1.png"


class TestMusicAggregator:

    def test_album_key_is_case_sensitive(self):
        aggregator = MusicAggregator()
        aggregator.add("/music/1.mp3", AudioTags(album_artist="A", album="B", track_number=1))
        aggregator.add("/music/2.mp3", AudioTags(album_artist="A", album="b", track_number=1))
        albums = aggregator.finalize()
        assert len(albums) == 2
        assert albums[0].id == generate_id(album_key("A", "B"))
        assert albums[1].id == generate_id(album_key("A", "b"))

    def test_same_album_merges_and_sorts_tracks(self):
        aggregator = MusicAggregator()
        aggregator.add("/music/3.mp3", AudioTags(title="Three", album_artist="A", album="B", track_number=3))
        aggregator.add("/music/1.mp3", AudioTags(title="One", album_artist="A", album="B", track_number=1))
        aggregator.add("/music/x.mp3", AudioTags(title="Tie 1", album_artist="A", album="B", track_number=2))
        aggregator.add("/music/y.mp3", AudioTags(title="Tie 2", album_artist="A", album="B", track_number=2))
        albums = aggregator.finalize()
        assert len(albums) == 1
        assert [t.title for t in albums[0].tracks] == ["One", "Tie 1", "Tie 2", "Three"]

    def test_artist_fallbacks(self):
        aggregator = MusicAggregator()
        with_artist = aggregator.add("/music/a.mp3", AudioTags(artist="Solo", album="X"))
        unknown = aggregator.add("/music/b.mp3", AudioTags())
        assert with_artist.artist == "Solo"
        assert unknown.artist == UNKNOWN_ARTIST
        assert unknown.album == UNKNOWN_ALBUM

    def test_album_artist_preferred(self):
        aggregator = MusicAggregator()
        album = aggregator.add("/music/a.mp3", AudioTags(artist="Guest", album_artist="Band", album="X"))
        assert album.artist == "Band"

    def test_metadata_from_first_file(self):
        aggregator = MusicAggregator()
        aggregator.add("/music/a.mp3", AudioTags(album_artist="A", album="B", year=2001, genres=["Rock", "Pop"]))
        aggregator.add("/music/b.mp3", AudioTags(album_artist="A", album="B", year=1999, genres=["Jazz"]))
        album = aggregator.finalize()[0]
        assert album.year == 2001
        assert album.genre == "Rock"

    def test_track_defaults(self):
        aggregator = MusicAggregator()
        album = aggregator.add("/music/Intro Song.flac", AudioTags())
        track = album.tracks[0]
        assert track.title == "Intro Song"
        assert track.track_number == 0
        assert track.duration == 0.0
        assert track.id == generate_id("/music/Intro Song.flac")

    def test_cover_written_once_from_first_picture(self):
        covers = []

        def write_cover(data, album_id):
            covers.append((data, album_id))
            return f"{album_id}.png"

        aggregator = MusicAggregator(cover_writer=write_cover)
        aggregator.add("/music/1.mp3", AudioTags(album_artist="A", album="B"))
        aggregator.add("/music/2.mp3", AudioTags(album_artist="A", album="B", pictures=[b"first"]))
        aggregator.add("/music/3.mp3", AudioTags(album_artist="A", album="B", pictures=[b"second"]))
        album = aggregator.finalize()[0]

        assert covers == [(b"first", album.id)]
        assert album.thumbnail == f"{album.id}.png"
