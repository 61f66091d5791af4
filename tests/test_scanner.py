#!/usr/bin/env python3
"""
Scan orchestration tests using temporary media folders, a fake tag reader and
a fake thumbnail generator.
"""

import sys
import threading
from pathlib import Path

import pytest

# Add parent directory to path to import modules
sys.path.insert(0, str(Path(__file__).parent.parent))

from conftest import BlockingTagReader, FakeTagReader, FakeThumbnails, touch
from errors import ScanInProgressError, UnknownCategoryError
from scanner import walk_media_files
from tags import AudioTags
from webui.services.control_service import ControlService


class TestWalkMediaFiles:

    def test_filters_extensions_recursively(self, media_root):
        touch(media_root / 'b.mkv')
        touch(media_root / 'a.MP4')
        touch(media_root / 'notes.txt')
        touch(media_root / 'sub' / 'c.avi')

        files = walk_media_files(media_root, ['.mkv', '.mp4', '.avi'])
        assert [f.name for f in files] == ['a.MP4', 'b.mkv', 'c.avi']

    def test_missing_root_is_empty(self, tmp_path):
        assert walk_media_files(tmp_path / 'gone', ['.mkv']) == []

    def test_symlink_loop_terminates(self, media_root):
        touch(media_root / 'show' / 'e1.mkv')
        (media_root / 'show' / 'loop').symlink_to(media_root, target_is_directory=True)
        files = walk_media_files(media_root, ['.mkv'])
        assert [f.name for f in files] == ['e1.mkv']


class TestMovieScan:

    def test_scan_movies(self, storage, make_scanner, media_root):
        touch(media_root / 'Inception (2010).mkv')
        touch(media_root / 'Heat.1995.1080p.mp4')
        touch(media_root / 'readme.txt')
        storage.add_media_folder('movies', str(media_root))

        report = make_scanner().scan('movies')

        assert report.count == 2
        assert report.stats.files == 2
        movies = storage.get_media_library('movies')
        assert sorted((m.title, m.year) for m in movies) == [('Heat', 1995), ('Inception', 2010)]
        for m in movies:
            assert storage.resolve_media_path('movies', m.id) == m.file_path

    def test_rescan_is_idempotent(self, storage, make_scanner, media_root):
        touch(media_root / 'A (2000).mkv')
        touch(media_root / 'B (2001).mkv')
        storage.add_media_folder('movies', str(media_root))
        scanner = make_scanner()

        scanner.scan('movies')
        first = [m.id for m in storage.get_media_library('movies')]
        scanner.scan('movies')
        second = [m.id for m in storage.get_media_library('movies')]
        assert first == second

    def test_thumbnails(self, storage, make_scanner, media_root, server_config):
        touch(media_root / 'Good.mkv')
        touch(media_root / 'Bad.mkv')
        storage.add_media_folder('movies', str(media_root))
        thumbnails = FakeThumbnails(server_config.thumbnails_dir, fail={'Bad.mkv'})

        report = make_scanner(thumbnails=thumbnails).scan('movies', create_thumbnails=True)

        assert report.count == 2
        assert report.stats.thumbnails_created == 1
        assert report.stats.thumbnail_failures == 1
        by_title = {m.title: m for m in storage.get_media_library('movies')}
        assert by_title['Good'].thumbnail == f"{by_title['Good'].id}.png"
        assert by_title['Bad'].thumbnail is None

    def test_no_thumbnails_unless_requested(self, storage, make_scanner, media_root, server_config):
        touch(media_root / 'Good.mkv')
        storage.add_media_folder('movies', str(media_root))
        thumbnails = FakeThumbnails(server_config.thumbnails_dir)

        make_scanner(thumbnails=thumbnails).scan('movies')
        assert thumbnails.frames == []


class TestTVScan:

    def test_scan_tv(self, storage, make_scanner, media_root, server_config):
        touch(media_root / 'My Show' / 'Season 02' / 'My Show - S2E05 - Title.mkv')
        touch(media_root / 'My Show' / 'Season 01' / 'My.Show.S01E02.mkv')
        touch(media_root / 'My Show' / 'Season 01' / 'My.Show.S01E01.mkv')
        touch(media_root / 'Other' / 'random.mkv')
        storage.add_media_folder('tv', str(media_root))

        thumbnails = FakeThumbnails(server_config.thumbnails_dir)
        report = make_scanner(thumbnails=thumbnails).scan('tv', create_thumbnails=True)

        assert report.count == 2
        shows = {s.name: s for s in storage.get_media_library('tv')}
        my_show = shows['My Show']
        assert [s.number for s in my_show.seasons] == [1, 2]
        assert [e.number for e in my_show.seasons[0].episodes] == [1, 2]
        assert my_show.seasons[1].episodes[0].title == 'Title'
        assert my_show.thumbnail == f"{my_show.seasons[0].episodes[0].id}.png"

        other = shows['Other']
        assert other.seasons[0].number == 1
        assert other.seasons[0].episodes[0].number == 0


class TestMusicScan:

    def test_groups_albums_and_counts(self, storage, make_scanner, media_root):
        for name in ['01.mp3', '02.mp3', 'weird.mp3', 'dead.mp3', 'dead.flac']:
            touch(media_root / 'Album' / name)
        storage.add_media_folder('music', str(media_root))
        reader = FakeTagReader(
            tags={
                '01.mp3': AudioTags(title='One', album_artist='A', album='B', track_number=1),
                '02.mp3': AudioTags(title='Two', album_artist='A', album='B', track_number=2),
                'weird.mp3': AudioTags(title='Three', album_artist='A', album='B', track_number=3),
            },
            fragile={'weird.mp3'},
            broken={'dead.mp3', 'dead.flac'},
        )

        report = make_scanner(tag_reader=reader).scan('music')

        assert report.stats.files == 5
        assert report.stats.recovered == 1
        assert report.stats.skipped == 2
        albums = storage.get_media_library('music')
        assert len(albums) == 1
        assert [t.title for t in albums[0].tracks] == ['One', 'Two', 'Three']

        attempts = [name for name, _ in reader.calls]
        assert attempts.count('dead.mp3') == 3
        assert attempts.count('dead.flac') == 4

    def test_album_art(self, storage, make_scanner, media_root, server_config):
        touch(media_root / '1.mp3')
        storage.add_media_folder('music', str(media_root))
        reader = FakeTagReader(tags={'1.mp3': AudioTags(album_artist='A', album='B', pictures=[b'img'])})
        thumbnails = FakeThumbnails(server_config.thumbnails_dir)

        make_scanner(tag_reader=reader, thumbnails=thumbnails).scan('music', create_thumbnails=True)

        album = storage.get_media_library('music')[0]
        assert thumbnails.covers == [(b'img', album.id)]
        assert album.thumbnail == f"{album.id}.png"


class TestScanGuards:

    def test_unknown_category(self, make_scanner):
        with pytest.raises(UnknownCategoryError):
            make_scanner().scan('podcasts')

    def test_concurrent_scan_same_category_rejected(self, storage, make_scanner, media_root):
        touch(media_root / 'song.mp3')
        touch(media_root / 'Film.mkv')
        storage.add_media_folder('music', str(media_root))
        storage.add_media_folder('movies', str(media_root))
        reader = BlockingTagReader()
        scanner = make_scanner(tag_reader=reader)

        results = {}
        worker = threading.Thread(target=lambda: results.setdefault('first', scanner.scan('music')))
        worker.start()
        try:
            assert reader.entered.wait(timeout=5)
            assert scanner.is_scanning('music')

            with pytest.raises(ScanInProgressError):
                scanner.scan('music')

            # Other categories are not blocked
            assert scanner.scan('movies').count == 1
        finally:
            reader.release.set()
            worker.join(timeout=5)

        assert results['first'].count == 1
        assert not scanner.is_scanning('music')
        assert storage.get_media_library('music')[0].tracks[0].title == 'song'

    def test_persistence_failure_keeps_previous_library(self, storage, make_scanner, media_root, monkeypatch):
        touch(media_root / 'Old.mkv')
        storage.add_media_folder('movies', str(media_root))
        scanner = make_scanner()
        scanner.scan('movies')
        touch(media_root / 'New.mkv')

        def fail(data):
            raise OSError('disk full')

        monkeypatch.setattr(storage.library_store, 'save', fail)
        result = ControlService(storage, scanner).scan_media('movies')

        assert not result.success
        assert 'disk full' in result.error
        assert [m.title for m in storage.get_media_library('movies')] == ['Old']
        assert not scanner.is_scanning('movies')

    def test_scan_in_progress_result(self, storage, make_scanner):
        scanner = make_scanner()
        scanner._locks['tv'].acquire()
        try:
            result = ControlService(storage, scanner).scan_media('tv')
        finally:
            scanner._locks['tv'].release()
        assert not result.success
        assert result.conflict
