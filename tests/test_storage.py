#!/usr/bin/env python3
"""
Persistence tests: JSON files, settings, library commits and id resolution.
"""

import json
import sys
from pathlib import Path

import pytest

# Add parent directory to path to import modules
sys.path.insert(0, str(Path(__file__).parent.parent))

from errors import ItemNotFoundError, UnknownCategoryError
from model import Album, Episode, MovieItem, Season, Show, Track
from storage import JsonStore, StorageManager


def movie(movie_id, title='Movie', file_path=None):
    return MovieItem(
        id=movie_id,
        title=title,
        original_file_name=title,
        file_path=file_path or f'/movies/{title}.mkv',
        added_timestamp=0,
    )


def show_with_episode(episode_id, file_path):
    episode = Episode(id=episode_id, show_name='Show', season=1, number=1, title='Pilot',
                      file_name='Show S01E01', file_path=file_path)
    return Show(id='show1', name='Show', seasons=[Season(number=1, episodes=[episode])])


class TestJsonStore:

    def test_missing_file_written_from_default(self, tmp_path):
        store = JsonStore(tmp_path / 'state.json')
        assert store.load(lambda: {'a': 1}) == {'a': 1}
        assert json.loads((tmp_path / 'state.json').read_text()) == {'a': 1}

    def test_corrupt_file_moved_aside(self, tmp_path):
        path = tmp_path / 'state.json'
        path.write_text('{not json')
        store = JsonStore(path)
        assert store.load(dict) == {}
        assert (tmp_path / 'state.json.corrupt').read_text() == '{not json'

    def test_save_leaves_no_temp_files(self, tmp_path):
        store = JsonStore(tmp_path / 'state.json')
        store.save({'x': [1, 2]})
        assert sorted(p.name for p in tmp_path.iterdir()) == ['state.json']


class TestStorageInit:

    def test_creates_default_files(self, tmp_path):
        data_dir = tmp_path / 'nested' / 'data'
        storage = StorageManager(data_dir)
        storage.init()

        assert json.loads((data_dir / 'config.json').read_text()) == {
            'port': 3000,
            'autoStart': False,
            'mediaFolders': {'movies': [], 'tv': [], 'music': []},
        }
        assert json.loads((data_dir / 'library.json').read_text()) == {'movies': [], 'tv': [], 'music': []}
        assert json.loads((data_dir / 'playback.json').read_text()) == {'lastPlayed': None, 'progress': {}}

    @pytest.mark.parametrize('name, content', [
        ('playback.json', {'lastPlayed': None, 'progress': {'movies:x': None}}),
        ('config.json', {'port': 3000, 'mediaFolders': ['a']}),
        ('library.json', {'movies': [{'title': 'No id'}], 'tv': [], 'music': []}),
    ])
    def test_wrong_shape_file_is_moved_aside(self, tmp_path, name, content):
        (tmp_path / name).write_text(json.dumps(content))

        storage = StorageManager(tmp_path)
        storage.init()

        assert json.loads((tmp_path / f'{name}.corrupt').read_text()) == content
        assert storage.get_settings().folders('movies') == []
        assert storage.get_media_library('movies') == []
        assert storage.get_playback().progress == {}

    def test_reload_keeps_state(self, storage, server_config):
        storage.add_media_folder('movies', '/films')
        storage.set_media_library('movies', [movie('m1')])

        reloaded = StorageManager(server_config.data_dir)
        reloaded.init()
        assert reloaded.get_settings().folders('movies') == ['/films']
        assert [m.id for m in reloaded.get_media_library('movies')] == ['m1']
        assert reloaded.resolve_media_path('movies', 'm1') == '/movies/Movie.mkv'


class TestSettings:

    def test_add_folder_is_idempotent(self, storage):
        storage.add_media_folder('tv', '/shows')
        settings = storage.add_media_folder('tv', '/shows')
        assert settings.folders('tv') == ['/shows']

    def test_remove_folder(self, storage):
        storage.add_media_folder('music', '/a')
        storage.add_media_folder('music', '/b')
        settings = storage.remove_media_folder('music', '/a')
        assert settings.folders('music') == ['/b']

    def test_unknown_category(self, storage):
        with pytest.raises(UnknownCategoryError):
            storage.add_media_folder('podcasts', '/p')

    def test_returned_settings_are_copies(self, storage):
        settings = storage.get_settings()
        settings.media_folders['movies'].append('/sneaky')
        assert storage.get_settings().folders('movies') == []

    def test_failed_write_keeps_settings(self, storage, monkeypatch):
        def fail(data):
            raise OSError('disk full')

        monkeypatch.setattr(storage.settings_store, 'save', fail)
        with pytest.raises(OSError):
            storage.add_media_folder('movies', '/films')
        assert storage.get_settings().folders('movies') == []


class TestLibrary:

    def test_categories_are_independent(self, storage):
        storage.set_media_library('movies', [movie('m1')])
        storage.set_media_library('tv', [show_with_episode('e1', '/tv/Show/e1.mkv')])
        storage.set_media_library('movies', [movie('m2')])

        assert [m.id for m in storage.get_media_library('movies')] == ['m2']
        assert [s.id for s in storage.get_media_library('tv')] == ['show1']

    def test_failed_commit_keeps_library(self, storage, monkeypatch):
        storage.set_media_library('movies', [movie('m1')])

        def fail(data):
            raise OSError('read-only file system')

        monkeypatch.setattr(storage.library_store, 'save', fail)
        with pytest.raises(OSError):
            storage.set_media_library('movies', [movie('m2')])

        assert [m.id for m in storage.get_media_library('movies')] == ['m1']
        assert storage.resolve_media_path('movies', 'm1') is not None
        assert storage.resolve_media_path('movies', 'm2') is None

    def test_resolve_paths_in_every_category(self, storage):
        album = Album(id='al1', artist='A', album='B', year=None, genre=None,
                      tracks=[Track(id='t1', title='T', track_number=1, duration=1.0, file_path='/music/t1.mp3')])
        storage.set_media_library('movies', [movie('m1', file_path='/movies/m1.mkv')])
        storage.set_media_library('tv', [show_with_episode('e1', '/tv/Show/e1.mkv')])
        storage.set_media_library('music', [album])

        assert storage.resolve_media_path('movies', 'm1') == '/movies/m1.mkv'
        assert storage.resolve_media_path('tv', 'e1') == '/tv/Show/e1.mkv'
        assert storage.resolve_media_path('music', 't1') == '/music/t1.mp3'
        assert storage.resolve_media_path('music', 'm1') is None
        assert storage.path_index.size() == 3

    def test_resolve_falls_back_to_linear_search(self, storage):
        storage.set_media_library('movies', [movie('m1', file_path='/movies/m1.mkv')])
        storage.path_index.clear()
        assert storage.resolve_media_path('movies', 'm1') == '/movies/m1.mkv'


class TestUpdateMediaItem:

    def test_rename_movie(self, storage):
        storage.set_media_library('movies', [movie('m1', title='Old')])
        updated = storage.update_media_item('movies', 'm1', {'title': 'New', 'year': 2001})
        assert updated.title == 'New'
        assert updated.year == 2001
        assert storage.get_media_library('movies')[0].title == 'New'

        saved = json.loads(storage.library_store.path.read_text())
        assert saved['movies'][0]['title'] == 'New'

    def test_unknown_id(self, storage):
        with pytest.raises(ItemNotFoundError):
            storage.update_media_item('movies', 'missing', {'title': 'X'})

    def test_field_not_editable(self, storage):
        storage.set_media_library('movies', [movie('m1')])
        with pytest.raises(ValueError):
            storage.update_media_item('movies', 'm1', {'filePath': '/etc/passwd'})
