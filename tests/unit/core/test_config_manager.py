import builtins
import importlib
import sys
from pathlib import Path

import pytest


def _reload_config_manager(tmp_path, monkeypatch):
    state_dir = tmp_path / "state"
    monkeypatch.setenv("DISPOSABLE_CAMERA_STATE_DIR", str(state_dir))

    import disposable_camera.core.paths as paths_module
    paths_module = importlib.reload(paths_module)
    sys.modules['disposable_camera.core.paths'] = paths_module

    import disposable_camera.core.config_manager as config_module
    config_module = importlib.reload(config_module)
    sys.modules['disposable_camera.core.config_manager'] = config_module
    return config_module


@pytest.fixture()
def config_env(tmp_path, monkeypatch):
    module = _reload_config_manager(tmp_path, monkeypatch)
    manager = module.ConfigManager()
    yield manager
    # Restore module state for later tests
    monkeypatch.undo()
    _reload_config_manager_back()


def _reload_config_manager_back():
    import disposable_camera.core.paths as paths_module
    importlib.reload(paths_module)
    import disposable_camera.core.config_manager as config_module
    importlib.reload(config_module)


def _force_permission_error(config_path: Path, monkeypatch):
    original_open = builtins.open

    def fake_open(path, mode='r', *args, **kwargs):
        if Path(path) == config_path and 'w' in mode and 'r' not in mode:
            raise PermissionError("mock permission denied")
        return original_open(path, mode, *args, **kwargs)

    monkeypatch.setattr('builtins.open', fake_open)
    return original_open


def test_override_dir_follows_state_env(tmp_path, config_env):
    override_path = config_env._resolve_override_path(tmp_path / "camera.txt")
    assert str(override_path).startswith(str(tmp_path / "state"))


def test_write_config_creates_missing_file(tmp_path, config_env):
    config_path = tmp_path / "nested" / "session.txt"

    assert config_env.write_config(config_path, {'remainingShots': 24, 'sessionName': 'Trip'}) is True

    assert config_env.read_config(config_path) == {'remainingShots': '24', 'sessionName': 'Trip'}


def test_write_config_preserves_comments(tmp_path, config_env):
    config_path = tmp_path / "camera.txt"
    config_path.write_text("# camera settings\nfilter.preset = matte\n", encoding='utf-8')

    config_env.write_config(config_path, {'filter.preset': 'vivid'})

    text = config_path.read_text(encoding='utf-8')
    assert text.startswith("# camera settings\n")
    assert "filter.preset = vivid" in text


def test_values_with_hash_are_quoted(tmp_path, config_env):
    config_path = tmp_path / "session.txt"

    config_env.write_config(config_path, {'sessionName': 'Trip #2', 'other': '"quoted"'})

    merged = config_env.read_config(config_path)
    assert merged['sessionName'] == 'Trip #2'
    assert merged['other'] == '"quoted"'


def test_newlines_are_flattened(tmp_path, config_env):
    config_path = tmp_path / "session.txt"

    config_env.write_config(config_path, {'sessionName': 'Two\nLines'})

    assert config_env.read_config(config_path)['sessionName'] == 'Two Lines'


def test_remove_keys(tmp_path, config_env):
    config_path = tmp_path / "session.txt"
    config_path.write_text("# state\nremainingShots = 5\nsessionAlbumIdentifier = album-1\n", encoding='utf-8')

    assert config_env.remove_keys(config_path, ['sessionAlbumIdentifier']) is True

    text = config_path.read_text(encoding='utf-8')
    assert "sessionAlbumIdentifier" not in text
    assert "# state" in text
    assert "remainingShots = 5" in text


def test_write_config_falls_back_to_override(tmp_path, monkeypatch, config_env):
    config_path = tmp_path / "camera.txt"
    config_path.write_text("capture.flash_enabled = true\n", encoding='utf-8')

    original_open = _force_permission_error(config_path, monkeypatch)

    result = config_env.write_config(config_path, {'capture.flash_enabled': False, 'output.jpeg_quality': 80})
    assert result is True

    override_path = config_env._resolve_override_path(config_path)
    assert override_path.exists()

    # Base file remains unchanged because write was redirected to override
    assert "capture.flash_enabled = true" in config_path.read_text(encoding='utf-8')

    merged = config_env.read_config(config_path)
    assert merged['capture.flash_enabled'] == 'false'
    assert merged['output.jpeg_quality'] == '80'

    monkeypatch.setattr('builtins.open', original_open, raising=False)


def test_successful_write_removes_override(tmp_path, monkeypatch, config_env):
    config_path = tmp_path / "camera.txt"
    config_path.write_text("capture.flash_enabled = true\n", encoding='utf-8')

    original_open = _force_permission_error(config_path, monkeypatch)
    assert config_env.write_config(config_path, {'capture.flash_enabled': False}) is True

    override_path = config_env._resolve_override_path(config_path)
    assert override_path.exists()

    # Allow writes again and ensure override is removed after sync write
    monkeypatch.setattr('builtins.open', original_open, raising=False)
    assert config_env.write_config(config_path, {'capture.flash_enabled': True}) is True
    assert not override_path.exists()


@pytest.mark.asyncio
async def test_async_round_trip(tmp_path, config_env):
    config_path = tmp_path / "camera.txt"

    assert await config_env.write_config_async(config_path, {'filter.preset': 'vivid'}) is True
    assert await config_env.write_config_async(config_path, {'output.jpeg_quality': 85}) is True

    merged = await config_env.read_config_async(config_path)
    assert merged == {'filter.preset': 'vivid', 'output.jpeg_quality': '85'}
