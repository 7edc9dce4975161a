import sys
import types

import numpy as np
import pytest
import soundfile as sf

from quickrecap.player import AudioPlayer


@pytest.fixture
def sd(monkeypatch):
    module = types.ModuleType('sounddevice')
    module.played = []
    module.stopped = []
    module.play = lambda data, rate: module.played.append((len(data), rate))
    module.stop = lambda: module.stopped.append(True)
    monkeypatch.setitem(sys.modules, 'sounddevice', module)
    return module


def test_start_and_stop_playback(tmp_path, sd):
    path = tmp_path / 'clip.wav'
    sf.write(str(path), np.zeros(800, dtype=np.int16), 16000, subtype='PCM_16')

    player = AudioPlayer()
    player.start_playback(path)
    assert player.is_playing
    assert sd.played == [(800, 16000)]

    player.stop_playback()
    player.stop_playback()
    assert not player.is_playing
    assert sd.stopped == [True]


def test_unreadable_file_raises(tmp_path, sd):
    path = tmp_path / 'broken.wav'
    path.write_bytes(b'not audio')
    with pytest.raises(RuntimeError):
        AudioPlayer().start_playback(path)
    assert sd.played == []
