import numpy as np
import pytest

import quickrecap.state as state_module
from quickrecap.errors import AudioFormatError, ModelLoadError, RecorderError
from quickrecap.state import WhisperState


class FakeContext:
    def __init__(self, text='hello there'):
        self.text = text
        self.samples = None

    def transcribe(self, samples):
        self.samples = samples
        return self.text, []


class FakePlayer:
    def __init__(self):
        self.events = []

    def start_playback(self, path):
        self.events.append(('start', path))

    def stop_playback(self):
        self.events.append(('stop', None))


class FakeRecorder:
    def __init__(self, granted=True, fail=False):
        self.granted = granted
        self.fail = fail
        self.delegate = None
        self.output_file = None
        self.stopped = False

    def request_permission(self):
        return self.granted

    def start_recording(self, output_file, delegate=None):
        if self.fail:
            raise RecorderError('could not start recording')
        self.output_file = output_file
        self.delegate = delegate

    def stop_recording(self):
        self.stopped = True
        if self.delegate is not None:
            self.delegate.recording_finished(successfully=True)


@pytest.fixture
def samples(monkeypatch):
    loaded = []

    def fake_load(path):
        loaded.append(path)
        return np.zeros(16000, dtype=np.float32)

    monkeypatch.setattr(state_module.audio_processor, 'load_samples', fake_load)
    return loaded


def make_state(tmp_path, context=None, recorder=None, **kwargs):
    context = context or FakeContext()
    kwargs.setdefault('sample_path', None)
    return WhisperState(
        model_path='base',
        output_dir=tmp_path,
        recorder=recorder or FakeRecorder(),
        player=FakePlayer(),
        context_factory=lambda path: context,
        **kwargs,
    )


def test_model_loaded_on_init(tmp_path):
    state = make_state(tmp_path)
    assert state.message_log.value == 'Loading model...\nLoaded model base\n'
    assert state.can_transcribe.value is True
    assert state.is_model_loaded.value is True


def test_model_load_failure_is_logged(tmp_path):
    def broken(path):
        raise ModelLoadError('Could not load Whisper model base')

    state = WhisperState(
        model_path='base',
        sample_path=None,
        recorder=FakeRecorder(),
        player=FakePlayer(),
        context_factory=broken,
    )
    assert 'Could not load Whisper model base' in state.message_log.value
    assert state.can_transcribe.value is False
    assert state.transcribe_audio(tmp_path / 'x.wav') is None


def test_missing_model_path(tmp_path):
    state = WhisperState(
        model_path=None, sample_path=None, recorder=FakeRecorder(), player=FakePlayer()
    )
    assert state.message_log.value.endswith('Could not locate model\n')
    assert state.can_transcribe.value is False


def test_transcribe_audio_publishes_text(tmp_path, samples):
    context = FakeContext('ask not')
    state = make_state(tmp_path, context=context)
    seen = []
    state.nearest_transcription.subscribe(seen.append)

    future = state.transcribe_audio(tmp_path / 'clip.wav')
    assert future.result(timeout=5) == 'ask not'

    assert seen == [None, 'ask not']
    assert context.samples is not None
    assert state.can_transcribe.value is True
    log = state.message_log.value
    assert 'Reading wave samples...\nTranscribing data...\nDone: ask not\n' in log
    assert state.player.events[0] == ('stop', None)
    assert state.player.events[1] == ('start', tmp_path / 'clip.wav')
    assert state.player.events[-1] == ('stop', None)
    state.close()


def test_transcribe_audio_without_playback(tmp_path, samples):
    state = make_state(tmp_path, playback=False)
    state.transcribe_audio(tmp_path / 'clip.wav').result(timeout=5)
    assert ('start', tmp_path / 'clip.wav') not in state.player.events
    state.close()


def test_transcribe_audio_ignored_while_busy(tmp_path):
    state = make_state(tmp_path)
    state.can_transcribe.accept(False)
    assert state.transcribe_audio(tmp_path / 'clip.wav') is None


def test_transcribe_audio_error_restores_state(tmp_path, monkeypatch):
    def bad_load(path):
        raise AudioFormatError('Expected 16000 Hz audio')

    monkeypatch.setattr(state_module.audio_processor, 'load_samples', bad_load)
    state = make_state(tmp_path)
    assert state.transcribe_audio(tmp_path / 'clip.wav').result(timeout=5) is None
    assert 'Expected 16000 Hz audio' in state.message_log.value
    assert state.can_transcribe.value is True
    assert state.nearest_transcription.value is None
    assert state.progress.value is None
    state.close()


def test_transcribe_sample_missing(tmp_path):
    state = make_state(tmp_path, sample_path=tmp_path / 'missing.wav')
    assert state.transcribe_sample() is None
    assert state.message_log.value.endswith('Could not locate sample\n')


def test_transcribe_sample(tmp_path, samples):
    sample = tmp_path / 'jfk.wav'
    sample.write_bytes(b'')
    state = make_state(tmp_path, sample_path=sample)
    assert state.transcribe_sample().result(timeout=5) == 'hello there'
    assert samples == [str(sample)]
    state.close()


def test_toggle_record_round_trip(tmp_path, samples):
    recorder = FakeRecorder()
    state = make_state(tmp_path, recorder=recorder)
    progress = []
    state.progress.subscribe(progress.append)

    assert state.toggle_record() is None
    assert state.is_recording.value is True
    assert recorder.output_file == tmp_path / 'output.wav'
    assert state.recorded_file == tmp_path / 'output.wav'

    future = state.toggle_record()
    assert recorder.stopped
    assert state.is_recording.value is False
    assert future.result(timeout=5) == 'hello there'
    assert samples == [str(tmp_path / 'output.wav')]
    assert progress == [None, 'Transcribing...', None]
    state.close()


def test_toggle_record_permission_denied(tmp_path):
    state = make_state(tmp_path, recorder=FakeRecorder(granted=False))
    state.toggle_record()
    assert state.is_recording.value is False
    assert state.message_log.value.endswith('Recording permission denied\n')


def test_toggle_record_start_failure(tmp_path):
    state = make_state(tmp_path, recorder=FakeRecorder(fail=True))
    state.toggle_record()
    assert state.is_recording.value is False
    assert state.recorded_file is None
    assert state.message_log.value.endswith('could not start recording\n')


def test_recording_error_delegate(tmp_path):
    state = make_state(tmp_path)
    state.toggle_record()
    state.recording_error(RecorderError('could not write audio: disk full'))
    assert state.is_recording.value is False
    assert 'disk full' in state.message_log.value
