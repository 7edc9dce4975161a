import quickrecap.cli as cli


def test_transcribe_command(monkeypatch, tmp_path, capsys):
    seen = {}

    def fake_process(path, output_dir=None):
        seen.update(path=path, output_dir=output_dir)
        return {'transcript': 'hello', 'summary': 'short\n', 'files': {}}

    monkeypatch.setattr(cli.tasks, 'process_audio', fake_process)
    assert cli.main(['transcribe', 'memo.wav', '-o', str(tmp_path)]) == 0
    out = capsys.readouterr().out
    assert 'hello' in out
    assert 'Summary:\nshort' in out
    assert seen == {'path': 'memo.wav', 'output_dir': str(tmp_path)}


def test_summarize_command_nothing_to_do(monkeypatch, capsys):
    monkeypatch.setattr(cli.tasks, 'process_transcript', lambda path: None)
    assert cli.main(['summarize', 'empty.txt']) == 1
    assert 'Nothing to summarise' in capsys.readouterr().err
