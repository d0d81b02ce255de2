from bytetail.config import TailConfig

from conftest import append


def test_append_to_empty_file_delivers_one_chunk_then_eof(log_path, recorder, run_engine):
    log_path.write_bytes(b"")
    cfg = TailConfig(poll_delay=0.05)
    engine, script = run_engine(log_path, recorder, cfg, lambda e: append(log_path, b"abc"))

    assert recorder.events[0] == ("init",)
    assert recorder.kinds() == ["data", "eof"]
    assert recorder.chunks == [b"abc"]
    assert engine.position == 3
    # Every wait uses the configured delay
    assert script.delays and all(d == 0.05 for d in script.delays)


def test_sequence_of_appends_is_delivered_exactly_once(log_path, recorder, run_engine):
    log_path.write_bytes(b"first\n")
    pieces = [b"second\n", b"third", b" continued\n", b"", b"fourth\n"]
    actions = [lambda e, p=p: append(log_path, p) for p in pieces]
    engine, _ = run_engine(log_path, recorder, TailConfig(poll_delay=0.01), *actions)

    assert recorder.data == b"first\n" + b"".join(pieces)
    assert engine.position == len(recorder.data)
    assert not recorder.errors


def test_chunks_respect_buffer_size_and_eof_fires_once_per_drain(log_path, recorder, run_engine):
    log_path.write_bytes(b"0123456789")
    engine, _ = run_engine(
        log_path,
        recorder,
        TailConfig(poll_delay=0.01, buffer_size=4),
        lambda e: append(log_path, b"abcde"),
    )
    assert recorder.kinds() == ["data", "data", "data", "eof", "data", "data", "eof"]
    assert recorder.chunks == [b"0123", b"4567", b"89", b"abcd", b"e"]
    assert all(len(c) <= 4 for c in recorder.chunks)
    assert engine.stats.drains == 2
    assert engine.stats.bytes_delivered == 15


def test_start_at_end_skips_existing_content(log_path, recorder, run_engine):
    log_path.write_bytes(b"old content\n")
    engine, _ = run_engine(
        log_path,
        recorder,
        TailConfig(poll_delay=0.01, start_at_end=True),
        lambda e: append(log_path, b"new\n"),
    )
    assert recorder.data == b"new\n"
    assert engine.position == len(b"old content\nnew\n")


def test_drain_stops_at_length_observed_before_reading(log_path, run_engine):
    from conftest import RecordingListener

    class GrowingWhileRead(RecordingListener):
        grown = False

        def handle(self, data):
            super().handle(data)
            if not self.grown:
                self.grown = True
                append(log_path, b"XYZ")
                # The write landed past the observed length: not part of this drain
                assert self.engine.position <= 8

    log_path.write_bytes(b"abcdefgh")
    listener = GrowingWhileRead()
    run_engine(log_path, listener, TailConfig(poll_delay=0.01, buffer_size=4), lambda e: None)

    assert listener.kinds() == ["data", "data", "eof", "data", "eof"]
    assert listener.chunks == [b"abcd", b"efgh", b"XYZ"]


def test_idle_file_produces_no_notifications(log_path, recorder, run_engine):
    log_path.write_bytes(b"")
    run_engine(log_path, recorder, TailConfig(poll_delay=0.01), lambda e: None, lambda e: None)
    assert recorder.kinds() == []
