import pytest

from bytetail.config import DEFAULT_BUFFER_SIZE, DEFAULT_POLL_DELAY, TailConfig, load_config


def test_defaults():
    cfg = TailConfig()
    assert cfg.poll_delay == DEFAULT_POLL_DELAY == 1.0
    assert cfg.buffer_size == DEFAULT_BUFFER_SIZE == 4096
    assert cfg.start_at_end is False
    assert cfg.reopen_each_cycle is False


def test_config_is_immutable():
    cfg = TailConfig()
    with pytest.raises(Exception):
        cfg.poll_delay = 2.0  # type: ignore[misc]


@pytest.mark.parametrize("kwargs", [{"poll_delay": -1}, {"buffer_size": 0}, {"buffer_size": -4}, {"buffer_size": 1.5}])
def test_invalid_values_rejected(kwargs):
    with pytest.raises(ValueError):
        TailConfig(**kwargs)


def test_from_mapping_converts_and_rejects_unknown():
    cfg = TailConfig.from_mapping({"poll_delay": 1, "buffer_size": "512", "start_at_end": True})
    assert cfg == TailConfig(poll_delay=1.0, buffer_size=512, start_at_end=True)
    with pytest.raises(ValueError, match="unknown tail option"):
        TailConfig.from_mapping({"delay": 1})
    with pytest.raises(ValueError):
        TailConfig.from_mapping({"reopen_each_cycle": "yes"})


def test_load_config_reads_tail_table(tmp_path):
    path = tmp_path / "tail.toml"
    path.write_text(
        "[tail]\npoll_delay = 0.25\nbuffer_size = 8192\nreopen_each_cycle = true\n\n[other]\nignored = 1\n",
        encoding="utf-8",
    )
    cfg = load_config(path)
    assert cfg == TailConfig(poll_delay=0.25, buffer_size=8192, reopen_each_cycle=True)


def test_load_config_without_table_gives_defaults(tmp_path):
    path = tmp_path / "empty.toml"
    path.write_text("title = 'nothing here'\n", encoding="utf-8")
    assert load_config(str(path)) == TailConfig()


def test_load_config_rejects_non_table(tmp_path):
    path = tmp_path / "bad.toml"
    path.write_text("tail = 3\n", encoding="utf-8")
    with pytest.raises(ValueError):
        load_config(path)


@pytest.mark.parametrize(
    "body",
    [
        "buffer_size = 1.5\n",
        "poll_delay = true\n",
        "buffer_size = false\n",
        "buffer_size = \"lots\"\n",
        "poll_delay = [1]\n",
    ],
)
def test_load_config_rejects_values_that_would_be_truncated(tmp_path, body):
    path = tmp_path / "tail.toml"
    path.write_text("[tail]\n" + body, encoding="utf-8")
    with pytest.raises(ValueError):
        load_config(path)


def test_load_config_accepts_whole_float_buffer_size(tmp_path):
    path = tmp_path / "tail.toml"
    path.write_text("[tail]\nbuffer_size = 1024.0\npoll_delay = 2\n", encoding="utf-8")
    cfg = load_config(path)
    assert cfg.buffer_size == 1024 and type(cfg.buffer_size) is int
    assert cfg.poll_delay == 2.0 and type(cfg.poll_delay) is float
