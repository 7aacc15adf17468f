import asyncio
import copy
import logging

import pytest

import animewatcher.cli as cli
from animewatcher.config.loader import ConfigError, DEFAULT_CONFIG


def _config(tmp_path, **overrides) -> dict:
    config = copy.deepcopy(DEFAULT_CONFIG)
    config['download_dir'] = str(tmp_path)
    config['logging']['file'] = str(tmp_path / "logs" / "animewatcher.log")
    config.update(overrides)
    return config


@pytest.fixture
def all_tools(monkeypatch):
    """Pretend every external executable is installed."""
    monkeypatch.setattr(cli, "find_executable", lambda name: f"/usr/bin/{name}")


@pytest.fixture
def restore_logging():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers = handlers
    root.setLevel(level)
    logging.getLogger('httpx').setLevel(logging.NOTSET)
    logging.getLogger('httpcore').setLevel(logging.NOTSET)


def test_create_parser_includes_flags():
    args = cli.create_parser().parse_args(
        ["-m", "dub", "-q", "720", "-d", "/tmp/anime", "-D", "-p", "vlc", "-l", "3"]
    )

    assert args.mode == "dub"
    assert args.quality == "720"
    assert args.download_dir == "/tmp/anime"
    assert args.download is True
    assert args.player == "vlc"
    assert args.log == 3


def test_parser_rejects_unknown_log_level():
    with pytest.raises(SystemExit):
        cli.create_parser().parse_args(["-l", "9"])


def test_apply_overrides_only_touches_given_flags(tmp_path):
    config = _config(tmp_path, player="mpv")
    args = cli.create_parser().parse_args(["-q", "480"])

    cli.apply_overrides(config, args)

    assert config['quality'] == "480"
    assert config['mode'] == "sub"
    assert config['player'] == "mpv"
    assert config['download_mode'] is False


def test_check_environment_resolves_player(tmp_path, all_tools, monkeypatch):
    monkeypatch.setattr(cli, "resolve_player", lambda cli_player, config_player: config_player or "mpv")
    config = _config(tmp_path)

    assert cli.check_environment(config) is None
    assert config['player'] == "mpv"


def test_check_environment_invalid_mode(tmp_path, all_tools):
    assert "Invalid mode 'raw'" in cli.check_environment(_config(tmp_path, mode="raw"))


def test_check_environment_missing_download_dir(tmp_path, all_tools):
    config = _config(tmp_path, download_mode=True, download_dir=str(tmp_path / "missing"))

    assert "Download directory does not exist" in cli.check_environment(config)


def test_check_environment_missing_ytdlp(tmp_path, monkeypatch):
    monkeypatch.setattr(cli, "find_executable", lambda name: None)

    assert "yt-dlp not found in PATH" in cli.check_environment(_config(tmp_path, player="mpv"))


def test_check_environment_missing_player(tmp_path, monkeypatch):
    monkeypatch.setattr(cli, "find_executable", lambda name: None if name == "vlc" else name)

    assert cli.check_environment(_config(tmp_path, player="vlc")) == "Player 'vlc' not found in PATH"


def test_setup_logging_writes_to_file(tmp_path, restore_logging):
    config = _config(tmp_path)

    cli._setup_logging(config, verbosity=3)

    root = logging.getLogger()
    assert root.level == logging.DEBUG
    assert any(isinstance(h, logging.FileHandler) for h in root.handlers)
    assert not any(type(h) is logging.StreamHandler for h in root.handlers)
    assert logging.getLogger('httpx').level == logging.WARNING

    logging.getLogger("animewatcher.test").debug("hello log file")
    for handler in root.handlers:
        handler.flush()
    assert "hello log file" in (tmp_path / "logs" / "animewatcher.log").read_text()


def test_setup_logging_keeps_http_debug_at_highest_verbosity(tmp_path, restore_logging):
    cli._setup_logging(_config(tmp_path), verbosity=cli.HTTP_DEBUG_VERBOSITY)

    assert logging.getLogger('httpx').level == logging.NOTSET


def test_setup_logging_uses_configured_level(tmp_path, restore_logging):
    config = _config(tmp_path)
    config['logging']['level'] = 'info'

    cli._setup_logging(config)

    assert logging.getLogger().level == logging.INFO


def test_main_handles_config_error(monkeypatch):
    monkeypatch.setattr(cli, "load_config", lambda path=None: (_ for _ in ()).throw(ConfigError("bad config")))

    assert cli.main([]) == 1


def test_main_reports_environment_error(tmp_path, monkeypatch, capsys):
    monkeypatch.setattr(cli, "load_config", lambda path=None: _config(tmp_path))
    monkeypatch.setattr(cli, "find_executable", lambda name: None)

    assert cli.main([]) == 1
    assert "yt-dlp not found" in capsys.readouterr().err


def test_main_reports_validation_error(tmp_path, monkeypatch, all_tools, capsys):
    monkeypatch.setattr(cli, "load_config", lambda path=None: _config(tmp_path, history_limit=0))

    assert cli.main(["-p", "mpv"]) == 1
    assert "history_limit" in capsys.readouterr().err


def test_main_applies_overrides_and_runs_session(tmp_path, monkeypatch, all_tools):
    monkeypatch.setattr(cli, "load_config", lambda path=None: _config(tmp_path))
    monkeypatch.setattr(cli, "_setup_logging", lambda config, verbosity=None: None)
    called = {}

    async def fake_run_session(config):
        called["config"] = config
        return 0

    monkeypatch.setattr(cli, "run_session", fake_run_session)

    assert cli.main(["-m", "dub", "-D", "-p", "mpv"]) == 0
    assert called["config"]["mode"] == "dub"
    assert called["config"]["download_mode"] is True
    assert called["config"]["player"] == "mpv"


def test_main_interrupted(tmp_path, monkeypatch, all_tools):
    monkeypatch.setattr(cli, "load_config", lambda path=None: _config(tmp_path))
    monkeypatch.setattr(cli, "_setup_logging", lambda config, verbosity=None: None)

    async def interrupted(config):
        raise KeyboardInterrupt

    monkeypatch.setattr(cli, "run_session", interrupted)

    assert cli.main(["-p", "mpv"]) == 130


def test_run_session_requires_terminal(tmp_path, monkeypatch):
    class NoTerminal:
        def start(self):
            return False

    monkeypatch.setattr(cli, "KeyboardListener", NoTerminal)

    assert asyncio.run(cli.run_session(_config(tmp_path, player="mpv"))) == 1
