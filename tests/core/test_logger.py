import inspect
import json
import sys
from uuid import uuid4

import pytest


def _flush_loguru(logger_module) -> None:
    complete_result = logger_module.logger.complete()
    if inspect.isawaitable(complete_result):
        iterator = complete_result.__await__()
        while True:
            try:
                next(iterator)
            except StopIteration:
                break


def _latest_log_file(log_dir, pattern):
    files = sorted(log_dir.glob(pattern))
    assert files, f"missing log file pattern: {pattern}"
    return files[-1]


_KEYS = (
    "log_level",
    "log_path",
    "log_retention_days",
    "log_console_enabled",
    "log_file_enabled",
)


@pytest.fixture()
def configured_logger(tmp_path):
    from simbridge.core.config import settings
    import simbridge.core.logger as logger_module

    original = {key: getattr(settings, key) for key in _KEYS}

    settings.log_level = "INFO"
    settings.log_path = str(tmp_path)
    settings.log_retention_days = 3
    settings.log_console_enabled = False
    settings.log_file_enabled = True
    logger_module.setup_logger(force=True)

    try:
        yield logger_module, tmp_path
    finally:
        for key, value in original.items():
            setattr(settings, key, value)
        logger_module.setup_logger(force=True)


def test_file_output_written(configured_logger):
    logger_module, log_dir = configured_logger
    message = f"file-output-{uuid4()}"

    logger_module.logger.info(message)
    _flush_loguru(logger_module)

    app_log_path = _latest_log_file(log_dir, "app_*.log")
    content = app_log_path.read_text(encoding="utf-8")
    assert message in content


def test_error_log_only_receives_errors(configured_logger):
    logger_module, log_dir = configured_logger
    info_message = f"info-{uuid4()}"
    error_message = f"error-{uuid4()}"

    logger_module.logger.info(info_message)
    logger_module.logger.error(error_message)
    _flush_loguru(logger_module)

    content = _latest_log_file(log_dir, "error_*.log").read_text(encoding="utf-8")
    assert error_message in content
    assert info_message not in content


def test_setup_logger_idempotent_when_forced_twice(configured_logger):
    logger_module, log_dir = configured_logger
    message = f"idempotent-{uuid4()}"

    logger_module.setup_logger(force=True)
    logger_module.setup_logger(force=True)
    logger_module.logger.info(message)
    _flush_loguru(logger_module)

    app_log_path = _latest_log_file(log_dir, "app_*.log")
    records = [
        json.loads(line)
        for line in app_log_path.read_text(encoding="utf-8").splitlines()
        if line.strip()
    ]
    matched = [r for r in records if r["record"]["message"] == message]
    assert len(matched) == 1


def test_setup_logger_without_force_keeps_sinks(configured_logger, tmp_path_factory):
    from simbridge.core.config import settings

    logger_module, log_dir = configured_logger
    settings.log_path = str(tmp_path_factory.mktemp("other"))

    # 未强制时不重新配置，仍写入原目录
    logger_module.setup_logger()
    message = f"no-force-{uuid4()}"
    logger_module.logger.info(message)
    _flush_loguru(logger_module)

    content = _latest_log_file(log_dir, "app_*.log").read_text(encoding="utf-8")
    assert message in content


def test_console_sink_degrades_when_std_streams_missing(tmp_path, monkeypatch):
    from simbridge.core.config import settings
    import simbridge.core.logger as logger_module

    original = {key: getattr(settings, key) for key in _KEYS}

    monkeypatch.setattr(sys, "stdout", None, raising=False)
    monkeypatch.setattr(sys, "stderr", None, raising=False)
    monkeypatch.setattr(sys, "__stdout__", None, raising=False)
    monkeypatch.setattr(sys, "__stderr__", None, raising=False)

    settings.log_level = "INFO"
    settings.log_path = str(tmp_path)
    settings.log_console_enabled = True
    settings.log_file_enabled = True

    try:
        logger_module.setup_logger(force=True)
        message = f"windowed-log-{uuid4()}"
        logger_module.logger.info(message)
        _flush_loguru(logger_module)

        app_log_path = _latest_log_file(tmp_path, "app_*.log")
        content = app_log_path.read_text(encoding="utf-8")
        assert message in content
        assert "未检测到可用控制台输出流" in content
    finally:
        monkeypatch.undo()
        for key, value in original.items():
            setattr(settings, key, value)
        logger_module.setup_logger(force=True)
