import fcntl
import json

import pytest

from simbridge.core.constants import DeviceClass
from simbridge.core.errors import ChannelBusy, ResultFileNotFound, ResultParseError
from simbridge.modules.bridge.channel import Channel, channel_paths
from simbridge.modules.bridge.types import Action, BatchExecutionResult, ExecutionResult, Transaction


def _txn():
    return Transaction.single("com.example.app", Action.create("click", identifier="login"))


def test_channel_paths_are_separate_per_device_class(tmp_path):
    primary = channel_paths(DeviceClass.PRIMARY, str(tmp_path))
    unknown = channel_paths(DeviceClass.UNKNOWN, str(tmp_path))
    wearable = channel_paths(DeviceClass.WEARABLE, str(tmp_path))

    assert primary == unknown
    assert primary.command_file != wearable.command_file
    assert primary.result_file != wearable.result_file
    assert primary.lock_file != wearable.lock_file
    assert "watch" in wearable.command_file


def test_write_produces_indented_json_without_temp_leftovers(tmp_path):
    channel = Channel.for_class(DeviceClass.PRIMARY, str(tmp_path), lock_timeout=1)

    channel.write(_txn())

    text = channel.command_path.read_text(encoding="utf-8")
    assert json.loads(text) == {
        "bundleId": "com.example.app",
        "action": "click",
        "identifier": "login",
        "timeout": 10,
    }
    assert '\n  "bundleId"' in text
    assert not list(tmp_path.glob("*.tmp"))


def test_read_single_and_batch_results(tmp_path):
    channel = Channel.for_class(DeviceClass.PRIMARY, str(tmp_path), lock_timeout=1)

    channel.result_path.write_text('{"success": true, "message": "ok"}', encoding="utf-8")
    assert isinstance(channel.read(), ExecutionResult)

    channel.result_path.write_text('{"success": true, "message": "ok", "results": []}', encoding="utf-8")
    assert isinstance(channel.read(batch=True), BatchExecutionResult)


def test_read_missing_result_raises(tmp_path):
    channel = Channel.for_class(DeviceClass.PRIMARY, str(tmp_path), lock_timeout=1)

    assert channel.has_result() is False
    with pytest.raises(ResultFileNotFound):
        channel.read()


@pytest.mark.parametrize(
    "raw",
    [
        b"{not json",
        b'{"message": "no success flag"}',
        b'{"success": true, "message": "\xff\xfe"}',
    ],
)
def test_read_malformed_result_raises(tmp_path, raw):
    channel = Channel.for_class(DeviceClass.PRIMARY, str(tmp_path), lock_timeout=1)
    channel.result_path.write_bytes(raw)

    with pytest.raises(ResultParseError):
        channel.read()


def test_open_removes_stale_files_and_cleans_up_on_error(tmp_path):
    channel = Channel.for_class(DeviceClass.PRIMARY, str(tmp_path), lock_timeout=1)
    channel.command_path.write_text("stale", encoding="utf-8")
    channel.result_path.write_text("stale", encoding="utf-8")

    with pytest.raises(RuntimeError):
        with channel.open() as opened:
            assert not channel.command_path.exists()
            assert not channel.result_path.exists()
            opened.write(_txn())
            channel.result_path.write_text('{"success": true, "message": "ok"}', encoding="utf-8")
            raise RuntimeError("boom")

    assert not channel.command_path.exists()
    assert not channel.result_path.exists()


def test_open_times_out_when_lock_is_held(tmp_path):
    channel = Channel.for_class(DeviceClass.WEARABLE, str(tmp_path), lock_timeout=0.1)

    with open(channel.paths.lock_file, "a+") as holder:
        fcntl.flock(holder, fcntl.LOCK_EX | fcntl.LOCK_NB)
        try:
            with pytest.raises(ChannelBusy):
                with channel.open():
                    pass
        finally:
            fcntl.flock(holder, fcntl.LOCK_UN)

    with channel.open():
        pass


def test_primary_and_wearable_channels_do_not_block_each_other(tmp_path):
    primary = Channel.for_class(DeviceClass.PRIMARY, str(tmp_path), lock_timeout=0.1)
    wearable = Channel.for_class(DeviceClass.WEARABLE, str(tmp_path), lock_timeout=0.1)

    with primary.open():
        with wearable.open():
            pass
