import subprocess
from types import SimpleNamespace

import pytest

from simbridge.core.config import Settings
from simbridge.core.constants import DeviceClass, OutcomeStatus
from simbridge.core.errors import BuildToolError
from simbridge.modules.device import xcodebuild as xcodebuild_module
from simbridge.modules.device.platform import profile_for
from simbridge.modules.device.xcodebuild import BuildToolTimeout, RunOutcome, Xcodebuild


UDID = "11111111-1111-1111-1111-111111111111"


@pytest.mark.parametrize(
    ("code", "status"),
    [
        (0, OutcomeStatus.OK),
        (70, OutcomeStatus.ENV_MISMATCH),
        (65, OutcomeStatus.FAILED),
        (1, OutcomeStatus.FAILED),
    ],
)
def test_outcome_status_from_returncode(code, status):
    outcome = RunOutcome.from_returncode(code)

    assert outcome.status == status
    assert outcome.ok is (code == 0)


def test_profiles_per_device_class():
    cfg = Settings(bridge_wearable_scheme="Demo Watch", bridge_primary_scheme="Demo")

    wearable = profile_for(DeviceClass.WEARABLE, cfg)
    primary = profile_for(DeviceClass.PRIMARY, cfg)
    unknown = profile_for(DeviceClass.UNKNOWN, cfg)

    assert wearable.destination_arg(UDID) == f"platform=watchOS Simulator,id={UDID}"
    assert wearable.artifact_pattern == "watchsimulator"
    assert wearable.scheme == "Demo Watch"
    assert primary.destination_arg(UDID) == f"platform=iOS Simulator,id={UDID}"
    assert primary.artifact_pattern == "iphonesimulator"
    assert unknown.destination == primary.destination
    assert unknown.scheme == "Demo"


@pytest.fixture()
def recorded_runs(monkeypatch):
    calls = []

    def _fake_run(cmd, **kwargs):
        calls.append((cmd, kwargs))
        return SimpleNamespace(returncode=70, stdout=b"out", stderr=b"err")

    monkeypatch.setattr(xcodebuild_module.subprocess, "run", _fake_run)
    return calls


def test_test_without_building_arguments(recorded_runs):
    profile = profile_for(DeviceClass.PRIMARY)

    outcome = Xcodebuild("/usr/bin/xcodebuild").test_without_building("/dd/App.xctestrun", UDID, profile, 60)

    cmd, kwargs = recorded_runs[0]
    assert cmd[:4] == ["/usr/bin/xcodebuild", "test-without-building", "-xctestrun", "/dd/App.xctestrun"]
    assert f"platform=iOS Simulator,id={UDID}" in cmd
    assert f"-only-testing:{profile.test_target}" in cmd
    assert cmd[-3:] == ["-parallel-testing-enabled", "NO", "-disable-concurrent-destination-testing"]
    assert kwargs["timeout"] == 60
    assert outcome.status == OutcomeStatus.ENV_MISMATCH
    assert outcome.stdout == "out"
    assert outcome.stderr == "err"


def test_build_for_testing_arguments(recorded_runs):
    profile = profile_for(DeviceClass.WEARABLE)

    Xcodebuild("xcodebuild").build_for_testing("/src/App.xcodeproj", UDID, profile, 300)

    cmd, kwargs = recorded_runs[0]
    assert cmd[:4] == ["xcodebuild", "build-for-testing", "-project", "/src/App.xcodeproj"]
    assert cmd[cmd.index("-scheme") + 1] == profile.scheme
    assert cmd[cmd.index("-destination") + 1] == f"platform=watchOS Simulator,id={UDID}"
    assert cmd[-2:] == ["-configuration", "Debug"]
    assert kwargs["timeout"] == 300


def test_timeout_raises_build_tool_timeout(monkeypatch):
    def _slow(cmd, **kwargs):
        raise subprocess.TimeoutExpired(cmd, kwargs["timeout"])

    monkeypatch.setattr(xcodebuild_module.subprocess, "run", _slow)

    with pytest.raises(BuildToolTimeout) as exc_info:
        Xcodebuild().test_without_building("/x.xctestrun", UDID, profile_for(DeviceClass.PRIMARY), 5)
    assert exc_info.value.timeout == 5


def test_missing_executable_raises_build_tool_error(monkeypatch):
    def _missing(cmd, **kwargs):
        raise FileNotFoundError(cmd[0])

    monkeypatch.setattr(xcodebuild_module.subprocess, "run", _missing)

    with pytest.raises(BuildToolError):
        Xcodebuild("/nope").build_for_testing("/p", UDID, profile_for(DeviceClass.PRIMARY), 300)
