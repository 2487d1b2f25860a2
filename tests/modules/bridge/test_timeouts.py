import pytest

from simbridge.core.constants import ActionKind, DeviceClass
from simbridge.modules.bridge.timeouts import TimeoutPolicy
from simbridge.modules.bridge.types import Action, Transaction


@pytest.mark.parametrize(
    ("kind", "primary", "wearable"),
    [
        (ActionKind.CLICK, 60, 90),
        (ActionKind.TYPE, 75, 112.5),
        (ActionKind.QUERY, 90, 135),
        (ActionKind.SWIPE, 60, 90),
    ],
)
def test_per_kind_timeouts(kind, primary, wearable):
    policy = TimeoutPolicy(per_kind_enabled=True)

    assert policy.for_action(kind, DeviceClass.PRIMARY) == primary
    assert policy.for_action(kind, DeviceClass.UNKNOWN) == primary
    assert policy.for_action(kind, DeviceClass.WEARABLE) == wearable


def test_legacy_timeouts_when_disabled():
    policy = TimeoutPolicy(per_kind_enabled=False)

    assert policy.for_action(ActionKind.CLICK, DeviceClass.PRIMARY) == 90
    assert policy.for_action(ActionKind.QUERY, DeviceClass.PRIMARY) == 120
    assert policy.for_action(ActionKind.QUERY, DeviceClass.WEARABLE) == 180


def test_batch_timeout_scales_with_action_count():
    policy = TimeoutPolicy(per_kind_enabled=True)

    assert policy.for_batch(4, DeviceClass.PRIMARY) == 180
    assert policy.for_batch(4, DeviceClass.WEARABLE) == 270
    assert policy.for_batch(1, DeviceClass.PRIMARY) == 90


def test_for_transaction_picks_single_or_batch():
    policy = TimeoutPolicy(per_kind_enabled=True)
    single = Transaction.single("com.example.app", Action.create("type", text="x"))
    batch = Transaction.batch("com.example.app", [Action.create("click", identifier="a")] * 2)

    assert policy.for_transaction(single, DeviceClass.PRIMARY) == 75
    assert policy.for_transaction(batch, DeviceClass.PRIMARY) == 120


@pytest.mark.parametrize(("run_timeout", "expected"), [(60, 300), (150, 300), (270, 540)])
def test_rebuild_timeout(run_timeout, expected):
    assert TimeoutPolicy.for_rebuild(run_timeout) == expected
