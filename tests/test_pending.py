"""Tests for the pending-operation tracker and status poller."""

import pytest

from conftest import FakeClient
from ava_shell.errors import NodeRequestError
from ava_shell.pending import (
    OperationState,
    PendingOperationTracker,
    StatusPoller,
)


class TestTracker:
    def test_add_and_list_in_order(self):
        tracker = PendingOperationTracker()
        tracker.add("b")
        tracker.add("a")
        ops = tracker.list()
        assert [op.id for op in ops] == ["b", "a"]
        assert all(op.state is OperationState.PROCESSING for op in ops)
        assert ops[0].submitted_at.tzinfo is not None

    def test_get(self):
        tracker = PendingOperationTracker()
        tracker.add("tx")
        assert tracker.get("tx").id == "tx"
        assert tracker.get("other") is None

    def test_settle_notifies_once(self):
        tracker = PendingOperationTracker()
        seen = []
        tracker.set_callback(lambda op_id, state: seen.append((op_id, state)))
        tracker.add("tx")

        assert tracker.settle("tx", OperationState.ACCEPTED) is True
        assert tracker.settle("tx", OperationState.FAILED) is False
        assert seen == [("tx", OperationState.ACCEPTED)]
        assert tracker.get("tx").state is OperationState.ACCEPTED
        assert tracker.processing() == []

    def test_settle_unknown_id(self):
        tracker = PendingOperationTracker()
        assert tracker.settle("ghost", OperationState.ACCEPTED) is False

    def test_settle_requires_terminal_state(self):
        tracker = PendingOperationTracker()
        tracker.add("tx")
        with pytest.raises(ValueError):
            tracker.settle("tx", OperationState.PROCESSING)

    def test_callback_replaced(self):
        tracker = PendingOperationTracker()
        first, second = [], []
        tracker.set_callback(lambda op_id, state: first.append(op_id))
        tracker.set_callback(lambda op_id, state: second.append(op_id))
        tracker.add("tx")
        tracker.settle("tx", OperationState.FAILED)
        assert first == []
        assert second == ["tx"]

    def test_settle_without_callback(self):
        tracker = PendingOperationTracker()
        tracker.add("tx")
        assert tracker.settle("tx", OperationState.ACCEPTED) is True

    def test_re_adding_a_settled_id_does_not_notify_again(self):
        tracker = PendingOperationTracker()
        seen = []
        tracker.set_callback(lambda op_id, state: seen.append(op_id))

        first = tracker.add("tx-1")
        tracker.settle("tx-1", OperationState.ACCEPTED)
        again = tracker.add("tx-1")
        assert again is first
        assert again.state is OperationState.ACCEPTED
        assert tracker.settle("tx-1", OperationState.ACCEPTED) is False

        assert seen == ["tx-1"]
        assert len(tracker.list()) == 1

    def test_failing_callback_does_not_escape_settle(self):
        tracker = PendingOperationTracker()

        def broken(op_id, state):
            raise RuntimeError("console gone")

        tracker.set_callback(broken)
        tracker.add("tx")
        assert tracker.settle("tx", OperationState.ACCEPTED) is True
        assert tracker.get("tx").state is OperationState.ACCEPTED


class TestStatusPoller:
    def test_poll_once_settles_terminal_statuses(self):
        tracker = PendingOperationTracker()
        for op_id in ("a", "b", "c"):
            tracker.add(op_id)
        client = FakeClient()
        client.statuses = {"a": "Accepted", "b": "Rejected", "c": "Processing"}
        seen = []
        tracker.set_callback(lambda op_id, state: seen.append((op_id, state)))

        assert StatusPoller(tracker, client).poll_once() == 2
        assert seen == [("a", OperationState.ACCEPTED), ("b", OperationState.FAILED)]
        assert [op.id for op in tracker.processing()] == ["c"]

    def test_client_errors_are_retried_next_tick(self):
        tracker = PendingOperationTracker()
        tracker.add("a")
        client = FakeClient()
        client.statuses = {"a": NodeRequestError("avm.getTxStatus", "timeout")}
        poller = StatusPoller(tracker, client)

        assert poller.poll_once() == 0
        client.statuses = {"a": "Accepted"}
        assert poller.poll_once() == 1

    def test_failing_callback_keeps_poller_settling(self):
        tracker = PendingOperationTracker()
        tracker.add("a")
        tracker.add("b")
        client = FakeClient()
        client.statuses = {"a": "Accepted", "b": "Rejected"}
        seen = []

        def notify(op_id, state):
            seen.append(op_id)
            if op_id == "a":
                raise RuntimeError("console gone")

        tracker.set_callback(notify)
        assert StatusPoller(tracker, client).poll_once() == 2
        assert seen == ["a", "b"]
        assert tracker.processing() == []

    def test_settled_operations_are_not_polled(self):
        tracker = PendingOperationTracker()
        tracker.add("a")
        tracker.settle("a", OperationState.ACCEPTED)
        client = FakeClient()
        client.statuses = {"a": RuntimeError("must not be asked")}
        assert StatusPoller(tracker, client).poll_once() == 0

    def test_thread_stops(self):
        poller = StatusPoller(PendingOperationTracker(), FakeClient(), interval=0.01)
        poller.start()
        poller.stop()
        poller.join(timeout=2)
        assert not poller.is_alive()
