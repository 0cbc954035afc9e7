# test_pending_buffer.py
#
# Imports
import threading
#
# Third-Party Imports
from hypothesis import given, settings, strategies as st
from hypothesis.stateful import RuleBasedStateMachine, invariant, rule
#
# Local Imports
from pathpicker_sync.Sync.pending_buffer import PendingChangeBuffer
from pathpicker_sync.Sync.records import Record
#
#######################################################################################################################
#
# Functions:

st_keys = st.sampled_from(["/a", "/b", "/c", "/d"])
st_adds = st.lists(st.tuples(st_keys, st.integers(min_value=0, max_value=10_000), st.booleans()), max_size=40)


def test_replacing_same_key_keeps_only_latest_add():
    buffer = PendingChangeBuffer()
    buffer.add(Record(key="A", timestamp=100, writer="u", selected=True))
    buffer.add(Record(key="A", timestamp=105, writer="u", selected=False))

    snapshot = buffer.drain_snapshot()
    assert len(snapshot) == 1
    assert snapshot[0].timestamp == 105
    assert snapshot[0].selected is False


def test_latest_add_wins_even_with_older_timestamp():
    buffer = PendingChangeBuffer()
    buffer.add(Record(key="A", timestamp=200, writer="u", selected=True))
    buffer.add(Record(key="A", timestamp=100, writer="u", selected=False))
    assert buffer.drain_snapshot()[0].timestamp == 100


def test_drain_snapshot_is_a_copy():
    buffer = PendingChangeBuffer()
    buffer.add(Record(key="A", timestamp=1, writer="u", selected=True))
    snapshot = buffer.drain_snapshot()
    snapshot.clear()
    assert len(buffer) == 1
    assert not buffer.is_empty()


def test_remove_processed_keeps_entries_replaced_during_a_pass():
    buffer = PendingChangeBuffer()
    a1 = Record(key="A", timestamp=1, writer="u", selected=True)
    b1 = Record(key="B", timestamp=1, writer="u", selected=True)
    buffer.add(a1)
    buffer.add(b1)
    snapshot = buffer.drain_snapshot()

    a2 = Record(key="A", timestamp=2, writer="u", selected=False)
    buffer.add(a2)

    removed = buffer.remove_processed(snapshot)
    assert removed == 1
    assert buffer.drain_snapshot() == [a2]


def test_remove_processed_matches_identity_not_equality():
    buffer = PendingChangeBuffer()
    queued = Record(key="A", timestamp=1, writer="u", selected=True)
    buffer.add(queued)
    twin = Record(key="A", timestamp=1, writer="u", selected=True)
    assert buffer.remove_processed([twin]) == 0
    assert buffer.remove_processed([queued]) == 1
    assert buffer.is_empty()


def test_clear_empties_buffer():
    buffer = PendingChangeBuffer()
    buffer.add(Record(key="A", timestamp=1, writer="u", selected=True))
    buffer.clear()
    assert buffer.is_empty()


def test_concurrent_adds_never_duplicate_keys():
    buffer = PendingChangeBuffer()

    def worker(offset):
        for i in range(200):
            buffer.add(Record(key=f"/k{i % 10}", timestamp=offset + i, writer="u", selected=bool(i % 2)))

    threads = [threading.Thread(target=worker, args=(n * 1000,)) for n in range(4)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    keys = [r.key for r in buffer.drain_snapshot()]
    assert sorted(keys) == sorted(set(keys))
    assert len(keys) == 10


@given(adds=st_adds)
def test_dedup_property(adds):
    buffer = PendingChangeBuffer()
    last_by_key = {}
    for key, ts, selected in adds:
        record = Record(key=key, timestamp=ts, writer="u", selected=selected)
        buffer.add(record)
        last_by_key[key] = record

    snapshot = buffer.drain_snapshot()
    assert len({r.key for r in snapshot}) == len(snapshot)
    assert {r.key: r for r in snapshot} == last_by_key


class PendingBufferMachine(RuleBasedStateMachine):
    """Model: dict of key -> last added record, plus arrival order of keys."""

    def __init__(self):
        super().__init__()
        self.buffer = PendingChangeBuffer()
        self.model = {}
        self.snapshot = []

    @rule(key=st_keys, ts=st.integers(min_value=0, max_value=1000), selected=st.booleans())
    def add(self, key, ts, selected):
        record = Record(key=key, timestamp=ts, writer="u", selected=selected)
        self.buffer.add(record)
        self.model.pop(key, None)
        self.model[key] = record

    @rule()
    def take_snapshot(self):
        self.snapshot = self.buffer.drain_snapshot()

    @rule()
    def remove_snapshot(self):
        snapshot_ids = {id(r) for r in self.snapshot}
        self.buffer.remove_processed(self.snapshot)
        self.model = {k: r for k, r in self.model.items() if id(r) not in snapshot_ids}
        self.snapshot = []

    @rule()
    def clear(self):
        self.buffer.clear()
        self.model = {}

    @invariant()
    def matches_model_in_arrival_order(self):
        assert self.buffer.drain_snapshot() == list(self.model.values())

    @invariant()
    def keys_unique(self):
        keys = [r.key for r in self.buffer.drain_snapshot()]
        assert len(keys) == len(set(keys))


TestPendingBufferMachine = PendingBufferMachine.TestCase
TestPendingBufferMachine.settings = settings(max_examples=50, stateful_step_count=30, deadline=None)

#
# End of test_pending_buffer.py
#######################################################################################################################
