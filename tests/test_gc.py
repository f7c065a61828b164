import pytest

from boltvm.callables import Closure, Fn, Userdata
from boltvm.containers import Array, Table
from boltvm.gc import DEFAULT_NEXT_CYCLE, GarbageCollector, references
from boltvm.strings import BoltRuntimeError, BoltString, StringTable


def test_defaults_follow_source():
    gc = GarbageCollector()
    assert gc.next_cycle == 1024 * 1024 * 32
    assert gc.min_size == gc.next_cycle
    assert gc.growth_pct == 150
    assert gc.pause_growth_pct == 115
    assert gc.grey_cap == 256


def test_alloc_and_free_round_trip():
    gc = GarbageCollector()
    before = gc.bytes_allocated
    gc.alloc(100)
    assert gc.bytes_allocated == before + 100
    gc.free(100)
    assert gc.bytes_allocated == before


def test_realloc_tracks_delta():
    gc = GarbageCollector()
    before = gc.bytes_allocated
    gc.alloc(10)
    gc.realloc(10, 40)
    assert gc.bytes_allocated == before + 40


def test_free_more_than_tracked_raises():
    gc = GarbageCollector()
    with pytest.raises(BoltRuntimeError):
        gc.free(gc.bytes_allocated + 1)


def test_realloc_more_than_tracked_raises():
    gc = GarbageCollector()
    with pytest.raises(BoltRuntimeError):
        gc.realloc(gc.bytes_allocated + 1, 0)


def test_unreachable_objects_collected_and_bytes_restored():
    gc = GarbageCollector()
    baseline = gc.bytes_allocated
    a = gc.track(Table())
    b = gc.track(Array())
    assert len(gc) == 2
    assert gc.bytes_allocated > baseline
    grey_bytes = gc.bytes_allocated
    assert gc.collect([]) == 2
    assert a not in gc and b not in gc
    assert len(gc) == 0
    assert gc.bytes_allocated <= grey_bytes


def test_reachable_objects_survive():
    gc = GarbageCollector()
    inner = gc.track(Array())
    outer = gc.track(Table())
    outer.set(BoltString("k"), inner)
    loose = gc.track(Table())
    assert gc.collect([outer]) == 1
    assert inner in gc and outer in gc
    assert loose not in gc


def test_closure_keeps_fn_and_upvals():
    gc = GarbageCollector()
    fn = gc.track(Fn(module=None, signature=None))
    upval = gc.track(Array())
    closure = gc.track(Closure(fn=fn, upvals=[upval, 3]))
    assert gc.collect([closure]) == 0
    assert fn in gc and upval in gc


def test_references_skip_primitives():
    fn = Fn(module=None, signature=None)
    arr = Array()
    closure = Closure(fn=fn, upvals=[arr, 1.5, None, True])
    refs = list(references(closure))
    assert refs == [fn, arr]


def test_references_of_table_include_prototype_keys_and_values():
    proto = Table()
    key = BoltString("x")
    value = Array()
    table = Table(prototype=proto)
    table.set(key, value)
    assert list(references(table)) == [proto, key, value]


def test_finalizer_runs_on_collection():
    gc = GarbageCollector()
    finalized = []
    gc.track(Userdata(data=object(), finalizer=finalized.append))
    gc.collect([])
    assert len(finalized) == 1


def test_interned_strings_removed_from_table():
    strings = StringTable()
    gc = GarbageCollector(strings=strings)
    dead = gc.track(strings.intern("dead"))
    alive = gc.track(strings.intern("alive"))
    gc.collect([alive])
    assert "dead" not in strings
    assert "alive" in strings
    assert dead.interned is False


def test_max_collect_limits_frees():
    gc = GarbageCollector()
    for _ in range(5):
        gc.track(Array())
    assert gc.collect([], max_collect=2) == 2
    assert len(gc) == 3


def test_paused_collection_does_nothing():
    gc = GarbageCollector()
    obj = gc.track(Array())
    with gc.paused():
        assert gc.collect([]) == 0
        assert obj in gc
        assert gc.next_cycle == gc.min_size
    assert gc.collect([]) == 1


def test_pauses_nest():
    gc = GarbageCollector()
    gc.track(Array())
    gc.pause()
    gc.pause()
    gc.unpause()
    assert gc.collect([]) == 0
    gc.unpause()
    assert gc.collect([]) == 1


def test_unpause_without_pause_raises():
    gc = GarbageCollector()
    with pytest.raises(BoltRuntimeError):
        gc.unpause()


def test_next_cycle_never_below_min_size():
    gc = GarbageCollector()
    gc.collect([])
    assert gc.next_cycle == DEFAULT_NEXT_CYCLE


def test_grey_list_grows_when_full():
    gc = GarbageCollector()
    gc.grey_cap = 2
    holder = gc.track(Table())
    for i in range(10):
        holder.set(i, gc.track(Array()))
    assert gc.collect([holder]) == 0
    assert gc.grey_cap > 2


def test_track_collects_when_over_threshold():
    keep = []
    gc = GarbageCollector(root_provider=lambda: keep)
    kept = gc.track(Table())
    keep.append(kept)
    garbage = gc.track(Array())
    gc.min_size = 0
    gc.next_cycle = 0
    gc.track(Array())
    assert garbage not in gc
    assert kept in gc


def test_tracking_same_object_twice_counts_once():
    gc = GarbageCollector()
    obj = Table()
    gc.track(obj)
    after_first = gc.bytes_allocated
    gc.track(obj)
    assert gc.bytes_allocated == after_first
    assert len(gc) == 1