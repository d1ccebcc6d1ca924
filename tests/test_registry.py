# tests/test_registry.py
import threading

from lightwatch.services.registry_mem import InMemoryHeartbeatRegistry


def test_record_inserts_then_overwrites(clock):
    reg = InMemoryHeartbeatRegistry(clock=clock)
    first = reg.record_heartbeat("Node1")
    assert first.last_seen == clock.now
    clock.advance(3)
    reg.record_heartbeat("Node1")
    assert len(reg) == 1
    assert reg.get_node("Node1").last_seen == clock.now


def test_last_seen_never_goes_backwards():
    reg = InMemoryHeartbeatRegistry()
    reg.record_heartbeat("Node1", 50.0)
    reg.record_heartbeat("Node1", 40.0)
    assert reg.get_node("Node1").last_seen == 50.0


def test_sweep_removes_only_records_past_timeout():
    reg = InMemoryHeartbeatRegistry()
    reg.record_heartbeat("old", 0.0)
    reg.record_heartbeat("edge", 5.0)
    reg.record_heartbeat("fresh", 12.0)
    # строго больше timeout: edge (ровно 10 с) ещё жив
    assert reg.sweep_expired(15.0, 10.0) == ["old"]
    assert sorted(r.node_id for r in reg.list_nodes()) == ["edge", "fresh"]


def test_sweep_is_idempotent():
    reg = InMemoryHeartbeatRegistry()
    reg.record_heartbeat("Node1", 0.0)
    reg.record_heartbeat("Node2", 0.0)
    assert sorted(reg.sweep_expired(20.0, 10.0)) == ["Node1", "Node2"]
    assert reg.sweep_expired(20.0, 10.0) == []
    assert len(reg) == 0


def test_sweep_on_empty_registry():
    assert InMemoryHeartbeatRegistry().sweep_expired(100.0, 10.0) == []


def test_sweep_uses_registry_defaults(clock):
    reg = InMemoryHeartbeatRegistry(timeout=2.0, clock=clock)
    reg.record_heartbeat("Node1")
    clock.advance(2.5)
    assert reg.sweep_expired() == ["Node1"]


def test_heartbeat_after_sweep_recreates_record():
    reg = InMemoryHeartbeatRegistry()
    reg.record_heartbeat("Node1", 0.0)
    assert reg.sweep_expired(11.0, 10.0) == ["Node1"]
    reg.record_heartbeat("Node1", 11.5)
    assert "Node1" in reg
    assert reg.sweep_expired(12.0, 10.0) == []


def test_snapshots_are_copies():
    reg = InMemoryHeartbeatRegistry()
    reg.record_heartbeat("Node1", 1.0)
    snap = reg.get_node("Node1")
    snap.last_seen = 999.0
    reg.list_nodes()[0].last_seen = 999.0
    assert reg.get_node("Node1").last_seen == 1.0
    assert reg.get_node("missing") is None


def test_concurrent_heartbeats_converge_to_latest():
    reg = InMemoryHeartbeatRegistry()
    n_threads, per_thread = 8, 500
    barrier = threading.Barrier(n_threads)

    def writer(offset: int) -> None:
        barrier.wait()
        for i in range(per_thread):
            reg.record_heartbeat("Node1", float(i * n_threads + offset))

    threads = [threading.Thread(target=writer, args=(k,)) for k in range(n_threads)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert len(reg) == 1
    assert reg.get_node("Node1").last_seen == float(n_threads * per_thread - 1)


def test_sweeps_during_concurrent_heartbeats_never_double_report():
    reg = InMemoryHeartbeatRegistry()
    ids = [f"Node{i}" for i in range(50)]
    for node_id in ids:
        reg.record_heartbeat(node_id, 0.0)

    reported = []
    lock = threading.Lock()
    start = threading.Event()

    def sweeper() -> None:
        start.wait()
        for _ in range(20):
            out = reg.sweep_expired(100.0, 10.0)
            with lock:
                reported.extend(out)

    def heartbeats() -> None:
        start.wait()
        for node_id in ids[::2]:
            reg.record_heartbeat(node_id, 100.0)

    threads = [threading.Thread(target=sweeper) for _ in range(3)] + [threading.Thread(target=heartbeats)]
    for t in threads:
        t.start()
    start.set()
    for t in threads:
        t.join()

    # каждая удалённая нода объявлена ровно один раз
    assert len(reported) == len(set(reported))
    survivors = {r.node_id for r in reg.list_nodes()}
    # нечётные молчали и выселены; чётные живы (возможно, после повторной вставки)
    assert set(ids[1::2]) <= set(reported)
    assert survivors == set(ids[::2])
