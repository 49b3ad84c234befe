from tools.sessions import MemorySessionStore, clear_track_flow


def test_memory_store_keeps_updates():
    store = MemorySessionStore()
    store.update("s1", {"mode": "track", "need": "order"})
    assert store.get("s1")["need"] == "order"

    clear_track_flow(store, "s1")
    assert store.get("s1")["mode"] is None


def test_memory_store_is_bounded():
    store = MemorySessionStore(max_sessions=3)
    for sid in ("a", "b", "c"):
        store.update(sid, {"last_intent": "greeting"})

    store.get("a")  # a is now the most recent
    store.update("d", {"last_intent": "general"})

    assert len(store) == 3
    # b was the least recently used and got dropped
    assert store.get("b")["last_intent"] is None
    assert store.get("a")["last_intent"] == "greeting"
