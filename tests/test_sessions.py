from termslens.sessions import SessionDocumentStore


def test_set_get_and_clear_notify_subscribers():
    store = SessionDocumentStore()
    events = []
    store.subscribe(lambda session_id, text: events.append((session_id, text)))

    store.set("s1", "Terms v1")
    store.set("s1", "Terms v2", source="terms.pdf")

    stored = store.get("s1")
    assert stored.text == "Terms v2"
    assert stored.source == "terms.pdf"
    assert "s1" in store and len(store) == 1

    assert store.clear("s1") is True
    assert store.clear("s1") is False
    assert store.get("s1") is None
    assert events == [("s1", "Terms v1"), ("s1", "Terms v2"), ("s1", None)]


def test_unsubscribe_and_failing_subscriber_do_not_break_store():
    store = SessionDocumentStore()
    seen = []

    def _broken(session_id, text):
        raise RuntimeError("listener bug")

    store.subscribe(_broken)
    unsubscribe = store.subscribe(lambda session_id, text: seen.append(text))

    store.set("s2", "first")
    unsubscribe()
    store.set("s2", "second")

    assert seen == ["first"]
    assert store.get("s2").text == "second"
