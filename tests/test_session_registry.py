from concurrent.futures import ThreadPoolExecutor

from use_cases.session_registry import SessionRegistry


def test_register_issues_distinct_identities_under_concurrency() -> None:
    registry = SessionRegistry()

    with ThreadPoolExecutor(max_workers=16) as pool:
        identities = list(pool.map(registry.register, [f"sid-{i}" for i in range(200)]))

    assert len(set(identities)) == 200
    assert registry.count() == 200
    for i, identity in enumerate(identities):
        assert registry.lookup(identity) == f"sid-{i}"


def test_register_retries_on_identity_collision() -> None:
    issued = iter(["abc", "abc", "xyz"])
    registry = SessionRegistry(identity_factory=lambda: next(issued))

    assert registry.register("sid-a") == "abc"
    assert registry.register("sid-b") == "xyz"


def test_register_same_connection_keeps_identity() -> None:
    registry = SessionRegistry()

    first = registry.register("sid-a")

    assert registry.register("sid-a") == first
    assert registry.count() == 1


def test_remove_is_idempotent() -> None:
    registry = SessionRegistry()
    identity = registry.register("sid-a")

    assert registry.remove(identity) is True
    assert registry.remove(identity) is False
    assert registry.lookup(identity) is None
    assert registry.identity_of("sid-a") is None
    assert registry.connections() == []


def test_lookup_unknown_or_malformed_identity() -> None:
    registry = SessionRegistry()
    registry.register("sid-a")

    assert registry.lookup("ghost") is None
    assert registry.lookup(None) is None
    assert registry.lookup({"id": "x"}) is None


def test_identity_is_reusable_after_removal() -> None:
    registry = SessionRegistry(identity_factory=lambda: "abc")

    registry.remove(registry.register("sid-a"))

    assert registry.register("sid-b") == "abc"
    assert registry.lookup("abc") == "sid-b"
