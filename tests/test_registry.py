import threading

from precachegen.registry import AssetRegistry, InvocationGuard, get_asset_registry


def test_register_and_lookup():
    reg = AssetRegistry()
    assert not reg.is_generated("sw.js")
    reg.register("sw.js")
    reg.register("sw.js")
    assert reg.is_generated("sw.js")
    assert "sw.js" in reg
    assert len(reg) == 1
    assert list(reg) == ["sw.js"]


def test_concurrent_registration_keeps_every_name():
    reg = AssetRegistry()

    def worker(prefix: str) -> None:
        for i in range(500):
            reg.register(f"{prefix}-{i}.js")
            reg.is_generated(f"{prefix}-{i}.js")

    threads = [threading.Thread(target=worker, args=(f"t{n}",)) for n in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert len(reg) == 8 * 500


def test_process_registry_is_shared():
    assert get_asset_registry() is get_asset_registry()


def test_guard_reports_repeat_calls():
    guard = InvocationGuard()
    assert not guard.invoked
    assert guard.note_invocation() is False
    assert guard.invoked
    assert [guard.note_invocation() for _ in range(5)] == [True] * 5
