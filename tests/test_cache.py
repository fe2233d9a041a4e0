from decentscore.services.cache import TTLCache


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


def test_entries_expire_after_ttl():
    clock = FakeClock()
    cache = TTLCache(900, clock=clock)
    cache.set("spaces", ["uniswap"])
    clock.now += 899
    assert cache.get("spaces") == ["uniswap"]
    clock.now += 2
    assert cache.get("spaces") is None


def test_get_or_fetch_only_fetches_on_miss():
    calls = []
    cache = TTLCache(60, clock=FakeClock())

    def fetch():
        calls.append(1)
        return {"pools": 3}

    assert cache.get_or_fetch("pools", fetch) == {"pools": 3}
    assert cache.get_or_fetch("pools", fetch) == {"pools": 3}
    assert len(calls) == 1

    cache.clear()
    cache.get_or_fetch("pools", fetch)
    assert len(calls) == 2
