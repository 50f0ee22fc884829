"""Tests for the response cache."""

from colony.core.inference.cache import ResponseCache, cache_key
from colony.core.inference.models import InferenceRequest, InferenceResponse


class _Clock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


def _response(text: str) -> InferenceResponse:
    return InferenceResponse(text=text)


class TestCacheKey:
    def test_same_request_same_key(self) -> None:
        a = InferenceRequest(prompt="hi", max_tokens=10, temperature=0.2)
        b = InferenceRequest(prompt="hi", max_tokens=10, temperature=0.2)
        assert cache_key(a) == cache_key(b)

    def test_sampling_fields_change_key(self) -> None:
        base = InferenceRequest(prompt="hi")
        assert cache_key(base) != cache_key(InferenceRequest(prompt="hi", top_k=5))
        assert cache_key(base) != cache_key(InferenceRequest(prompt="hi", max_tokens=8))

    def test_stop_is_ignored(self) -> None:
        assert cache_key(InferenceRequest(prompt="hi")) == cache_key(
            InferenceRequest(prompt="hi", stop=["\n"])
        )

    def test_stream_flag_is_ignored(self) -> None:
        assert cache_key(InferenceRequest(prompt="hi")) == cache_key(InferenceRequest(prompt="hi", stream=True))


class TestResponseCache:
    def setup_method(self) -> None:
        self.clock = _Clock()
        self.cache = ResponseCache(max_size=2, ttl=10.0, clock=self.clock)

    def test_put_get(self) -> None:
        self.cache.put("a", _response("A"))
        got = self.cache.get("a")
        assert got is not None
        assert got.text == "A"

    def test_missing(self) -> None:
        assert self.cache.get("nope") is None

    def test_entry_expires(self) -> None:
        self.cache.put("a", _response("A"))
        self.clock.now += 10.0
        assert self.cache.get("a") is None
        assert "a" not in self.cache

    def test_evicts_oldest_inserted(self) -> None:
        self.cache.put("a", _response("A"))
        self.cache.put("b", _response("B"))
        self.cache.get("a")
        self.cache.put("c", _response("C"))
        # reads do not refresh position
        assert self.cache.keys() == ["b", "c"]

    def test_reput_moves_key_to_end(self) -> None:
        self.cache.put("a", _response("A"))
        self.cache.put("b", _response("B"))
        self.cache.put("a", _response("A2"))
        self.cache.put("c", _response("C"))
        assert self.cache.keys() == ["a", "c"]
        got = self.cache.get("a")
        assert got is not None
        assert got.text == "A2"

    def test_clear(self) -> None:
        self.cache.put("a", _response("A"))
        self.cache.clear()
        assert len(self.cache) == 0

    def test_export_load_keeps_newest(self) -> None:
        big = ResponseCache(max_size=3, ttl=10.0, clock=self.clock)
        for key in ("a", "b", "c"):
            big.put(key, _response(key.upper()))

        assert self.cache.load(big.export()) == 2
        assert self.cache.keys() == ["b", "c"]

    def test_loaded_entries_keep_their_age(self) -> None:
        self.cache.put("a", _response("A"))
        data = self.cache.export()
        self.clock.now += 10.0

        other = ResponseCache(max_size=2, ttl=10.0, clock=self.clock)
        other.load(data)
        assert other.get("a") is None
