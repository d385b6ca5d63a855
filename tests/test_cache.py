from ossim.cpu.cache import Cache, CacheEntry


def _entry(page_id, pid=1, reference=True, modified=False):
    return CacheEntry(pid=pid, page_id=page_id, data="x", reference=reference, modified=modified)


def _ids(cache):
    return [e.page_id for e in cache]


def test_find_matches_pid_and_page():
    cache = Cache(3, "CLOCK")
    cache.add(_entry("A", pid=1))
    cache.add(_entry("A", pid=2, modified=True))
    found = cache.find(2, "A")
    assert found.pid == 2 and found.modified
    assert cache.find(3, "A") is None


def test_is_full():
    cache = Cache(2, "CLOCK")
    cache.add(_entry("A"))
    assert not cache.is_full()
    cache.add(_entry("B"))
    assert cache.is_full()


def test_empty_cache_has_no_victim():
    assert Cache(2, "CLOCK").select_victim() is None
    assert Cache(2, "CLOCK-M").select_victim() is None


def test_unknown_algorithm_has_no_victim():
    cache = Cache(1, "LFU")
    cache.add(_entry("A"))
    assert cache.select_victim() is None
    assert len(cache) == 1


def test_clock_all_referenced_evicts_first_and_clears_bits():
    cache = Cache(3, "CLOCK")
    for page in "ABC":
        cache.add(_entry(page))
    victim = cache.select_victim()
    assert victim.page_id == "A"
    assert _ids(cache) == ["B", "C"]
    assert all(not e.reference for e in cache)
    assert cache.clock == 0


def test_clock_skips_referenced_and_rotates():
    cache = Cache(3, "CLOCK")
    cache.add(_entry("A"))
    cache.add(_entry("B", reference=False))
    cache.add(_entry("C"))
    assert cache.select_victim().page_id == "B"
    assert cache.clock == 1
    cache.add(_entry("D"))
    assert cache.select_victim().page_id == "A"
    assert _ids(cache) == ["C", "D"]


def test_clock_m_prefers_clean_unreferenced():
    cache = Cache(2, "CLOCK-M")
    cache.add(_entry("A", reference=False, modified=True))
    cache.add(_entry("B", reference=False, modified=False))
    assert cache.select_victim().page_id == "B"
    assert _ids(cache) == ["A"]


def test_clock_m_unreferenced_dirty_before_referenced_clean():
    cache = Cache(2, "CLOCK-M")
    cache.add(_entry("A", reference=True, modified=False))
    cache.add(_entry("B", reference=False, modified=True))
    victim = cache.select_victim()
    assert victim.page_id == "B" and victim.modified
    assert not cache.find(1, "A").reference


def test_clock_m_all_referenced_and_dirty_evicts_first():
    cache = Cache(2, "CLOCK-M")
    cache.add(_entry("A", modified=True))
    cache.add(_entry("B", modified=True))
    assert cache.select_victim().page_id == "A"
    assert _ids(cache) == ["B"]


def test_remove_process_keeps_others():
    cache = Cache(4, "CLOCK")
    cache.add(_entry("A", pid=1))
    cache.add(_entry("B", pid=2))
    cache.add(_entry("C", pid=1, modified=True))
    removed = cache.remove_process(1)
    assert [e.page_id for e in removed] == ["C", "A"]
    assert _ids(cache) == ["B"]
    assert cache.remove_process(1) == []