"""
Concurrent writers and readers sharing one file-backed SQLite store.
"""

from concurrent.futures import ThreadPoolExecutor

from record_search.services.ingest import IngestPipeline
from record_search.services.mutations import MutationService
from record_search.services.search_engine import SearchEngine

WORKERS = 4
ROWS_PER_WORKER = 100


def _bulk(store, worker):
    rows = [{"name": f"bulk {worker}-{i}", "city": "Reno"} for i in range(ROWS_PER_WORKER)]
    return IngestPipeline(store).bulk_insert(rows).inserted_count


def _saves(store, worker):
    service = MutationService(store)
    saved = 0
    for i in range(ROWS_PER_WORKER):
        if service.save(None, {"name": f"save {worker}-{i}", "city": "Provo"}).success:
            saved += 1
    return saved


def _searches(store, _worker):
    engine = SearchEngine(store)
    for _ in range(20):
        engine.search("bulk")
        engine.search("provo", column_filter="city")
        engine.search("ave 1")
    return 0


def test_parallel_writes_and_searches_lose_nothing(store):
    jobs = [_bulk] * WORKERS + [_saves] * WORKERS + [_searches] * WORKERS
    with ThreadPoolExecutor(max_workers=len(jobs)) as pool:
        futures = [pool.submit(job, store, n) for n, job in enumerate(jobs)]
        reported = [future.result() for future in futures]

    assert sum(reported) == 2 * WORKERS * ROWS_PER_WORKER
    assert store.count() == sum(reported)
    assert len(SearchEngine(store).search("provo", column_filter="city")) == 50


def test_parallel_saves_get_distinct_ids(store):
    service = MutationService(store)
    with ThreadPoolExecutor(max_workers=8) as pool:
        ids = list(pool.map(lambda n: service.save(None, {"n": str(n)}).record_id, range(200)))

    assert len(set(ids)) == 200
    assert store.count() == 200
