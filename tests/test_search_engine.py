import pytest
from sqlalchemy import func, select, update

from record_search.core.errors import InvalidSearchTerm, StorageUnavailable
from record_search.db import sqlalchemy as dbmod
from record_search.models.sql_models import RecordRow
from record_search.services.search_engine import (
    MAX_RESULTS,
    ColumnScopedTier,
    FullTextTier,
    RawPayloadTier,
    SearchableTextTier,
    SearchEngine,
    SearchTier,
)


def _ids(hits):
    return [hit.id for hit in hits]


def test_scenario_acme_and_beta(search_engine, sample_records):
    acme, beta = sample_records
    assert _ids(search_engine.search("corp")) == [acme]
    assert _ids(search_engine.search("provo", column_filter="city")) == [beta]
    assert search_engine.search("xyz") == []
    assert search_engine.search("a") == []


@pytest.mark.parametrize("term", ["", " ", "a", "  b  ", None])
def test_short_terms_return_nothing(search_engine, sample_records, term):
    assert search_engine.search(term) == []
    assert search_engine.search(term, column_filter="name") == []


def test_short_term_never_touches_storage(broken_store):
    assert SearchEngine(broken_store).search("x") == []


def test_overlong_term_is_rejected(search_engine):
    with pytest.raises(InvalidSearchTerm):
        search_engine.search("x" * 256)


def test_hit_carries_summary_and_detail_url(store):
    record_id = store.insert({"a": "1", "b": "", "c": "3", "d": "4", "e": "55"})
    hit = SearchEngine(store, detail_url_prefix="/records/view/").search("55", column_filter="e")
    assert len(hit) == 1
    assert hit[0].summary == "a: 1 | c: 3 | d: 4"
    assert hit[0].detail_url == f"/records/view/{record_id}/"
    assert hit[0].payload["e"] == "55"


def test_default_detail_url(search_engine, sample_records):
    acme, _ = sample_records
    assert search_engine.search("acme")[0].detail_url == f"/database-record/{acme}/"


def test_column_filter_excludes_records_missing_the_column(store, search_engine):
    store.insert({"name": "Provo Imports"})
    with_city = store.insert({"name": "Beta LLC", "city": "Provo"})
    assert _ids(search_engine.search("PROVO", column_filter="city")) == [with_city]


def test_column_filter_does_not_fall_back_to_other_tiers(search_engine, sample_records):
    assert search_engine.search("acme", column_filter="city") == []


def test_column_filter_treats_like_wildcards_literally(store, search_engine):
    half = store.insert({"discount": "50% off"})
    store.insert({"discount": "500 units"})
    store.insert({"discount": "5_0"})
    assert _ids(search_engine.search("50%", column_filter="discount")) == [half]


def test_fulltext_tier_matches_whole_words(store, sample_records):
    acme, beta = sample_records
    tier = FullTextTier(store)
    assert [rid for rid, _ in tier.attempt("corp", None)] == [acme]
    assert [rid for rid, _ in tier.attempt("acme beta", None)] == [beta, acme]
    assert tier.attempt("orp", None) == []
    assert tier.attempt("corp", "city") is None
    assert tier.attempt("--", None) is None


def test_fulltext_handles_query_syntax_characters(search_engine, sample_records):
    acme, _ = sample_records
    assert _ids(search_engine.search('"corp" AND (')) == [acme]
    assert _ids(search_engine.search("acme-corp")) == [acme]


def test_partial_word_falls_back_to_searchable_text(search_engine, sample_records):
    acme, _ = sample_records
    assert _ids(search_engine.search("cme co")) == [acme]
    assert SearchableTextTier(search_engine.store).attempt("cme co", None)


def test_raw_payload_tier_catches_rows_without_searchable_text(store, search_engine):
    record_id = store.insert({"code": "ZX-991"})
    with store.session() as session:
        session.execute(update(RecordRow).where(RecordRow.id == record_id).values(searchable_text=""))
        session.commit()
    assert SearchableTextTier(store).attempt("zx-991", None) == []
    assert _ids(search_engine.search("zx-991")) == [record_id]


def test_raw_payload_tier_matches_column_names(store, sample_records):
    acme, beta = sample_records
    assert [rid for rid, _ in RawPayloadTier(store).attempt("city", None)] == [beta, acme]


def test_results_are_capped_and_newest_first(store, search_engine):
    ids = [store.insert({"item": f"widget {i}"}) for i in range(MAX_RESULTS + 10)]
    hits = search_engine.search("widget")
    assert len(hits) == MAX_RESULTS
    assert _ids(hits) == list(reversed(ids))[:MAX_RESULTS]


def test_search_sees_updates_and_deletes(store, search_engine):
    record_id = store.insert({"name": "Initech"})
    assert _ids(search_engine.search("initech")) == [record_id]

    store.update(record_id, {"name": "Umbrella"})
    assert search_engine.search("initech") == []
    assert _ids(search_engine.search("umbrella")) == [record_id]

    store.delete(record_id)
    assert search_engine.search("umbrella") == []


def test_unreachable_database_surfaces_storage_unavailable(broken_store):
    engine = SearchEngine(broken_store)
    with pytest.raises(StorageUnavailable):
        engine.search("acme")
    with pytest.raises(StorageUnavailable):
        engine.search("acme", column_filter="name")


class _StubTier:
    def __init__(self, name, result, exclusive=False):
        self.name = name
        self.result = result
        self.exclusive = exclusive
        self.calls = 0

    def attempt(self, term, column_filter):
        self.calls += 1
        return self.result


def test_engine_returns_first_non_empty_tier(store):
    skipped = _StubTier("skipped", None)
    empty = _StubTier("empty", [])
    winner = _StubTier("winner", [(7, {"name": "x"})])
    never = _StubTier("never", [(8, {"name": "y"})])
    engine = SearchEngine(store, tiers=[skipped, empty, winner, never])

    assert _ids(engine.search("xx")) == [7]
    assert (skipped.calls, empty.calls, winner.calls, never.calls) == (1, 1, 1, 0)


def test_exclusive_tier_result_is_final_even_when_empty(store):
    exclusive = _StubTier("column", [], exclusive=True)
    later = _StubTier("later", [(1, {"a": "b"})])
    engine = SearchEngine(store, tiers=[exclusive, later])
    assert engine.search("xx", "a") == []
    assert later.calls == 0


def test_default_tiers_follow_the_fallback_order(search_engine):
    assert [type(t) for t in search_engine.tiers] == [
        ColumnScopedTier,
        FullTextTier,
        SearchableTextTier,
        RawPayloadTier,
    ]
    assert all(isinstance(t, SearchTier) for t in search_engine.tiers)


def test_case_folding_covers_non_ascii_letters(store, search_engine):
    record_id = store.insert({"name": "Über Café", "city": "Zürich"})

    assert _ids(search_engine.search("über", column_filter="name")) == [record_id]
    assert _ids(search_engine.search("CAFÉ", column_filter="name")) == [record_id]
    assert _ids(search_engine.search("ZÜR")) == [record_id]
    assert [rid for rid, _ in SearchableTextTier(store).attempt("ÜBER CA", None)] == [record_id]
    assert [rid for rid, _ in RawPayloadTier(store).attempt("ZÜRICH", None)] == [record_id]


@pytest.mark.parametrize("column", ['say "hi"', "a.b", "price[0]", "$.name", "it's"])
def test_column_filter_handles_awkward_column_names(store, search_engine, column):
    record_id = store.insert({column: "hello there", "name": "x"})
    store.insert({"name": "hello there"})
    assert _ids(search_engine.search("HELLO", column_filter=column)) == [record_id]


@pytest.mark.parametrize("url", ["sqlite://", "sqlite:///:memory:"])
def test_in_memory_sqlite_lowercases_non_ascii(url):
    dbmod.reconfigure(url)
    try:
        with dbmod.get_engine().connect() as conn:
            assert conn.execute(select(func.lower("ÜBER CAFÉ"))).scalar_one() == "über café"
    finally:
        dbmod.dispose_engine()
