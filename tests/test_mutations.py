import pytest

from record_search.core.errors import InvalidPayload, NotFound


def test_save_without_id_creates_a_record(mutations, store):
    result = mutations.save(0, {" name ": " Acme Corp ", "city": "Reno"})
    assert result.success is True
    assert result.message == "Record created successfully"
    assert store.get(result.record_id).payload == {"name": "Acme Corp", "city": "Reno"}


def test_save_with_id_replaces_the_record(mutations, store, sample_records):
    acme, _ = sample_records
    result = mutations.save(acme, {"name": "Acme Holdings"})
    assert result.record_id == acme
    assert result.message == "Record updated successfully"
    record = store.get(acme)
    assert record.payload == {"name": "Acme Holdings"}
    assert record.searchable_text == "Acme Holdings"


def test_save_drops_empty_and_control_characters(mutations, store):
    result = mutations.save(None, {"name": "Ac\x00me", "blank": "  ", "": "orphan", "note": "line1\nline2"})
    assert store.get(result.record_id).payload == {"name": "Acme", "note": "line1\nline2"}


@pytest.mark.parametrize("payload", [{}, {"a": ""}, {"": "x"}, {"\x01": "\x02"}])
def test_save_rejects_payloads_with_nothing_left(mutations, store, payload):
    with pytest.raises(InvalidPayload):
        mutations.save(0, payload)
    assert store.count() == 0


def test_save_rejects_non_mapping(mutations):
    with pytest.raises(InvalidPayload):
        mutations.save(0, ["name", "Acme"])


def test_save_update_of_missing_record(mutations, store):
    with pytest.raises(NotFound):
        mutations.save(404, {"name": "ghost"})
    assert store.count() == 0


def test_set_field_changes_one_column(mutations, sample_records):
    _, beta = sample_records
    record = mutations.set_field(beta, "city", "Ogden")
    assert record.payload == {"name": "Beta LLC", "city": "Ogden"}
    assert record.searchable_text == "Beta LLC Ogden"


def test_set_field_adds_a_new_column(mutations, sample_records):
    acme, _ = sample_records
    record = mutations.set_field(acme, "phone", "555-0100")
    assert list(record.payload) == ["name", "city", "phone"]


def test_set_field_with_empty_value_removes_the_column(mutations, sample_records):
    acme, _ = sample_records
    record = mutations.set_field(acme, "city", "  ")
    assert record.payload == {"name": "Acme Corp"}


def test_set_field_cannot_empty_a_record(mutations, store):
    record_id = store.insert({"only": "value"})
    with pytest.raises(InvalidPayload):
        mutations.set_field(record_id, "only", None)
    assert store.get(record_id).payload == {"only": "value"}


def test_set_field_on_missing_record(mutations):
    with pytest.raises(NotFound):
        mutations.set_field(12345, "name", "x")


def test_set_field_requires_a_column_name(mutations, sample_records):
    acme, _ = sample_records
    with pytest.raises(InvalidPayload):
        mutations.set_field(acme, "  ", "x")


def test_delete(mutations, store, sample_records):
    acme, _ = sample_records
    assert mutations.delete(acme) is True
    assert mutations.delete(acme) is False
    assert store.exists(acme) is False


@pytest.mark.parametrize("record_id", [0, -1])
def test_delete_rejects_invalid_ids(mutations, record_id):
    with pytest.raises(NotFound):
        mutations.delete(record_id)
