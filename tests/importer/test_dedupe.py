from seva_app.importer.pipeline import deduplicate


def test_first_occurrence_wins():
    records = [
        {"sai_connect_id": "000001", "full_name": "First"},
        {"sai_connect_id": "000002", "full_name": "Other"},
        {"sai_connect_id": "000001", "full_name": "Second"},
    ]

    result = deduplicate(records, unique_key="sai_connect_id")

    assert result.total_rows == 3
    assert result.unique_rows == 2
    assert result.duplicate_rows == 1
    assert result.duplicate_ids == ("000001",)
    assert result.records[0]["full_name"] == "First"


def test_every_repeat_is_counted_in_order():
    keys = ["000003", "000001", "000003", "000001", "000003"]

    result = deduplicate([{"sai_connect_id": key} for key in keys], unique_key="sai_connect_id")

    assert result.duplicate_rows == 3
    assert result.duplicate_ids == ("000003", "000001", "000003")
    assert [record["sai_connect_id"] for record in result.records] == ["000003", "000001"]


def test_records_without_key_are_set_aside():
    records = [{"sai_connect_id": "000001"}, {"full_name": "No Id"}, {"sai_connect_id": ""}]

    result = deduplicate(records, unique_key="sai_connect_id")

    assert result.unique_rows == 1
    assert result.rows_missing_key == 2
    assert result.duplicate_rows == 0


def test_empty_input():
    result = deduplicate([], unique_key="sai_connect_id")

    assert result.total_rows == 0
    assert result.records == ()
