from datetime import datetime, timezone

import pytest

from dal.record_adapter import parse_confidence, parse_timestamp, record_from_payload, records_from_payloads


def test_backend_payload_is_normalized():
    record = record_from_payload(
        {
            "id": "17",
            "predicted_class": "Anthracnose",
            "confidence_score": "92.5%",
            "is_verified": True,
            "uploaded_at": "2024-06-01T10:00:00Z",
            "model_used": "leaf",
            "original_filename": "mango.jpg",
            "image": "/media/mango_images/mango.jpg",
            "user": {"id": 3, "username": "grower"},
        }
    )

    assert record.id == 17
    assert record.disease_label == "Anthracnose"
    assert record.confidence_score == 92.5
    assert record.verified is True
    assert record.uploaded_at == datetime(2024, 6, 1, 10, 0, tzinfo=timezone.utc)
    assert record.image_url == "/media/mango_images/mango.jpg"
    assert (record.user_id, record.username) == (3, "grower")


def test_missing_fields_fall_back_to_defaults():
    record = record_from_payload({"id": 5, "disease_classification": "Stem End Rot", "user": 9})

    assert record.disease_label == "Stem End Rot"
    assert record.confidence_score == 0.0
    assert record.verified is False
    assert record.uploaded_at is None
    assert record.user_id == 9
    assert record_from_payload({"id": 6}).disease_label == "Unknown"


def test_payload_without_id_is_rejected():
    with pytest.raises(ValueError):
        record_from_payload({"predicted_class": "Anthracnose"})


def test_malformed_payloads_are_skipped_in_batches():
    records = records_from_payloads([{"id": 1}, {"id": None}, {"id": "x"}, {"id": 2}])
    assert [record.id for record in records] == [1, 2]


@pytest.mark.parametrize("raw,expected", [(0.8, 0.8), ("45", 45.0), (" 12.5 % ", 12.5), ("n/a", 0.0), (None, 0.0), (True, 0.0)])
def test_parse_confidence(raw, expected):
    assert parse_confidence(raw) == expected


def test_parse_timestamp_variants():
    assert parse_timestamp("2024-06-01T10:00:00") == datetime(2024, 6, 1, 10, 0, tzinfo=timezone.utc)
    assert parse_timestamp("2024-06-01T12:00:00+02:00") == datetime(2024, 6, 1, 10, 0, tzinfo=timezone.utc)
    assert parse_timestamp(0) == datetime(1970, 1, 1, tzinfo=timezone.utc)
    assert parse_timestamp("yesterday") is None
    assert parse_timestamp("") is None


def test_epoch_milliseconds_are_recognised():
    assert parse_timestamp(1718450000000) == datetime(2024, 6, 15, 11, 13, 20, tzinfo=timezone.utc)
    [record] = records_from_payloads([{"id": 1, "uploaded_at": 1718450000000}])
    assert record.uploaded_at == datetime(2024, 6, 15, 11, 13, 20, tzinfo=timezone.utc)


def test_out_of_range_numeric_timestamp_keeps_the_record_undated():
    records = records_from_payloads([{"id": 1, "uploaded_at": 1e20}, {"id": 2, "uploaded_at": "2024-01-01"}])

    assert [record.id for record in records] == [1, 2]
    assert records[0].uploaded_at is None
    assert records[1].uploaded_at == datetime(2024, 1, 1, tzinfo=timezone.utc)
    assert parse_timestamp(float("nan")) is None
