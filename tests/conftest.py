import pytest

from tests.factories import FakeRecordSource, make_record


@pytest.fixture
def fake_source() -> FakeRecordSource:
    return FakeRecordSource(
        [
            make_record(1, "Anthracnose", 0.92),
            make_record(2, "Anthracnose", 0.81, verified=True),
            make_record(3, "Stem End Rot", 38, verified=True),
            make_record(4, "Powdery Mildew", 0.75),
        ]
    )
