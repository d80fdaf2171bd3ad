import pytest

from lumina.repositories.learning_log_repository import LOGS
from lumina.services.learning_log_service import LearningLogService
from lumina.utils.errors import ValidationError


@pytest.fixture
def log_service(store):
    return LearningLogService(store)


def test_add_then_list_returns_new_log_first(log_service, store, student):
    log_service.add(student.id, {"summary": "Photosynthesis", "subject": "Science", "duration": 45})
    newest = log_service.add(student.id, {"summary": "Long division", "mood": "🎯 Focused"})

    logs = log_service.list_for(student.id)
    assert logs[0].id == newest.id
    assert logs[0].duration == 30
    assert logs[0].mood == "🎯 Focused"
    assert len(store.load_collection(LOGS)) == 2


def test_logs_are_stored_in_one_global_collection(log_service, store, student):
    log_service.add(student.id, {"summary": "Mine"})
    log_service.add("someone-else", {"summary": "Theirs"})

    assert len(store.load_collection(LOGS)) == 2
    assert [log.summary for log in log_service.list_for(student.id)] == ["Mine"]


def test_records_use_camel_case_keys(log_service, store, student):
    log_service.add(student.id, {"summary": "Volcanoes", "subject": "Geography"})
    record = store.load_collection(LOGS)[0]
    assert record["userId"] == student.id
    assert record["subject"] == "Geography"


def test_remove(log_service, store, student):
    keep = log_service.add(student.id, {"summary": "Keep me"})
    drop = log_service.add(student.id, {"summary": "Drop me"})

    log_service.remove(drop.id)

    assert [log.id for log in log_service.list_for(student.id)] == [keep.id]
    assert [r["id"] for r in store.load_collection(LOGS)] == [keep.id]


def test_remove_unknown_id_is_noop(log_service, student):
    log = log_service.add(student.id, {"summary": "Still here"})
    log_service.remove("does-not-exist")
    assert [entry.id for entry in log_service.list_for(student.id)] == [log.id]


def test_blank_summary_rejected(log_service, store, student):
    with pytest.raises(ValidationError) as exc:
        log_service.add(student.id, {"summary": "   "})
    assert exc.value.message == "Please write down what you learned first."
    assert store.load_collection(LOGS) == []


def test_duration_must_be_positive(log_service, student):
    with pytest.raises(ValidationError):
        log_service.add(student.id, {"summary": "Maths", "duration": -15})


def test_corrupt_logs_collection_recovers(log_service, store, student):
    store.put_raw(LOGS, "{{{")
    assert log_service.list_for(student.id) == []
    log_service.add(student.id, {"summary": "Fresh start"})
    assert len(log_service.list_for(student.id)) == 1
