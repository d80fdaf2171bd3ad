import pytest

from lumina.models.user import STARTER_SUBJECTS, User
from lumina.repositories.user_repository import CURRENT_USER, USERS
from lumina.utils.errors import AuthError, ValidationError


def test_signup_creates_user_and_logs_in(sessions, store, student):
    assert isinstance(student, User)
    assert student.name == "Charlie Brown"
    assert student.email == "charlie.brown@lumina.student"
    assert student.xp == 0
    assert student.syllabus_mastery == {subject: 0 for subject in STARTER_SUBJECTS}
    assert len(store.load_collection(USERS)) == 1
    assert sessions.restore_session().id == student.id


def test_login_is_case_insensitive_on_name(sessions, student):
    sessions.logout()
    for name in ("charlie brown", "CHARLIE BROWN", "  Charlie Brown "):
        user = sessions.login(name, "kite")
        assert isinstance(user, User)
        assert user.id == student.id


def test_login_secret_code_is_exact(sessions, student):
    sessions.logout()
    assert sessions.login("Charlie Brown", "KITE") is AuthError.NOT_FOUND
    assert sessions.restore_session() is None


def test_signup_rejects_taken_name_any_case(sessions, student):
    result = sessions.signup({"name": "charlie BROWN", "secret_code": "other"})
    assert result is AuthError.NAME_TAKEN
    assert "already being used" in result.message


def test_taken_name_is_reported_before_weak_code(sessions, student):
    assert sessions.signup({"name": "Charlie Brown", "secret_code": "a"}) is AuthError.NAME_TAKEN


def test_secret_code_length_boundary(sessions):
    assert sessions.signup({"name": "Ada", "secret_code": "ab"}) is AuthError.WEAK_CODE
    assert isinstance(sessions.signup({"name": "Ada", "secret_code": "abc"}), User)


@pytest.mark.parametrize("name", ["", "   ", None])
def test_signup_requires_name(sessions, store, name):
    with pytest.raises(ValidationError):
        sessions.signup({"name": name, "secret_code": "abcd"})
    assert store.load_collection(USERS) == []
    assert sessions.restore_session() is None


def test_update_user_writes_both_copies(sessions, store, student):
    updated = student.model_copy(update={"xp": 300, "syllabus_mastery": {"Maths": 70}})
    sessions.update_user(updated)

    assert sessions.restore_session() == updated
    assert User.model_validate(store.load_collection(USERS)[0]) == updated

    sessions.logout()
    assert sessions.login("Charlie Brown", "kite").xp == 300


def test_update_unknown_user_only_touches_session(sessions, store, student):
    ghost = student.model_copy(update={"id": "ghost0001", "xp": 999})
    sessions.update_user(ghost)

    assert store.load_value(CURRENT_USER)["id"] == "ghost0001"
    records = store.load_collection(USERS)
    assert [r["id"] for r in records] == [student.id]
    assert records[0]["xp"] == 0


def test_logout_clears_session(sessions, student):
    sessions.logout()
    assert sessions.restore_session() is None


def test_award_xp_accumulates(sessions, student):
    user = sessions.award_xp(student, 25)
    user = sessions.award_xp(user, 25)
    assert user.xp == 50
    assert sessions.restore_session().xp == 50


def test_award_xp_uses_stored_total(sessions, student):
    # 旧的用户对象不能覆盖已经加过的经验
    sessions.award_xp(student, 25)
    assert sessions.award_xp(student, 25).xp == 50


def test_award_negative_xp_rejected(sessions, student):
    with pytest.raises(ValidationError):
        sessions.award_xp(student, -5)


def test_set_mastery_is_clamped(sessions, student):
    assert sessions.set_mastery(student, "Science", 150).syllabus_mastery["Science"] == 100
    assert sessions.set_mastery(student, "Science", -3).syllabus_mastery["Science"] == 0
    assert sessions.set_mastery(student, "Geography", 40).syllabus_mastery["Geography"] == 40


def test_legacy_record_without_xp(sessions, store):
    store.save_collection(USERS, [{
        "id": "old00001", "name": "Legacy", "secretCode": "abc",
        "yearGroup": "Year 3", "targetGrade": "Expected",
        "joinDate": "2024-01-01T00:00:00Z", "xp": None, "syllabusMastery": {},
    }])
    user = sessions.login("legacy", "abc")
    assert user.xp == 0
    assert user.year_group == "Year 3"


def test_corrupt_users_collection_treated_as_empty(sessions, store):
    store.put_raw(USERS, "not json")
    assert sessions.login("Anyone", "abc") is AuthError.NOT_FOUND
    assert isinstance(sessions.signup({"name": "Anyone", "secret_code": "abc"}), User)
    assert len(store.load_collection(USERS)) == 1
