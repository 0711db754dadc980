import pytest

from aithreya.core.errors import InvalidArgument, NotFound
from aithreya.models.orm import Progress, User
from aithreya.seed import seed_content
from aithreya.services.ledger import ProgressLedger


@pytest.fixture
def contents(db):
    return {c.slug: c for c in seed_content(db)}


@pytest.fixture
def member(db):
    user = User(name="Meera Iyer", email="meera@example.com", password_hash="x")
    db.add(user)
    db.commit()
    return user


@pytest.fixture
def ledger(db):
    return ProgressLedger(db)


@pytest.fixture
def article(contents):
    return contents["fr-article-14"]


def test_find_or_create_is_idempotent(ledger, member, article):
    first, created = ledger.find_or_create(member.id, article.id)
    second, created_again = ledger.find_or_create(member.id, article.id)
    assert created
    assert not created_again
    assert first.id == second.id


def test_find_or_create_recovers_from_concurrent_insert(db, app, ledger, member, article, monkeypatch):
    # another session inserts the pair after our lookup missed
    with app.state.session_factory() as other:
        other.add(Progress(user_id=member.id, content_id=article.id))
        other.commit()

    real_find = ProgressLedger.find
    calls = []

    def stale_find(self, user_id, content_id):
        calls.append((user_id, content_id))
        if len(calls) == 1:
            return None
        return real_find(self, user_id, content_id)

    monkeypatch.setattr(ProgressLedger, "find", stale_find)
    record, created = ledger.find_or_create(member.id, article.id)
    assert not created
    assert record.id is not None
    assert len(calls) == 2
    assert db.query(Progress).filter_by(user_id=member.id, content_id=article.id).count() == 1


def test_get_missing_record(ledger, member, article):
    with pytest.raises(NotFound):
        ledger.get(member.id, article.id)


def test_start_moves_to_in_progress_once(ledger, member, article):
    record = ledger.start(member.id, article.id)
    started_at = record.started_at
    assert record.status == "in-progress"
    assert record.view_count == 1

    record = ledger.start(member.id, article.id)
    assert record.started_at == started_at
    assert record.view_count == 2


def test_start_keeps_completed_status(ledger, member, article):
    record, _ = ledger.find_or_create(member.id, article.id)
    ledger.complete(record)
    ledger.start(member.id, article.id)
    assert record.status == "completed"


def test_complete_sets_full_percentage(ledger, member, article):
    record, _ = ledger.find_or_create(member.id, article.id)
    ledger.complete(record)
    assert record.status == "completed"
    assert record.completion_percentage == 100
    assert record.completed_at is not None


def test_update_new_record_starts_it(ledger, member, article):
    record = ledger.update(member.id, article.id, completion_percentage=40, time_spent=30)
    assert record.status == "in-progress"
    assert record.started_at is not None
    assert record.completion_percentage == 40
    assert record.time_spent == 30


def test_update_to_full_percentage_completes(ledger, member, article):
    ledger.update(member.id, article.id, completion_percentage=50)
    record = ledger.update(member.id, article.id, status="in-progress", completion_percentage=100)
    assert record.status == "completed"
    assert record.completed_at is not None


def test_set_status_keeps_completed_record_at_full_percentage(ledger, member, article):
    record, _ = ledger.find_or_create(member.id, article.id)
    ledger.complete(record)
    ledger.set_status(record, "in-progress")
    assert record.status == "completed"
    assert record.completion_percentage == 100


def test_update_lowering_percentage_reopens_record(ledger, member, article):
    record, _ = ledger.find_or_create(member.id, article.id)
    ledger.complete(record)
    record = ledger.update(member.id, article.id, status="in-progress", completion_percentage=60)
    assert record.status == "in-progress"
    assert record.completion_percentage == 60


def test_completed_at_keeps_first_completion(ledger, member, article):
    record = ledger.start(member.id, article.id)
    ledger.complete(record)
    first = record.completed_at
    ledger.complete(record)
    ledger.record_quiz_attempt(record, 95, 10, 9)
    assert record.completed_at == first


def test_update_accumulates_time(ledger, member, article):
    ledger.update(member.id, article.id, time_spent=60)
    record = ledger.update(member.id, article.id, time_spent=45)
    assert record.time_spent == 105


@pytest.mark.parametrize("pct", [-1, 100.5, 250])
def test_completion_percentage_out_of_range(ledger, member, article, pct):
    with pytest.raises(InvalidArgument):
        ledger.update(member.id, article.id, completion_percentage=pct)


def test_negative_time_rejected(ledger, member, article):
    record, _ = ledger.find_or_create(member.id, article.id)
    with pytest.raises(InvalidArgument):
        ledger.record_time(record, -10)


def test_invalid_status_rejected(ledger, member, article):
    with pytest.raises(InvalidArgument):
        ledger.update(member.id, article.id, status="paused")


def test_quiz_below_threshold_keeps_status(ledger, member, article):
    record = ledger.start(member.id, article.id)
    ledger.record_quiz_attempt(record, 60, 10, 6)
    assert record.status == "in-progress"
    assert record.best_score == 60
    assert len(record.quiz_attempts) == 1


def test_quiz_at_threshold_completes(ledger, member, article):
    record = ledger.start(member.id, article.id)
    ledger.record_quiz_attempt(record, 80, 10, 8, time_taken=120)
    assert record.status == "completed"
    assert record.completion_percentage == 100


def test_best_score_is_maximum(ledger, member, article):
    record, _ = ledger.find_or_create(member.id, article.id)
    for score in (70, 90, 50):
        ledger.record_quiz_attempt(record, score, 10, score // 10)
    assert record.best_score == 90
    assert [a.score for a in record.quiz_attempts] == [70, 90, 50]


def test_quiz_validation_collects_field_errors(ledger, member, article):
    record, _ = ledger.find_or_create(member.id, article.id)
    with pytest.raises(InvalidArgument) as exc:
        ledger.record_quiz_attempt(record, 120, 0, -1, time_taken=-3)
    fields = {e["field"] for e in exc.value.errors}
    assert fields == {"score", "totalQuestions", "correctAnswers", "timeTaken"}
    assert record.quiz_attempts == []


def test_correct_answers_cannot_exceed_total(ledger, member, article):
    record, _ = ledger.find_or_create(member.id, article.id)
    with pytest.raises(InvalidArgument) as exc:
        ledger.record_quiz_attempt(record, 50, 5, 6)
    assert exc.value.errors[0]["field"] == "correctAnswers"


def test_double_toggle_restores_bookmark(ledger, member, article):
    record, _ = ledger.find_or_create(member.id, article.id)
    assert ledger.toggle_bookmark(record) is True
    assert record.bookmarked_at is not None
    assert ledger.toggle_bookmark(record) is False
    assert not record.is_bookmarked
    assert record.bookmarked_at is None


def test_notes_and_highlights(ledger, member, article):
    record, _ = ledger.find_or_create(member.id, article.id)
    ledger.add_note(record, "  Equality applies to non-citizens too  ")
    ledger.add_highlight(record, "equal protection", start=40, end=56)
    ledger.add_highlight(record, "territory of India", color="green")
    assert [n.text for n in record.notes] == ["Equality applies to non-citizens too"]
    assert [h.color for h in record.highlights] == ["yellow", "green"]
    assert record.highlights[0].position_end == 56


def test_note_validation(ledger, member, article):
    record, _ = ledger.find_or_create(member.id, article.id)
    with pytest.raises(InvalidArgument):
        ledger.add_note(record, "   ")
    with pytest.raises(InvalidArgument):
        ledger.add_note(record, "x" * 1001)


def test_highlight_end_before_start(ledger, member, article):
    record, _ = ledger.find_or_create(member.id, article.id)
    with pytest.raises(InvalidArgument):
        ledger.add_highlight(record, "text", start=10, end=5)


def test_rating(ledger, member, article):
    record, _ = ledger.find_or_create(member.id, article.id)
    ledger.rate(record, 4, "Clear explanation")
    assert record.rating == 4
    assert record.feedback == "Clear explanation"
    assert record.rated_at is not None
    with pytest.raises(InvalidArgument):
        ledger.rate(record, 6)
    with pytest.raises(InvalidArgument):
        ledger.rate(record, 3, "x" * 501)


def test_overall_progress(db, ledger, member, contents):
    preamble = contents["preamble"]
    art14 = contents["fr-article-14"]
    art19 = contents["fr-article-19"]

    ledger.update(member.id, preamble.id, time_spent=100)
    record = ledger.start(member.id, art14.id)
    ledger.record_quiz_attempt(record, 90, 10, 9)
    ledger.update(member.id, art14.id, time_spent=50)
    other, _ = ledger.find_or_create(member.id, art19.id)
    ledger.record_quiz_attempt(other, 70, 10, 7)
    ledger.toggle_bookmark(other)
    db.commit()

    overview = ledger.overall_progress(member.id)
    assert overview == {
        "totalContent": 3,
        "completedContent": 1,
        "inProgressContent": 1,
        "bookmarkedContent": 1,
        "totalTimeSpent": 150,
        "averageScore": 80.0,
    }


def test_overall_progress_empty(ledger, member):
    assert ledger.overall_progress(member.id) == {
        "totalContent": 0,
        "completedContent": 0,
        "inProgressContent": 0,
        "bookmarkedContent": 0,
        "totalTimeSpent": 0,
        "averageScore": 0,
    }


def test_list_filters_and_pagination(db, ledger, member, contents):
    for content in contents.values():
        ledger.start(member.id, content.id)
    record = ledger.find(member.id, contents["preamble"].id)
    ledger.complete(record)
    ledger.toggle_bookmark(record)
    db.commit()

    items, total = ledger.list_for_user(member.id, page=1, limit=2)
    assert total == 4
    assert len(items) == 2

    completed, total = ledger.list_for_user(member.id, status="completed")
    assert total == 1
    assert completed[0].content_id == contents["preamble"].id

    bookmarked, total = ledger.bookmarks(member.id)
    assert total == 1
    assert bookmarked[0].is_bookmarked
