from datetime import datetime, timedelta, timezone

from sqlalchemy import event
from sqlalchemy.exc import OperationalError

from conftest import engine

from gradeflow.models.enums import SubmissionStatus
from gradeflow.services import summary as summary_service
from gradeflow.services.queries import AssessmentScope, list_submissions
from gradeflow.services.summary import summarize, summarize_course, try_summarize

BASE = datetime(2026, 5, 1, 9, 0, tzinfo=timezone.utc)


def _seed_mix(make_submission, seed):
    make_submission(seed.quiz_id, seed.student_id, attempt_number=1, status=SubmissionStatus.GRADED, score=90, submitted_at=BASE)
    make_submission(seed.quiz_id, seed.student_id, attempt_number=2, status=SubmissionStatus.LATE, submitted_at=BASE + timedelta(hours=1))
    make_submission(seed.quiz_id, seed.student2_id, attempt_number=1, submitted_at=BASE + timedelta(hours=2))
    make_submission(seed.quiz_id, seed.student2_id, attempt_number=2, status=SubmissionStatus.DRAFT)


def test_summary_counts_each_status(db, seed, make_submission):
    _seed_mix(make_submission, seed)

    s = summarize(db, AssessmentScope(seed.quiz_id))

    assert (s.total, s.submitted, s.graded, s.late) == (4, 1, 1, 1)
    assert s.last_submitted_at.replace(tzinfo=None) == (BASE + timedelta(hours=2)).replace(tzinfo=None)
    assert s.unavailable == []


def test_summary_of_empty_assessment(db, seed):
    s = summarize(db, AssessmentScope(seed.quiz_id))
    assert (s.total, s.submitted, s.graded, s.late) == (0, 0, 0, 0)
    assert s.last_submitted_at is None


def _failing_for(status_to_fail):
    def fake(db, scope, status=None, page=1, limit=10, search=None):
        if status == status_to_fail:
            raise OperationalError("SELECT ...", {}, Exception("database is locked"))
        return list_submissions(db, scope, status=status, page=page, limit=limit, search=search)

    return fake


def test_scenario_f_late_count_unavailable(db, seed, make_submission, monkeypatch):
    _seed_mix(make_submission, seed)
    monkeypatch.setattr(summary_service, "list_submissions", _failing_for(SubmissionStatus.LATE))

    s = summarize(db, AssessmentScope(seed.quiz_id))

    assert s.total == 4
    assert s.submitted == 1
    assert s.graded == 1
    assert s.late is None
    assert s.unavailable == ["late"]
    assert s.last_submitted_at is not None


def test_failed_total_query_drops_last_submitted_at(db, seed, make_submission, monkeypatch):
    _seed_mix(make_submission, seed)
    monkeypatch.setattr(summary_service, "list_submissions", _failing_for(None))

    s = summarize(db, AssessmentScope(seed.quiz_id))

    assert s.total is None
    assert s.last_submitted_at is None
    assert (s.submitted, s.graded, s.late) == (1, 1, 1)


def test_try_summarize_swallows_whole_failure(db, seed, monkeypatch):
    def broken(db, scope):
        raise OperationalError("SELECT ...", {}, Exception("gone"))

    monkeypatch.setattr(summary_service, "summarize", broken)
    assert try_summarize(db, AssessmentScope(seed.quiz_id)) is None


def test_summarize_course_follows_catalog_order(db, seed, make_submission):
    make_submission(seed.closed_id, seed.student_id, status=SubmissionStatus.LATE)

    rows = summarize_course(db, seed.course_id)

    assert [a.id for a, _ in rows] == [seed.quiz_id, seed.closed_id, seed.unpublished_id]
    assert rows[1][1].late == 1
    assert rows[0][1].total == 0


def test_store_down_from_late_query_keeps_loaded_counts(db, seed, make_submission, monkeypatch):
    make_submission(seed.quiz_id, seed.student_id, status=SubmissionStatus.GRADED, score=80, submitted_at=BASE)
    make_submission(seed.quiz_id, seed.student2_id, submitted_at=BASE + timedelta(hours=1))

    def connection_lost(conn, cursor, statement, parameters, context, executemany):
        raise OperationalError(statement, parameters, Exception("server closed the connection"))

    real = summary_service.list_submissions

    def store_goes_down(db, scope, status=None, **kwargs):
        if status == SubmissionStatus.LATE:
            event.listen(engine, "before_cursor_execute", connection_lost)
        return real(db, scope, status=status, **kwargs)

    monkeypatch.setattr(summary_service, "list_submissions", store_goes_down)

    try:
        s = summarize(db, AssessmentScope(seed.quiz_id))
    finally:
        if event.contains(engine, "before_cursor_execute", connection_lost):
            event.remove(engine, "before_cursor_execute", connection_lost)

    assert (s.total, s.submitted, s.graded, s.late) == (2, 1, 1, None)
    assert s.unavailable == ["late"]
    assert s.last_submitted_at.replace(tzinfo=None) == (BASE + timedelta(hours=1)).replace(tzinfo=None)
