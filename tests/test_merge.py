from datetime import datetime, timezone

from merge import (
    attempt_id, incoming_answers, merge_answers, merge_attempt, merge_progress,
)

NOW = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


def _payload(**extra):
    base = {"quizId": "quiz-1", "email": "a@x.com", "score": 1, "totalQuestions": 3, "submitted": False}
    base.update(extra)
    return base


def test_attempt_id_is_composite():
    assert attempt_id("quiz-1", "a@x.com") == "quiz-1::a@x.com"


def test_empty_string_does_not_erase_answer():
    assert merge_answers({"q1": "A"}, {"q1": ""}) == {"q1": "A"}
    assert merge_answers({"q1": "A"}, {"q1": "   "}) == {"q1": "A"}


def test_non_empty_answer_overwrites():
    assert merge_answers({"q1": "A"}, {"q1": "B"}) == {"q1": "B"}


def test_null_answer_skipped_and_new_keys_added():
    assert merge_answers({"q1": "A"}, {"q1": None, "q2": 3}) == {"q1": "A", "q2": 3}


def test_progress_skips_only_null():
    assert merge_progress({"p1": 5}, {"p1": None}) == {"p1": 5}
    assert merge_progress({"p1": 5}, {"p1": ""}) == {"p1": ""}
    assert merge_progress(None, {"p2": 0}) == {"p2": 0}


def test_top_level_question_keys_count_as_answers():
    payload = {"answers": {"q1": "A", "q2": "B"}, "q2": "C", "q10": "D", "quizId": "x", "question": "no"}
    assert incoming_answers(payload) == {"q1": "A", "q2": "C", "q10": "D"}


def test_merge_without_existing_record():
    doc = merge_attempt(None, _payload(answers={"q1": "A"}, progress={"p": 1}), now=NOW)
    assert doc["id"] == "quiz-1::a@x.com"
    assert doc["answers"] == {"q1": "A"}
    assert doc["progress"] == {"p": 1}
    assert doc["submittedAt"] == NOW.isoformat()


def test_scalar_fields_always_come_from_payload():
    existing = {"answers": {"q1": "A"}, "score": 3, "totalQuestions": 3, "submitted": True}
    doc = merge_attempt(existing, _payload(score=0, submitted=False), now=NOW)
    assert doc["score"] == 0
    assert doc["submitted"] is False
    assert doc["answers"] == {"q1": "A"}


def test_merge_is_idempotent():
    existing = {"answers": {"q1": "A", "q2": "B"}, "progress": {"p1": 5}}
    payload = _payload(answers={"q1": "", "q3": "C"}, q2=None, progress={"p1": None, "p2": 7})
    once = merge_attempt(existing, payload, now=NOW)
    twice = merge_attempt(once, payload, now=NOW)
    assert once == twice
    assert once["answers"] == {"q1": "A", "q2": "B", "q3": "C"}
    assert once["progress"] == {"p1": 5, "p2": 7}


def test_existing_mapping_is_not_mutated():
    existing = {"answers": {"q1": "A"}}
    merge_attempt(existing, _payload(q1="B"), now=NOW)
    assert existing == {"answers": {"q1": "A"}}


def test_question_key_must_match_whole_key():
    assert incoming_answers({"q1\n": "A", "q2": "B", "xq3": "C"}) == {"q2": "B"}
