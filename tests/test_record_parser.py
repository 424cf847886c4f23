import pytest

from eurolytics.core.record_parser import (
    RecordFormatError,
    parse_attempt,
    parse_idea,
    parse_project,
    parse_question,
    parse_quiz,
    parse_timestamp,
    parse_user,
)


def test_quiz_questions_follow_order_column():
    row = {
        "id": "q1",
        "title": " Quiz ",
        "max_points": "40",
        "time_limit": 90,
        "quiz_questions": [
            {"id": "b", "order": 2, "question": "Second?", "options": ["x", "y"], "correct_answer": 1, "points": 20},
            {"id": "a", "order": 1, "question": "First?", "options": ["x", "y"], "correct_answer": 0, "points": 20},
        ],
    }
    quiz = parse_quiz(row)
    assert [question.id for question in quiz.questions] == ["a", "b"]
    assert quiz.title == "Quiz"
    assert quiz.max_points == 40
    assert quiz.time_limit_seconds == 90


def test_fetch_order_kept_without_order_column():
    row = {
        "id": "q1",
        "questions": [
            {"id": "b", "prompt": "B?", "options": ["x", "y"]},
            {"id": "a", "prompt": "A?", "options": ["x", "y"]},
        ],
    }
    assert [question.id for question in parse_quiz(row).questions] == ["b", "a"]


def test_question_accepts_legacy_shape():
    question = parse_question(
        {"id": 7, "prompt": "Pick", "options": '["one", "two", "three"]', "correct_option_index": "2", "points": 5}
    )
    assert question.id == "7"
    assert question.question_text == "Pick"
    assert question.options == ("one", "two", "three")
    assert question.correct_option_index == 2


def test_option_objects_use_text():
    question = parse_question({"id": "q", "question": "?", "options": [{"text": "yes"}, {"text": "no"}]})
    assert question.options == ("yes", "no")


def test_out_of_range_answer_key_becomes_none():
    """Invalid answer keys degrade to an unscorable question instead of failing the quiz."""
    question = parse_question({"id": "q", "question": "?", "options": ["a", "b"], "correct_answer": 4})
    assert question.correct_option_index is None


def test_question_with_single_option_is_rejected():
    with pytest.raises(RecordFormatError):
        parse_question({"id": "q", "question": "?", "options": ["only"]})


def test_question_without_text_is_rejected():
    with pytest.raises(RecordFormatError):
        parse_question({"id": "q", "options": ["a", "b"]})


def test_quiz_without_id_is_rejected():
    with pytest.raises(RecordFormatError):
        parse_quiz({"title": "No id"})


def test_user_defaults():
    user = parse_user({"id": "u1", "email": "a@b.c", "points": None})
    assert user.role == "colaborador"
    assert user.points == 0


def test_attempt_reads_embedded_quiz_max_and_json_answers():
    attempt = parse_attempt(
        {"id": "a1", "user_id": "u1", "quiz_id": "q1", "score": 30, "answers": '{"x": 1, "y": "bad"}', "quizzes": {"max_points": 60}}
    )
    assert attempt.answers == {"x": 1}
    assert attempt.quiz_max_points == 60


def test_attempt_quiz_max_falls_back_to_question_points():
    attempt = parse_attempt(
        {"id": "a1", "quiz_id": "q1", "score": 15, "quizzes": {"max_points": 0, "questions": [{"points": 15}, {"points": 15}]}}
    )
    assert attempt.quiz_max_points == 30


def test_legacy_project_statuses_map_to_active():
    project = parse_project({"id": "p", "status": "Execucao", "max_participants": None})
    assert project.status == "ativo"
    assert project.max_participants == 8


def test_timestamps():
    assert parse_timestamp("2026-01-02T03:04:05Z").tzinfo is not None
    assert parse_timestamp("not a date") is None
    assert parse_timestamp(None) is None


def test_infinite_numbers_fall_back_to_zero():
    idea = parse_idea({"id": "i", "points_awarded": "inf", "project_max": float("inf")})
    assert idea.points_awarded == 0
    assert idea.project_max is None


def test_idea_project_proposal_fields():
    idea = parse_idea({"id": "i", "propose_project": True, "project_max": "6"})
    assert idea.propose_project
    assert idea.project_max == 6
    assert not parse_idea({"id": "j"}).propose_project
