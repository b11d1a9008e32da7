import pytest

from conftest import make_question
from errors import NotFoundError, ValidationFailure
from models import Quiz, QuizResult
from services.quiz_authoring import QuizEditor, create_quiz, delete_quiz, list_quizzes, quiz_results
from services.quiz_engine import submit_quiz

OPTIONS = [{"text": "A"}, {"text": "B"}]


@pytest.fixture
def empty_quiz(make_quiz):
    return make_quiz([])


def test_add_question_appends_blank_two_option_question(empty_quiz):
    editor = QuizEditor(empty_quiz)

    index = editor.add_question()

    question = editor.questions[index]
    assert index == 0
    assert question.text == ""
    assert [o.text for o in question.options] == ["", ""]
    assert question.correct_answer == 0
    assert question.question_id.startswith("question_")


def test_question_ids_are_unique(empty_quiz):
    editor = QuizEditor(empty_quiz)
    for _ in range(5):
        editor.add_question()

    assert len({q.question_id for q in editor.questions}) == 5


def test_edit_with_empty_prompt_is_rejected_and_changes_nothing(empty_quiz):
    editor = QuizEditor(empty_quiz)
    editor.add_question()
    before = editor.questions[0].to_mongo().to_dict()

    with pytest.raises(ValidationFailure):
        editor.edit_question(0, "", OPTIONS, 0)

    assert len(editor.questions) == 1
    assert editor.questions[0].to_mongo().to_dict() == before


def test_edit_with_empty_option_is_rejected(empty_quiz):
    editor = QuizEditor(empty_quiz)
    editor.add_question()

    with pytest.raises(ValidationFailure):
        editor.edit_question(0, "Q1", [{"text": "A"}, {"text": "  "}], 0)


@pytest.mark.parametrize("options,correct", [
    ([{"text": "A"}], 0),
    ([{"text": t} for t in "ABCDE"], 0),
    (OPTIONS, 2),
])
def test_edit_enforces_option_bounds_and_correct_index(empty_quiz, options, correct):
    editor = QuizEditor(empty_quiz)
    editor.add_question()

    with pytest.raises(ValidationFailure):
        editor.edit_question(0, "Q1", options, correct)


def test_edit_replaces_question_and_keeps_its_id(empty_quiz):
    editor = QuizEditor(empty_quiz)
    editor.add_question()
    question_id = editor.questions[0].question_id

    editor.edit_question(0, " Q1 ", [{"text": "A", "image": "http://img/a.png"}, {"text": "B"}], 1,
                         image="http://img/q.png")

    question = editor.questions[0]
    assert question.question_id == question_id
    assert question.text == "Q1"
    assert question.image == "http://img/q.png"
    assert question.options[0].image == "http://img/a.png"
    assert question.correct_answer == 1


def test_remove_option_below_correct_decrements_index(make_quiz):
    quiz = make_quiz([make_question("Q", ["A", "B", "C", "D"], 2)])
    editor = QuizEditor(quiz)

    editor.remove_option(0, 1)

    assert editor.questions[0].correct_answer == 1
    assert [o.text for o in editor.questions[0].options] == ["A", "C", "D"]


def test_remove_correct_option_resets_index(make_quiz):
    quiz = make_quiz([make_question("Q", ["A", "B", "C", "D"], 2)])
    editor = QuizEditor(quiz)

    editor.remove_option(0, 2)

    assert editor.questions[0].correct_answer == 0


def test_remove_option_above_correct_keeps_index(make_quiz):
    quiz = make_quiz([make_question("Q", ["A", "B", "C"], 1)])
    editor = QuizEditor(quiz)

    editor.remove_option(0, 2)

    assert editor.questions[0].correct_answer == 1


def test_option_count_stays_between_two_and_four(make_quiz):
    quiz = make_quiz([make_question("Q", ["A", "B"], 0)])
    editor = QuizEditor(quiz)

    with pytest.raises(ValidationFailure):
        editor.remove_option(0, 0)

    editor.add_option(0)
    editor.add_option(0)
    with pytest.raises(ValidationFailure):
        editor.add_option(0)
    assert len(editor.questions[0].options) == 4


def test_edit_option_and_bad_indexes(make_quiz):
    quiz = make_quiz([make_question("Q", ["A", "B"], 0)])
    editor = QuizEditor(quiz)

    editor.edit_option(0, 1, "Bee", image="http://img/b.png")

    assert editor.questions[0].options[1].text == "Bee"
    with pytest.raises(NotFoundError):
        editor.edit_option(0, 3, "x")
    with pytest.raises(NotFoundError):
        editor.delete_question(4)


def test_save_writes_whole_sequence(make_quiz):
    quiz = make_quiz([make_question("Old", ["A", "B"], 0)])
    editor = QuizEditor(quiz)
    editor.delete_question(0)
    editor.edit_question(editor.add_question(), "New 1", OPTIONS, 1)
    editor.edit_question(editor.add_question(), "New 2", OPTIONS, 0)

    editor.save()

    stored = Quiz.objects.get(id=quiz.id)
    assert [q.text for q in stored.questions] == ["New 1", "New 2"]
    assert stored.questions[0].correct_answer == 1
    assert all(q.question_id for q in stored.questions)


def test_save_refuses_unfinished_questions(make_quiz):
    quiz = make_quiz([make_question("Q", ["A", "B"], 0)])
    editor = QuizEditor(quiz)
    editor.add_question()

    with pytest.raises(ValidationFailure):
        editor.save()

    assert len(Quiz.objects.get(id=quiz.id).questions) == 1


def test_editor_changes_stay_in_memory_until_saved(make_quiz):
    quiz = make_quiz([make_question("Q", ["A", "B"], 0)])
    editor = QuizEditor.load(str(quiz.id))

    editor.delete_question(0)

    assert len(Quiz.objects.get(id=quiz.id).questions) == 1


def test_create_quiz_requires_title(db):
    with pytest.raises(ValidationFailure):
        create_quiz("class-1", "teacher-1", "   ")
    with pytest.raises(ValidationFailure):
        create_quiz("class-1", "teacher-1", "Quiz", time_limit=0)


def test_create_quiz_starts_empty(db):
    quiz = create_quiz("class-1", "teacher-1", " Week 1 ", "Warm-up", time_limit=15)

    stored = Quiz.objects.get(id=quiz.id)
    assert stored.title == "Week 1"
    assert stored.questions == []
    assert stored.time_limit == 15
    assert stored.created_by == "teacher-1"


def test_list_quizzes_reports_attempts_and_average(three_question_quiz, make_quiz):
    untouched = make_quiz([], title="Later")
    submit_quiz(three_question_quiz, "s1", "class-1", {0: 1, 1: 0, 2: 3})
    submit_quiz(three_question_quiz, "s2", "class-1", {0: 1})

    rows = {str(r["quiz"].id): r for r in list_quizzes("class-1")}

    assert rows[str(three_question_quiz.id)]["total_attempts"] == 2
    assert rows[str(three_question_quiz.id)]["average_score"] == 2.0
    assert rows[str(untouched.id)]["average_score"] is None


def test_quiz_results_lists_unknown_students(three_question_quiz):
    submit_quiz(three_question_quiz, "s1", "class-1", {0: 1})

    report = quiz_results(str(three_question_quiz.id))

    assert report["total_attempts"] == 1
    assert report["results"][0]["name"] == "Unknown"
    assert report["results"][0]["score"] == 1


def test_delete_quiz_removes_its_results(three_question_quiz):
    submit_quiz(three_question_quiz, "s1", "class-1", {0: 1})

    delete_quiz(str(three_question_quiz.id))

    assert Quiz.objects.count() == 0
    assert QuizResult.objects.count() == 0
