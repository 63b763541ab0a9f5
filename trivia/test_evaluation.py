import pytest

from trivia import answer_keys, evaluation
from trivia.answer_keys import KeyEntry
from trivia.errors import GenerationError, NotFoundError
from trivia.generator import GRADER_SYSTEM_PROMPT
from trivia.models import QuizEvaluation


@pytest.fixture
def keys(ctx):
    answer_keys.store("quiz1", [
        KeyEntry(question_id="mc", answer="B", question_type="multiple_choice", explanation="B it is."),
        KeyEntry(question_id="tf", answer="false", question_type="true_false"),
        KeyEntry(question_id="sa", answer="Paris", question_type="short_answer", prompt="Capital of France?"),
    ], 600)


def test_multiple_choice_is_strict(keys):
    verdict = evaluation.evaluate("quiz1", "s1", "mc", " b ", authenticated=True)
    assert verdict.correct
    assert verdict.fresh
    assert verdict.explanation == "B it is."
    assert not evaluation.evaluate("quiz1", "s2", "mc", "A", authenticated=True).correct


def test_true_false_fallback_explanation(keys):
    verdict = evaluation.evaluate("quiz1", "s1", "tf", "TRUE", authenticated=True)
    assert not verdict.correct
    assert verdict.explanation == "The correct answer is: false"


def test_exact_short_answer_skips_the_grader(keys, fake):
    verdict = evaluation.evaluate("quiz1", "s1", "sa", "  paris ", authenticated=True)
    assert verdict.correct
    assert fake.calls_to(GRADER_SYSTEM_PROMPT) == []


def test_fuzzy_match_accepted_at_threshold(keys, fake):
    fake.grade_score = 0.85
    verdict = evaluation.evaluate("quiz1", "s1", "sa", "Paree", authenticated=True)
    assert verdict.correct
    assert verdict.explanation == "Correct! Your answer is acceptable."


def test_fuzzy_match_rejected_below_threshold(keys, fake):
    fake.grade_score = 0.84
    fake.grade_explanation = "Not the same city."
    verdict = evaluation.evaluate("quiz1", "s1", "sa", "Lyon", authenticated=True)
    assert not verdict.correct
    assert verdict.explanation == "Not the same city."


def test_guests_never_reach_the_grader(keys, fake):
    fake.grade_score = 1.0
    verdict = evaluation.evaluate("quiz1", "s1", "sa", "Paree", authenticated=False)
    assert not verdict.correct
    assert verdict.explanation.endswith("Paris")
    assert fake.calls_to(GRADER_SYSTEM_PROMPT) == []


def test_second_answer_returns_the_first_verdict(keys):
    first = evaluation.evaluate("quiz1", "s1", "mc", "A", authenticated=True)
    second = evaluation.evaluate("quiz1", "s1", "mc", "B", authenticated=True)
    assert not first.correct
    assert not second.correct
    assert not second.fresh
    assert second.to_payload()["already_answered"] is True
    assert QuizEvaluation.query.filter_by(evaluation_scope="s1", question_id="mc").count() == 1


def test_scopes_are_independent(keys):
    a = evaluation.evaluate("quiz1", "play-a", "mc", "B", authenticated=True)
    b = evaluation.evaluate("quiz1", "play-b", "mc", "C", authenticated=False)
    assert a.fresh and b.fresh
    assert a.correct and not b.correct
    assert evaluation.verdicts_for("play-a") == {"mc": True}
    assert evaluation.verdicts_for("play-b") == {"mc": False}


def test_unknown_question_is_not_found(keys):
    with pytest.raises(NotFoundError):
        evaluation.evaluate("quiz1", "s1", "nope", "A", authenticated=True)
    with pytest.raises(NotFoundError):
        evaluation.evaluate("other", "s1", "mc", "A", authenticated=True)


def test_disposable_container_is_dropped(keys):
    evaluation.evaluate("quiz1", "s1", "mc", "B", authenticated=True, disposable=True)
    assert answer_keys.entries_for("quiz1") == []


def test_grader_failure_releases_the_claim(ctx, keys, fake):
    class Unreachable:
        def complete(self, *_args):
            raise GenerationError()

    ctx.grader_client = Unreachable()
    with pytest.raises(GenerationError):
        evaluation.evaluate("quiz1", "s1", "sa", "Paree", authenticated=True)
    assert QuizEvaluation.query.filter_by(evaluation_scope="s1").count() == 0

    ctx.grader_client = fake
    fake.grade_score = 0.9
    assert evaluation.evaluate("quiz1", "s1", "sa", "Paree", authenticated=True).correct
