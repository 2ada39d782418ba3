import json

from bank import (
    QuestionModel,
    correct_index,
    display_question,
    load_quiz_files,
    parse_questions,
)


def test_true_false_renders_two_fixed_options():
    q = QuestionModel(
        id=4, type="true-false", question="Water is wet.", options=["yes", "no", "maybe"]
    )
    d = display_question(q, original_index=0, display_index=2)
    assert d["options"] == [
        {"text": "True", "value": "true", "index": 0},
        {"text": "False", "value": "false", "index": 1},
    ]
    assert d["displayIndex"] == 2
    assert d["id"] == "4"


def test_empty_option_text_is_synthesized():
    q = QuestionModel.model_validate(
        {"id": 9, "question": "Pick", "options": ["A", "", None, {"text": "  "}, {"text": "E"}]}
    )
    opts = display_question(q, 0, 0)["options"]
    assert [o["text"] for o in opts] == ["A", "Option 2", "Option 3", "Option 4", "E"]
    assert [o["value"] for o in opts] == ["A", "option_1", "option_2", "option_3", "E"]


def test_question_without_options_gets_four_placeholders():
    q = QuestionModel(id=1, question="Pick")
    opts = display_question(q, 0, 0)["options"]
    assert len(opts) == 4
    assert opts[3] == {"text": "Option 4", "value": "option_3", "index": 3}


def test_display_form_never_exposes_correct_answers():
    q = QuestionModel.model_validate(
        {
            "id": 2,
            "question": "Pick",
            "options": [{"text": "a", "isCorrect": True}, {"text": "b"}],
            "correctAnswer": 0,
        }
    )
    rendered = json.dumps(display_question(q, 0, 0))
    assert "correct" not in rendered.lower()


def test_correct_index_forms():
    def q(answer):
        return QuestionModel(question="q", options=["a", "b"], correct_answer=answer)

    assert correct_index(q(1)) == 1
    assert correct_index(q("a")) == 0
    assert correct_index(q("z")) is None
    tf = QuestionModel(type="true-false", question="q", correct_answer="false")
    assert correct_index(tf) == 1


def test_parse_questions_skips_invalid_records():
    qs = parse_questions(
        [{"id": 1, "question": "ok"}, {"id": 2}, {"id": 3, "question": "x", "points": 0}]
    )
    assert [q.id for q in qs] == [1]


def test_load_quiz_files_reads_json_and_jsonl(tmp_path):
    (tmp_path / "one.json").write_text(
        json.dumps({"id": 1, "courseId": 1, "title": "Single", "questions": [{"question": "a"}]}),
        encoding="utf-8",
    )
    (tmp_path / "more.jsonl").write_text(
        "\n".join(
            [
                "# comment",
                json.dumps({"id": 2, "courseId": 2, "title": "Line one"}),
                "{not json",
                json.dumps({"id": 3, "courseId": 2, "title": ""}),  # fails validation
                json.dumps({"courseId": 2, "title": "No id"}),
            ]
        ),
        encoding="utf-8",
    )
    (tmp_path / "notes.txt").write_text("ignored", encoding="utf-8")

    titles = sorted(q.title for q in load_quiz_files(tmp_path))
    assert titles == ["Line one", "Single"]


def test_load_quiz_files_missing_dir(tmp_path):
    assert load_quiz_files(tmp_path / "nope") == []
