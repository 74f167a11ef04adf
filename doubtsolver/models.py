from __future__ import annotations

import dataclasses
import numbers
import typing as t

JsonDict = dict[str, t.Any]

DIFFICULTY_LEVELS = ("very_easy", "easy", "medium", "hard", "very_hard")
SOLVER_MODES = ("learning", "exam", "hint", "revision")


class SchemaError(ValueError):
    def __init__(self, path: str, problem: str) -> None:
        super().__init__(f"{path}: {problem}")
        self.path = path
        self.problem = problem


def _join(path: str, key: str | int) -> str:
    if isinstance(key, int):
        return f"{path}[{key}]"
    return f"{path}.{key}" if path else key


def _obj(value: t.Any, path: str) -> JsonDict:
    if not isinstance(value, dict):
        raise SchemaError(path or "<root>", f"expected object, got {type(value).__name__}")
    return t.cast(JsonDict, value)


def _field(data: JsonDict, key: str, path: str, *, required: bool = True, default: t.Any = None) -> t.Any:
    if key not in data or data[key] is None:
        if required:
            raise SchemaError(_join(path, key), "missing required field")
        return default
    return data[key]


def _str(data: JsonDict, key: str, path: str, *, required: bool = True) -> str:
    v = _field(data, key, path, required=required, default="")
    if not isinstance(v, str):
        raise SchemaError(_join(path, key), f"expected string, got {type(v).__name__}")
    return v


def _bool(data: JsonDict, key: str, path: str, *, required: bool = True) -> bool:
    v = _field(data, key, path, required=required, default=False)
    if not isinstance(v, bool):
        raise SchemaError(_join(path, key), f"expected boolean, got {type(v).__name__}")
    return v


def _number(data: JsonDict, key: str, path: str) -> float | int:
    v = _field(data, key, path)
    if isinstance(v, bool) or not isinstance(v, numbers.Real):
        raise SchemaError(_join(path, key), f"expected number, got {type(v).__name__}")
    return v


def _int(data: JsonDict, key: str, path: str) -> int:
    v = _number(data, key, path)
    if isinstance(v, float):
        if not v.is_integer():
            raise SchemaError(_join(path, key), f"expected integer, got {v!r}")
        return int(v)
    return int(v)


def _list(data: JsonDict, key: str, path: str, *, required: bool = True) -> list[t.Any]:
    v = _field(data, key, path, required=required, default=[])
    if not isinstance(v, list):
        raise SchemaError(_join(path, key), f"expected array, got {type(v).__name__}")
    return v


def _str_list(data: JsonDict, key: str, path: str, *, required: bool = True) -> list[str]:
    items = _list(data, key, path, required=required)
    for i, item in enumerate(items):
        if not isinstance(item, str):
            raise SchemaError(_join(_join(path, key), i), f"expected string, got {type(item).__name__}")
    return list(items)


_T = t.TypeVar("_T")


def _obj_list(
    data: JsonDict,
    key: str,
    path: str,
    factory: t.Callable[[JsonDict, str], _T],
    *,
    required: bool = True,
) -> list[_T]:
    items = _list(data, key, path, required=required)
    base = _join(path, key)
    return [factory(_obj(item, _join(base, i)), _join(base, i)) for i, item in enumerate(items)]


@dataclasses.dataclass(frozen=True)
class QuestionUnderstanding:
    clean_question: str
    detected_subject: str
    topic_tags: list[str]
    raw_ocr_text: str = ""
    diagram_reconstruction: str = ""

    @staticmethod
    def from_dict(data: JsonDict, path: str = "question_understanding") -> "QuestionUnderstanding":
        return QuestionUnderstanding(
            clean_question=_str(data, "clean_question", path),
            detected_subject=_str(data, "detected_subject", path),
            topic_tags=_str_list(data, "topic_tags", path),
            raw_ocr_text=_str(data, "raw_ocr_text", path, required=False),
            diagram_reconstruction=_str(data, "diagram_reconstruction", path, required=False),
        )


@dataclasses.dataclass(frozen=True)
class Difficulty:
    level: str
    estimated_student_time_minutes: float | int
    confidence_score: float | int
    uncertainty_notes: str = ""

    @staticmethod
    def from_dict(data: JsonDict, path: str = "difficulty") -> "Difficulty":
        level = _str(data, "level", path)
        if level not in DIFFICULTY_LEVELS:
            raise SchemaError(_join(path, "level"), f"unknown difficulty level {level!r}")
        confidence = _number(data, "confidence_score", path)
        if not 0 <= confidence <= 100:
            raise SchemaError(_join(path, "confidence_score"), f"out of range 0-100: {confidence!r}")
        return Difficulty(
            level=level,
            estimated_student_time_minutes=_number(data, "estimated_student_time_minutes", path),
            confidence_score=confidence,
            uncertainty_notes=_str(data, "uncertainty_notes", path, required=False),
        )


@dataclasses.dataclass(frozen=True)
class Step:
    step_number: int
    title: str
    content: str
    concepts_applied: list[str]

    @staticmethod
    def from_dict(data: JsonDict, path: str = "step") -> "Step":
        return Step(
            step_number=_int(data, "step_number", path),
            title=_str(data, "title", path),
            content=_str(data, "content", path),
            concepts_applied=_str_list(data, "concepts_applied", path),
        )


@dataclasses.dataclass(frozen=True)
class AlternativeMethod:
    method_name: str
    description: str
    steps: list[Step]

    @staticmethod
    def from_dict(data: JsonDict, path: str = "alternative_method") -> "AlternativeMethod":
        return AlternativeMethod(
            method_name=_str(data, "method_name", path),
            description=_str(data, "description", path, required=False),
            steps=_obj_list(data, "steps", path, Step.from_dict, required=False),
        )


@dataclasses.dataclass(frozen=True)
class KeyFormula:
    name: str
    formula_latex: str
    usage: str

    @staticmethod
    def from_dict(data: JsonDict, path: str = "key_formula") -> "KeyFormula":
        return KeyFormula(
            name=_str(data, "name", path),
            formula_latex=_str(data, "formula_latex", path),
            usage=_str(data, "usage", path),
        )


@dataclasses.dataclass(frozen=True)
class Theory:
    summary: str
    key_formulas: list[KeyFormula]
    key_points: list[str] = dataclasses.field(default_factory=list)

    @staticmethod
    def from_dict(data: JsonDict, path: str = "theory") -> "Theory":
        return Theory(
            summary=_str(data, "summary", path),
            key_formulas=_obj_list(data, "key_formulas", path, KeyFormula.from_dict),
            key_points=_str_list(data, "key_points", path, required=False),
        )


@dataclasses.dataclass(frozen=True)
class Flashcard:
    front: str
    back: str
    tag: str

    @staticmethod
    def from_dict(data: JsonDict, path: str = "flashcard") -> "Flashcard":
        return Flashcard(
            front=_str(data, "front", path),
            back=_str(data, "back", path),
            tag=_str(data, "tag", path),
        )


@dataclasses.dataclass(frozen=True)
class SimilarQuestion:
    difficulty: str
    question: str
    hint: str
    answer: str

    @staticmethod
    def from_dict(data: JsonDict, path: str = "similar_question") -> "SimilarQuestion":
        return SimilarQuestion(
            difficulty=_str(data, "difficulty", path),
            question=_str(data, "question", path),
            hint=_str(data, "hint", path),
            answer=_str(data, "answer", path),
        )


@dataclasses.dataclass(frozen=True)
class TeacherNotes:
    where_student_may_struggle: list[str]
    progression_level: str
    recommended_followup_topics: list[str] = dataclasses.field(default_factory=list)

    @staticmethod
    def from_dict(data: JsonDict, path: str = "teacher_notes") -> "TeacherNotes":
        return TeacherNotes(
            where_student_may_struggle=_str_list(data, "where_student_may_struggle", path),
            progression_level=_str(data, "progression_level", path),
            recommended_followup_topics=_str_list(data, "recommended_followup_topics", path, required=False),
        )


@dataclasses.dataclass(frozen=True)
class SafetyAndIntegrity:
    is_homework_like: bool = True
    mode_used: str = ""
    message_to_student: str = ""

    @staticmethod
    def from_dict(data: JsonDict, path: str = "safety_and_integrity") -> "SafetyAndIntegrity":
        return SafetyAndIntegrity(
            is_homework_like=_bool(data, "is_homework_like", path, required=False),
            mode_used=_str(data, "mode_used", path, required=False),
            message_to_student=_str(data, "message_to_student", path, required=False),
        )


@dataclasses.dataclass(frozen=True)
class SolutionDocument:
    question_understanding: QuestionUnderstanding
    difficulty: Difficulty
    short_answer: str
    step_by_step_solution: list[Step]
    hints_only: list[str]
    common_mistakes: list[str]
    theory: Theory
    flashcards: list[Flashcard]
    similar_questions: list[SimilarQuestion]
    teacher_notes: TeacherNotes
    language_used: str
    alternative_methods: list[AlternativeMethod] = dataclasses.field(default_factory=list)
    prerequisite_concepts: list[str] = dataclasses.field(default_factory=list)
    skills_tested: list[str] = dataclasses.field(default_factory=list)
    solution_latex: str = ""
    safety_and_integrity: SafetyAndIntegrity = dataclasses.field(default_factory=SafetyAndIntegrity)

    def to_dict(self) -> JsonDict:
        return dataclasses.asdict(self)

    @staticmethod
    def from_dict(data: JsonDict) -> "SolutionDocument":
        data = _obj(data, "")
        safety = data.get("safety_and_integrity")
        return SolutionDocument(
            question_understanding=QuestionUnderstanding.from_dict(
                _obj(_field(data, "question_understanding", ""), "question_understanding")
            ),
            difficulty=Difficulty.from_dict(_obj(_field(data, "difficulty", ""), "difficulty")),
            short_answer=_str(data, "short_answer", ""),
            step_by_step_solution=_obj_list(data, "step_by_step_solution", "", Step.from_dict),
            hints_only=_str_list(data, "hints_only", ""),
            common_mistakes=_str_list(data, "common_mistakes", ""),
            theory=Theory.from_dict(_obj(_field(data, "theory", ""), "theory")),
            flashcards=_obj_list(data, "flashcards", "", Flashcard.from_dict),
            similar_questions=_obj_list(data, "similar_questions", "", SimilarQuestion.from_dict),
            teacher_notes=TeacherNotes.from_dict(_obj(_field(data, "teacher_notes", ""), "teacher_notes")),
            language_used=_str(data, "language_used", ""),
            alternative_methods=_obj_list(
                data, "alternative_methods", "", AlternativeMethod.from_dict, required=False
            ),
            prerequisite_concepts=_str_list(data, "prerequisite_concepts", "", required=False),
            skills_tested=_str_list(data, "skills_tested", "", required=False),
            solution_latex=_str(data, "solution_latex", "", required=False),
            safety_and_integrity=(
                SafetyAndIntegrity()
                if safety is None
                else SafetyAndIntegrity.from_dict(_obj(safety, "safety_and_integrity"))
            ),
        )

    def iter_math_fields(self) -> t.Iterator[tuple[str, str]]:
        """Yield ``(path, text)`` for every field that may mix prose and LaTeX."""
        yield "short_answer", self.short_answer
        for i, step in enumerate(self.step_by_step_solution):
            yield f"step_by_step_solution[{i}].content", step.content
        for m, method in enumerate(self.alternative_methods):
            for i, step in enumerate(method.steps):
                yield f"alternative_methods[{m}].steps[{i}].content", step.content
        for i, hint in enumerate(self.hints_only):
            yield f"hints_only[{i}]", hint
        yield "theory.summary", self.theory.summary
        for i, formula in enumerate(self.theory.key_formulas):
            yield f"theory.key_formulas[{i}].formula_latex", formula.formula_latex
        for i, card in enumerate(self.flashcards):
            yield f"flashcards[{i}].front", card.front
            yield f"flashcards[{i}].back", card.back
        for i, q in enumerate(self.similar_questions):
            yield f"similar_questions[{i}].question", q.question
            yield f"similar_questions[{i}].hint", q.hint
            yield f"similar_questions[{i}].answer", q.answer


@dataclasses.dataclass(frozen=True)
class AttemptFeedback:
    correct: bool
    feedback: str
    correction: str

    def to_dict(self) -> JsonDict:
        return dataclasses.asdict(self)

    @staticmethod
    def from_dict(data: JsonDict) -> "AttemptFeedback":
        data = _obj(data, "")
        return AttemptFeedback(
            correct=_bool(data, "correct", ""),
            feedback=_str(data, "feedback", ""),
            correction=_str(data, "correction", "", required=False),
        )


@dataclasses.dataclass(frozen=True)
class ExamQuestion:
    id: int
    difficulty: str
    text: str
    answer: str

    @staticmethod
    def from_dict(data: JsonDict, path: str = "question") -> "ExamQuestion":
        return ExamQuestion(
            id=_int(data, "id", path),
            difficulty=_str(data, "difficulty", path),
            text=_str(data, "text", path),
            answer=_str(data, "answer", path, required=False),
        )


@dataclasses.dataclass(frozen=True)
class PracticeExam:
    title: str
    questions: list[ExamQuestion]

    def to_dict(self) -> JsonDict:
        return dataclasses.asdict(self)

    @staticmethod
    def from_dict(data: JsonDict) -> "PracticeExam":
        data = _obj(data, "")
        return PracticeExam(
            title=_str(data, "title", ""),
            questions=_obj_list(data, "questions", "", ExamQuestion.from_dict),
        )


@dataclasses.dataclass(frozen=True)
class ChatMessage:
    role: t.Literal["user", "model"]
    text: str

    def to_dict(self) -> JsonDict:
        return {"role": self.role, "text": self.text}

    @staticmethod
    def from_dict(data: JsonDict) -> "ChatMessage":
        role = str(data.get("role") or "user")
        if role not in ("user", "model"):
            role = "user"
        return ChatMessage(role=t.cast(t.Literal["user", "model"], role), text=str(data.get("text") or ""))
