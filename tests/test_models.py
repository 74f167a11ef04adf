import os
import sys
import unittest

sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from doubtsolver.models import (
    ChatMessage,
    PracticeExam,
    SafetyAndIntegrity,
    SchemaError,
    SolutionDocument,
)
from sample_data import solution_dict


class TestSolutionDocument(unittest.TestCase):
    def test_optional_fields_default(self):
        doc = SolutionDocument.from_dict(solution_dict())
        self.assertEqual(doc.alternative_methods, [])
        self.assertEqual(doc.solution_latex, "")
        self.assertEqual(doc.safety_and_integrity, SafetyAndIntegrity())

    def test_optional_fields_parsed(self):
        data = solution_dict()
        data["alternative_methods"] = [
            {
                "method_name": "Quadratic formula",
                "description": "Plug in",
                "steps": [{"step_number": 1, "title": "Plug", "content": "$a=1$", "concepts_applied": []}],
            }
        ]
        data["safety_and_integrity"] = {"is_homework_like": False, "mode_used": "exam", "message_to_student": "Hi"}
        doc = SolutionDocument.from_dict(data)
        self.assertEqual(doc.alternative_methods[0].steps[0].content, "$a=1$")
        self.assertFalse(doc.safety_and_integrity.is_homework_like)

    def test_wrong_type_reports_path(self):
        data = solution_dict()
        data["step_by_step_solution"][1]["content"] = 7
        with self.assertRaises(SchemaError) as ctx:
            SolutionDocument.from_dict(data)
        self.assertEqual(ctx.exception.path, "step_by_step_solution[1].content")

    def test_unknown_difficulty_level(self):
        data = solution_dict()
        data["difficulty"]["level"] = "impossible"
        with self.assertRaises(SchemaError):
            SolutionDocument.from_dict(data)

    def test_confidence_out_of_range(self):
        data = solution_dict()
        data["difficulty"]["confidence_score"] = 140
        with self.assertRaises(SchemaError):
            SolutionDocument.from_dict(data)

    def test_bool_is_not_a_number(self):
        data = solution_dict()
        data["difficulty"]["estimated_student_time_minutes"] = True
        with self.assertRaises(SchemaError):
            SolutionDocument.from_dict(data)

    def test_integral_float_step_number(self):
        data = solution_dict()
        data["step_by_step_solution"][0]["step_number"] = 1.0
        doc = SolutionDocument.from_dict(data)
        self.assertEqual(doc.step_by_step_solution[0].step_number, 1)

    def test_null_required_field(self):
        data = solution_dict()
        data["language_used"] = None
        with self.assertRaises(SchemaError):
            SolutionDocument.from_dict(data)

    def test_iter_math_fields(self):
        doc = SolutionDocument.from_dict(solution_dict())
        fields = dict(doc.iter_math_fields())
        self.assertEqual(fields["short_answer"], "$x = 2$ or $x = 3$")
        self.assertIn("step_by_step_solution[1].content", fields)
        self.assertIn("theory.key_formulas[0].formula_latex", fields)
        self.assertIn("flashcards[0].back", fields)
        self.assertIn("similar_questions[0].answer", fields)
        self.assertIn("hints_only[0]", fields)
        self.assertNotIn("language_used", fields)


class TestAuxiliaryModels(unittest.TestCase):
    def test_practice_exam(self):
        exam = PracticeExam.from_dict(
            {
                "title": "Practice Exam: Limits",
                "questions": [{"id": 1, "difficulty": "Easy", "text": r"$\lim_{x\to 0} x$", "answer": "0"}],
            }
        )
        self.assertEqual(exam.questions[0].id, 1)
        self.assertEqual(exam.to_dict()["questions"][0]["answer"], "0")

    def test_chat_message_unknown_role(self):
        self.assertEqual(ChatMessage.from_dict({"role": "system", "text": "x"}).role, "user")


if __name__ == "__main__":
    unittest.main()
