import json
import os
import sys
import unittest
from unittest.mock import MagicMock

# Add the project root and this directory to sys.path so we can import main
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

import main
from doubtsolver.decoder import DecodeError
from doubtsolver.models import AttemptFeedback, ChatMessage, SolutionDocument
from sample_data import solution_dict, solution_json


class TestMainAPI(unittest.TestCase):
    def setUp(self):
        self.app = main.server.test_client()
        self.app.testing = True
        self.mock_ai = MagicMock()
        main.ai_util = self.mock_ai

    def tearDown(self):
        main.ai_util = None

    def test_hello(self):
        response = self.app.get("/api/hello")
        self.assertEqual(response.status_code, 200)

    def test_segment_text(self):
        response = self.app.post("/api/segmentText", json={"text": r"Solve \(x^2\) now"})
        self.assertEqual(response.status_code, 200)
        data = json.loads(response.data)
        self.assertEqual(
            data["segments"],
            [
                {"kind": "prose", "text": "Solve "},
                {"kind": "inline_math", "formula": "x^2"},
                {"kind": "prose", "text": " now"},
            ],
        )

    def test_segment_text_requires_text(self):
        response = self.app.post("/api/segmentText", json={})
        self.assertEqual(response.status_code, 400)

    def test_render_text(self):
        response = self.app.post("/api/renderText", json={"text": "**Area** is $x^2$"})
        self.assertEqual(response.status_code, 200)
        html = json.loads(response.data)["html"]
        self.assertIn("<strong>Area</strong>", html)
        self.assertIn("<math", html)

    def test_decode_solution_raw_body(self):
        response = self.app.post("/api/decodeSolution", data=solution_json(), content_type="text/plain")
        self.assertEqual(response.status_code, 200)
        data = json.loads(response.data)
        self.assertEqual(data["solution"]["difficulty"]["level"], "easy")
        self.assertEqual(
            data["segments"]["short_answer"],
            [
                {"kind": "inline_math", "formula": "x = 2"},
                {"kind": "prose", "text": " or "},
                {"kind": "inline_math", "formula": "x = 3"},
            ],
        )

    def test_decode_solution_json_body(self):
        response = self.app.post("/api/decodeSolution", json={"raw": solution_json()})
        self.assertEqual(response.status_code, 200)

    def test_decode_solution_invalid(self):
        response = self.app.post("/api/decodeSolution", json={"raw": '{"short_answer": "'})
        self.assertEqual(response.status_code, 422)
        data = json.loads(response.data)
        self.assertTrue(data["retryable"])

    def test_analyze_image(self):
        self.mock_ai.analyze_image.return_value = SolutionDocument.from_dict(solution_dict())
        response = self.app.post("/api/analyzeImage", json={"image": "aGVsbG8=", "mode": "hint"})
        self.assertEqual(response.status_code, 200)
        self.mock_ai.analyze_image.assert_called_once_with(image="aGVsbG8=", mode="hint", language=None)
        data = json.loads(response.data)
        self.assertIn("theory.summary", data["segments"])

    def test_analyze_image_decode_error(self):
        self.mock_ai.analyze_image.side_effect = DecodeError("The AI response was not valid JSON. Please try again.", "x")
        response = self.app.post("/api/analyzeImage", json={"image": "aGVsbG8="})
        self.assertEqual(response.status_code, 422)

    def test_analyze_image_without_ai(self):
        main.ai_util = None
        response = self.app.post("/api/analyzeImage", json={"image": "aGVsbG8="})
        self.assertEqual(response.status_code, 500)

    def test_check_attempt(self):
        self.mock_ai.check_student_attempt.return_value = AttemptFeedback(
            correct=False, feedback="Sign error", correction="$x=3$"
        )
        response = self.app.post(
            "/api/checkAttempt",
            json={"question": "Solve", "correctSolution": "x=3", "attempt": "x=-3"},
        )
        self.assertEqual(response.status_code, 200)
        data = json.loads(response.data)
        self.assertFalse(data["correct"])
        self.assertEqual(data["correction"], [{"kind": "inline_math", "formula": "x=3"}])

    def test_tutor_chat(self):
        self.mock_ai.ask_tutor.return_value = ChatMessage(role="model", text="Try $x=2$.")
        response = self.app.post(
            "/api/tutorChat",
            json={"message": "Help", "history": [{"role": "user", "text": "Hi"}], "solution": solution_dict()},
        )
        self.assertEqual(response.status_code, 200)
        data = json.loads(response.data)
        self.assertEqual(data["segments"][1], {"kind": "inline_math", "formula": "x=2"})
        kwargs = self.mock_ai.ask_tutor.call_args.kwargs
        self.assertEqual(kwargs["history"], [ChatMessage(role="user", text="Hi")])

    def test_narration_rejects_incomplete_solution(self):
        data = solution_dict()
        del data["theory"]
        response = self.app.post("/api/narration", json={"solution": data})
        self.assertEqual(response.status_code, 400)
        self.mock_ai.generate_narration.assert_not_called()

    def test_practice_exam_model_failure(self):
        self.mock_ai.generate_practice_exam.side_effect = RuntimeError("quota")
        response = self.app.post("/api/practiceExam", json={"topic": "Limits"})
        self.assertEqual(response.status_code, 502)


if __name__ == "__main__":
    unittest.main()
