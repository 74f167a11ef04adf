from __future__ import annotations

import logging
import typing as t

from flask import Flask, jsonify, request

from doubtsolver.config import configure_logging, get_settings
from doubtsolver.decoder import DecodeError, decode
from doubtsolver.delimiters import normalize
from doubtsolver.models import ChatMessage, SolutionDocument
from doubtsolver.rendering import html_renderer
from doubtsolver.segmenter import segment
from doubtsolver.solver import DoubtSolverUtil

logger = logging.getLogger("doubtsolver.server")

server = Flask(__name__)

# Set by the hosting process once a model service is available.
ai_util: DoubtSolverUtil | None = None

renderer = html_renderer()


def _segments_json(text: str) -> list[dict[str, str]]:
    return [s.to_dict() for s in segment(normalize(text))]


def _payload() -> dict[str, t.Any]:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def _decode_error(e: DecodeError):
    return jsonify({"error": e.message, "retryable": True}), 422


def _solution_response(doc: SolutionDocument) -> dict[str, t.Any]:
    return {
        "solution": doc.to_dict(),
        "segments": {path: _segments_json(text) for path, text in doc.iter_math_fields()},
    }


@server.route("/api/hello")
def hello():
    return jsonify({"message": "API Working!"})


@server.route("/api/segmentText", methods=["POST"])
def segment_text():
    text = _payload().get("text")
    if not isinstance(text, str):
        return jsonify({"error": "No text provided"}), 400
    return jsonify({"segments": _segments_json(text)})


@server.route("/api/renderText", methods=["POST"])
def render_text():
    text = _payload().get("text")
    if not isinstance(text, str):
        return jsonify({"error": "No text provided"}), 400
    return jsonify({"html": renderer.render_text(text)})


@server.route("/api/decodeSolution", methods=["POST"])
def decode_solution():
    if request.is_json:
        raw = _payload().get("raw")
    else:
        raw = request.get_data(as_text=True)
    if not isinstance(raw, str) or not raw.strip():
        return jsonify({"error": "No raw response provided"}), 400
    try:
        doc = decode(raw)
    except DecodeError as e:
        return _decode_error(e)
    return jsonify(_solution_response(doc))


@server.route("/api/analyzeImage", methods=["POST"])
def analyze_image():
    if not ai_util:
        return jsonify({"error": "AI module not initialized"}), 500

    data = _payload()
    image = data.get("image")
    if not isinstance(image, str) or not image:
        return jsonify({"error": "No image provided"}), 400

    try:
        doc = ai_util.analyze_image(
            image=image,
            mode=str(data.get("mode") or "learning"),
            language=data.get("language") or None,
        )
    except ValueError as e:
        return jsonify({"error": str(e)}), 400
    except DecodeError as e:
        return _decode_error(e)
    except Exception as e:
        logger.exception("Error analyzing image")
        return jsonify({"error": f"Failed to analyze image: {str(e)}"}), 502

    return jsonify(_solution_response(doc))


@server.route("/api/checkAttempt", methods=["POST"])
def check_attempt():
    if not ai_util:
        return jsonify({"error": "AI module not initialized"}), 500

    data = _payload()
    attempt = data.get("attempt")
    if not isinstance(attempt, str) or not attempt.strip():
        return jsonify({"error": "No attempt provided"}), 400

    try:
        result = ai_util.check_student_attempt(
            question=str(data.get("question") or ""),
            correct_solution=str(data.get("correctSolution") or ""),
            student_attempt=attempt,
        )
    except DecodeError as e:
        return _decode_error(e)
    except Exception as e:
        logger.exception("Attempt check failed")
        return jsonify({"error": f"Failed to check attempt: {str(e)}"}), 502

    return jsonify({
        "correct": result.correct,
        "feedback": _segments_json(result.feedback),
        "correction": _segments_json(result.correction),
    })


@server.route("/api/practiceExam", methods=["POST"])
def practice_exam():
    if not ai_util:
        return jsonify({"error": "AI module not initialized"}), 500

    data = _payload()
    topic = data.get("topic")
    if not isinstance(topic, str) or not topic.strip():
        return jsonify({"error": "No topic provided"}), 400

    try:
        exam = ai_util.generate_practice_exam(topic=topic, level=str(data.get("level") or "medium"))
    except DecodeError as e:
        return _decode_error(e)
    except Exception as e:
        logger.exception("Practice exam generation failed")
        return jsonify({"error": f"Failed to generate exam: {str(e)}"}), 502

    return jsonify(exam.to_dict())


@server.route("/api/narration", methods=["POST"])
def narration():
    if not ai_util:
        return jsonify({"error": "AI module not initialized"}), 500

    raw = _payload().get("solution")
    if not isinstance(raw, dict):
        return jsonify({"error": "No solution provided"}), 400
    try:
        doc = SolutionDocument.from_dict(raw)
    except ValueError as e:
        return jsonify({"error": f"Invalid solution: {str(e)}"}), 400

    try:
        lines = ai_util.generate_narration(solution=doc)
    except Exception as e:
        logger.exception("Narration failed")
        return jsonify({"error": f"Failed to generate narration: {str(e)}"}), 502

    return jsonify({"lines": lines})


@server.route("/api/tutorChat", methods=["POST"])
def tutor_chat():
    if not ai_util:
        return jsonify({"error": "AI module not initialized"}), 500

    data = _payload()
    message = data.get("message")
    if not isinstance(message, str) or not message.strip():
        return jsonify({"error": "No message provided"}), 400

    solution = None
    if isinstance(data.get("solution"), dict):
        try:
            solution = SolutionDocument.from_dict(data["solution"])
        except ValueError as e:
            return jsonify({"error": f"Invalid solution: {str(e)}"}), 400

    history = [ChatMessage.from_dict(m) for m in data.get("history") or [] if isinstance(m, dict)]

    try:
        reply = ai_util.ask_tutor(solution=solution, history=history, message=message)
    except Exception as e:
        logger.exception("Tutor chat failed")
        return jsonify({"error": f"Tutor unavailable: {str(e)}"}), 502

    return jsonify({
        "role": reply.role,
        "text": reply.text,
        "segments": _segments_json(reply.text),
    })


if __name__ == '__main__':
    import set_env_vars

    set_env_vars.load()
    settings = get_settings()
    configure_logging(settings)
    server.run(port=settings.port)
