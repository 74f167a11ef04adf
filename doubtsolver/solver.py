from __future__ import annotations

import base64
import binascii
import dataclasses
import json
import logging
import re
import typing as t

from . import prompts
from .config import get_settings
from .decoder import DecodeError, decode, decode_json, decode_string_list
from .models import (
    SOLVER_MODES,
    AttemptFeedback,
    ChatMessage,
    PracticeExam,
    SolutionDocument,
)
from .rendering import to_plain_text

logger = logging.getLogger(__name__)

NARRATION_FALLBACK = ["Transcription unavailable."]

_DATA_URL_RE = re.compile(r"^data:(image/\w+);base64,(.+)$", re.DOTALL)
_IMAGE_PREFIX_RE = re.compile(r"^data:image/(png|jpeg|jpg|webp);base64,")


class ModelService(t.Protocol):
    """Transport to the language model. Returns the raw response text."""

    def generate_text(
        self,
        *,
        system_instruction: str,
        user_prompt: str,
        image_bytes: bytes | None = None,
        image_mime_type: str = "image/png",
        json_output: bool = True,
    ) -> str: ...


@dataclasses.dataclass(frozen=True)
class ImagePayload:
    mime_type: str
    data: bytes


def parse_image_data_url(value: str) -> ImagePayload:
    m = _DATA_URL_RE.match(value.strip())
    if m:
        mime_type, payload = m.group(1), m.group(2)
    else:
        mime_type, payload = "image/png", _IMAGE_PREFIX_RE.sub("", value.strip())
    try:
        data = base64.b64decode(payload, validate=False)
    except (binascii.Error, ValueError) as e:
        raise ValueError("image is not valid base64") from e
    if not data:
        raise ValueError("image is empty")
    return ImagePayload(mime_type=mime_type, data=data)


class DoubtSolverUtil:
    def __init__(self, *, model: ModelService) -> None:
        self.model = model

    def analyze_image(
        self,
        *,
        image: str | bytes,
        mode: str = "learning",
        language: str | None = None,
        image_mime_type: str = "image/png",
    ) -> SolutionDocument:
        if mode not in SOLVER_MODES:
            raise ValueError(f"mode must be one of {', '.join(SOLVER_MODES)}")
        if isinstance(image, str):
            payload = parse_image_data_url(image)
        else:
            payload = ImagePayload(mime_type=image_mime_type, data=image)
        language = language or get_settings().default_language

        raw = self.model.generate_text(
            system_instruction=prompts.SOLVER_SYSTEM_PROMPT,
            user_prompt=f"Context: {prompts.build_solver_context(mode=mode, language=language)}",
            image_bytes=payload.data,
            image_mime_type=payload.mime_type,
        )
        doc = decode(raw)
        logger.info(
            "Decoded solution: subject=%s difficulty=%s steps=%d",
            doc.question_understanding.detected_subject,
            doc.difficulty.level,
            len(doc.step_by_step_solution),
        )
        return doc

    def check_student_attempt(
        self,
        *,
        question: str,
        correct_solution: str,
        student_attempt: str,
    ) -> AttemptFeedback:
        if not student_attempt.strip():
            raise ValueError("student_attempt must be a non-empty string")
        raw = self.model.generate_text(
            system_instruction=prompts.ATTEMPT_CHECK_SYSTEM,
            user_prompt=prompts.build_attempt_prompt(
                question=question,
                correct_solution=correct_solution,
                student_attempt=student_attempt,
            ),
        )
        return decode_json(raw, AttemptFeedback.from_dict)

    def generate_practice_exam(self, *, topic: str, level: str) -> PracticeExam:
        raw = self.model.generate_text(
            system_instruction=prompts.EXAM_SYSTEM,
            user_prompt=prompts.build_exam_prompt(topic=topic, level=level),
        )
        return decode_json(raw, PracticeExam.from_dict)

    def generate_narration(self, *, solution: SolutionDocument) -> list[str]:
        steps = [f"Step {s.step_number}: {to_plain_text(s.content)}" for s in solution.step_by_step_solution]
        raw = self.model.generate_text(
            system_instruction=prompts.NARRATION_SYSTEM,
            user_prompt=prompts.build_narration_prompt(
                subject=solution.question_understanding.detected_subject,
                steps=steps,
            ),
        )
        try:
            lines = decode_string_list(raw)
        except DecodeError as e:
            logger.warning("Narration unavailable: %s", e)
            return list(NARRATION_FALLBACK)
        return lines or list(NARRATION_FALLBACK)

    def ask_tutor(
        self,
        *,
        solution: SolutionDocument | None,
        history: t.Sequence[ChatMessage],
        message: str,
    ) -> ChatMessage:
        if not message.strip():
            raise ValueError("message must be a non-empty string")
        context = json.dumps(solution.to_dict() if solution else {}, ensure_ascii=False)
        raw = self.model.generate_text(
            system_instruction=prompts.TUTOR_SYSTEM_TEMPLATE.format(context=context),
            user_prompt=prompts.build_tutor_prompt(history=[m.to_dict() for m in history], message=message),
            json_output=False,
        )
        return ChatMessage(role="model", text=raw.strip())
