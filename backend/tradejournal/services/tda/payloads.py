"""
Typed answer payloads for questionnaire answers.

Answers are stored as a tagged JSON object whose `type` matches the question
type, so consumers never have to guess what a raw value means.
"""
from typing import Annotated, Any, List, Literal, Optional, Union
from pydantic import BaseModel, Field, TypeAdapter, ValidationError
from tradejournal.models.attachments import AnnouncementImpact
from tradejournal.models.question import Question, QuestionType
from tradejournal.models.timeframe_analysis import Sentiment

BULLISH_KEYWORDS = ("bullish", "strong", "support")
BEARISH_KEYWORDS = ("bearish", "weak", "resistance")


class AnswerValidationError(ValueError):
    """Answer value does not fit its question."""


class TextAnswer(BaseModel):
    type: Literal["TEXT"] = "TEXT"
    text: str


class MultipleChoiceAnswer(BaseModel):
    type: Literal["MULTIPLE_CHOICE"] = "MULTIPLE_CHOICE"
    choice: str


class RatingAnswer(BaseModel):
    type: Literal["RATING"] = "RATING"
    rating: int = Field(ge=1, le=5)


class BooleanAnswer(BaseModel):
    type: Literal["BOOLEAN"] = "BOOLEAN"
    value: bool


class AnnouncementEntry(BaseModel):
    time: str
    announcement_type: str
    impact: AnnouncementImpact


class AnnouncementsAnswer(BaseModel):
    type: Literal["ANNOUNCEMENTS"] = "ANNOUNCEMENTS"
    announcements: List[AnnouncementEntry] = []


AnswerPayload = Annotated[
    Union[TextAnswer, MultipleChoiceAnswer, RatingAnswer, BooleanAnswer, AnnouncementsAnswer],
    Field(discriminator="type"),
]

_payload_adapter = TypeAdapter(AnswerPayload)

_TRUE_STRINGS = {"true", "yes", "y", "1"}
_FALSE_STRINGS = {"false", "no", "n", "0"}


def _coerce_raw(question_type: QuestionType, raw: Any, answer_text: Optional[str]) -> dict:
    """Turn a bare client value into the tagged shape for `question_type`."""
    if question_type == QuestionType.TEXT:
        text = raw if raw is not None else answer_text
        if not isinstance(text, str):
            raise AnswerValidationError("Text answer must be a string")
        return {"type": "TEXT", "text": text}

    if question_type == QuestionType.MULTIPLE_CHOICE:
        choice = raw if raw is not None else answer_text
        if not isinstance(choice, str):
            raise AnswerValidationError("Multiple choice answer must be one of the options")
        return {"type": "MULTIPLE_CHOICE", "choice": choice}

    if question_type == QuestionType.RATING:
        if isinstance(raw, bool):
            raise AnswerValidationError("Rating must be an integer from 1 to 5")
        if isinstance(raw, str) and raw.strip().isdigit():
            raw = int(raw.strip())
        if not isinstance(raw, int):
            raise AnswerValidationError("Rating must be an integer from 1 to 5")
        return {"type": "RATING", "rating": raw}

    if question_type == QuestionType.BOOLEAN:
        if isinstance(raw, str):
            lowered = raw.strip().lower()
            if lowered in _TRUE_STRINGS:
                raw = True
            elif lowered in _FALSE_STRINGS:
                raw = False
        if not isinstance(raw, bool):
            raise AnswerValidationError("Boolean answer must be true or false")
        return {"type": "BOOLEAN", "value": raw}

    if question_type == QuestionType.ANNOUNCEMENTS:
        if raw is None:
            raw = []
        if not isinstance(raw, list):
            raise AnswerValidationError("Announcements answer must be a list")
        return {"type": "ANNOUNCEMENTS", "announcements": raw}

    raise AnswerValidationError(f"Unsupported question type: {question_type}")


def parse_answer_value(question: Question, raw: Any, answer_text: Optional[str] = None) -> AnswerPayload:
    """
    Validate a client answer against its question and return the typed payload.

    `raw` may already be tagged (`{"type": "RATING", "rating": 4}`) or a bare
    value (`4`). Multiple-choice answers are normalized to the option's casing.
    """
    question_type = QuestionType(question.question_type)

    if isinstance(raw, dict) and "type" in raw:
        if raw["type"] != question_type.value:
            raise AnswerValidationError(
                f"Answer type {raw['type']} does not match question type {question_type.value}"
            )
        data = raw
    else:
        data = _coerce_raw(question_type, raw, answer_text)

    try:
        payload = _payload_adapter.validate_python(data)
    except ValidationError as e:
        first = e.errors()[0]
        location = ".".join(str(part) for part in first.get("loc", ()))
        raise AnswerValidationError(f"Invalid answer ({location}): {first.get('msg')}") from e

    if isinstance(payload, MultipleChoiceAnswer):
        options = question.options or []
        matched = next((o for o in options if str(o).lower() == payload.choice.strip().lower()), None)
        if matched is None:
            raise AnswerValidationError(
                f"'{payload.choice}' is not a valid option. Expected one of: {', '.join(map(str, options))}"
            )
        payload = MultipleChoiceAnswer(choice=str(matched))

    return payload


def load_answer_value(stored: Optional[dict]) -> Optional[AnswerPayload]:
    """Read a stored payload back; None for empty or legacy rows."""
    if not stored:
        return None
    try:
        return _payload_adapter.validate_python(stored)
    except ValidationError:
        return None


def answer_direction(payload: Optional[AnswerPayload]) -> Optional[Sentiment]:
    """
    Directional reading of an answer, or None when it carries no direction.

    Only qualitative answers vote: a Bullish/Bearish choice, or free text
    mentioning bullish or bearish keywords (but not both).
    """
    if isinstance(payload, MultipleChoiceAnswer):
        choice = payload.choice.strip().lower()
        if choice == "bullish":
            return Sentiment.BULLISH
        if choice == "bearish":
            return Sentiment.BEARISH
        return None

    if isinstance(payload, TextAnswer):
        text = payload.text.lower()
        bullish = any(word in text for word in BULLISH_KEYWORDS)
        bearish = any(word in text for word in BEARISH_KEYWORDS)
        if bullish and not bearish:
            return Sentiment.BULLISH
        if bearish and not bullish:
            return Sentiment.BEARISH

    return None
