"""Domain models for quiz content: themes and their multiple-choice questions."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from .errors import InvalidInputError


@dataclass
class Question:
    """
    A single multiple-choice question.

    Identity is (theme, title). `answers` and `correct` are kept aligned:
    the longer list is trimmed to the length of the shorter one.
    """

    theme: str
    title: str
    text: str = ""
    answers: list[str] = field(default_factory=list)
    correct: list[bool] = field(default_factory=list)
    explanation: str = ""
    created_at: datetime = field(default_factory=datetime.now)

    def __post_init__(self) -> None:
        if not self.theme or not self.title:
            raise InvalidInputError("A question needs a non-empty theme and title")
        self.text = self.text or ""
        self.explanation = self.explanation or ""
        self.answers = [str(a) for a in (self.answers or [])]
        self.correct = [bool(c) for c in (self.correct or [])]
        size = min(len(self.answers), len(self.correct))
        del self.answers[size:]
        del self.correct[size:]

    @property
    def correct_answers(self) -> list[str]:
        return [a for a, ok in zip(self.answers, self.correct) if ok]


@dataclass
class Theme:
    """A named group of questions with a free-text description."""

    name: str
    description: str = ""
    questions: list[Question] = field(default_factory=list)

    def find(self, title: str) -> Question | None:
        for question in self.questions:
            if question.title == title:
                return question
        return None


class ChangeKind(str, Enum):
    THEME_SAVED = "THEME_SAVED"
    THEME_DELETED = "THEME_DELETED"
    QUESTION_SAVED = "QUESTION_SAVED"
    QUESTION_DELETED = "QUESTION_DELETED"


@dataclass(frozen=True)
class ContentChange:
    """Emitted synchronously after a content mutation has been applied."""

    kind: ChangeKind
    theme: str
    title: str | None = None
    created: bool = False
