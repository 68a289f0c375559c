"""
Exception hierarchy for quizbox.

Callers only ever see InvalidInputError; the storage and parse errors are
raised inside the persistence layer and recovered by the stores and the
merge engine.
"""


class QuizboxError(Exception):
    """Base class for all quizbox errors."""


class InvalidInputError(QuizboxError, ValueError):
    """A caller passed a structurally invalid argument."""


class StorageIOError(QuizboxError, OSError):
    """Writing, replacing or copying a snapshot file failed."""


class ParseError(QuizboxError):
    """A snapshot file could not be decoded."""


class CorruptDataError(ParseError):
    """A snapshot file decoded but does not match any known schema."""
