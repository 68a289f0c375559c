"""quizbox: adaptive Leitner flashcards with durable, mergeable snapshots."""

from quizbox.consts import VERSION

__version__ = VERSION
