"""
Content Service — Application layer owner of themes and questions.

Implements the read-only ContentRepository port for the scheduler host and
the merge engine, plus the write operations used by editors and imports.
Each logical mutation is persisted immediately unless it runs inside
`batch()`, and listeners are notified synchronously afterwards.
"""

import copy
import logging
from collections.abc import Callable, Iterator
from contextlib import contextmanager

from quizbox.domain.content import ChangeKind, ContentChange, Question, Theme
from quizbox.domain.errors import InvalidInputError
from quizbox.domain.ports import ContentRepository, SnapshotStore
from quizbox.domain.snapshots import BackupHandle, ContentSnapshot

logger = logging.getLogger(__name__)

ContentListener = Callable[[ContentChange], None]


class ContentService(ContentRepository):
    def __init__(self, store: SnapshotStore[ContentSnapshot]):
        self.store = store
        self._state = ContentSnapshot()
        self._listeners: list[ContentListener] = []
        self._batch_depth = 0
        self._dirty = False

    def load(self) -> None:
        self._state = self.store.load()
        logger.debug(
            f"[content] Loaded {len(self._state.themes)} themes, {self.question_count()} questions"
        )

    # ---------- ContentRepository ----------

    def all_themes(self) -> list[str]:
        return list(self._state.themes)

    def question_titles(self, theme: str) -> list[str]:
        found = self._state.themes.get(theme)
        if found is None:
            return []
        return [q.title for q in found.questions]

    def question_exists(self, theme: str, title: str) -> bool:
        found = self._state.themes.get(theme)
        return found is not None and found.find(title) is not None

    # ---------- Reads ----------

    def get_theme(self, name: str) -> Theme | None:
        return self._state.themes.get(name)

    def get_question(self, theme: str, title: str) -> Question | None:
        found = self._state.themes.get(theme)
        return found.find(title) if found is not None else None

    def questions(self, theme: str | None = None) -> list[Question]:
        if theme is not None:
            found = self._state.themes.get(theme)
            return list(found.questions) if found is not None else []
        return [q for t in self._state.themes.values() for q in t.questions]

    def question_count(self) -> int:
        return sum(len(t.questions) for t in self._state.themes.values())

    # ---------- Writes ----------

    def save_theme(self, name: str, description: str | None = None) -> bool:
        """
        Create a theme or update its description.

        A description of None leaves an existing theme's description as it is.

        Returns:
            True when the theme did not exist before.
        """
        if not name:
            raise InvalidInputError("Theme name must not be empty")

        existing = self._state.themes.get(name)
        created = existing is None
        if created:
            self._state.themes[name] = Theme(name=name, description=description or "")
        elif description is not None:
            existing.description = description

        self._changed(ContentChange(ChangeKind.THEME_SAVED, name, created=created))
        return created

    def delete_theme(self, name: str) -> bool:
        if self._state.themes.pop(name, None) is None:
            return False
        self._changed(ContentChange(ChangeKind.THEME_DELETED, name))
        return True

    def save_question(self, question: Question) -> bool:
        """
        Insert or replace a question, creating its theme when needed.

        Returns:
            True when no question with the same (theme, title) existed.
        """
        with self.batch():
            if question.theme not in self._state.themes:
                self.save_theme(question.theme)

            theme = self._state.themes[question.theme]
            existing = theme.find(question.title)
            stored = copy.deepcopy(question)
            if existing is None:
                theme.questions.append(stored)
            else:
                theme.questions[theme.questions.index(existing)] = stored

            self._changed(
                ContentChange(
                    ChangeKind.QUESTION_SAVED,
                    question.theme,
                    question.title,
                    created=existing is None,
                )
            )
        return existing is None

    def delete_question(self, theme: str, title: str) -> bool:
        found = self._state.themes.get(theme)
        question = found.find(title) if found is not None else None
        if question is None:
            return False
        found.questions.remove(question)
        self._changed(ContentChange(ChangeKind.QUESTION_DELETED, theme, title))
        return True

    # ---------- Events & batching ----------

    def subscribe(self, listener: ContentListener) -> None:
        self._listeners.append(listener)

    @contextmanager
    def batch(self) -> Iterator["ContentService"]:
        """Defer persistence until the outermost batch exits."""
        self._batch_depth += 1
        try:
            yield self
        finally:
            self._batch_depth -= 1
            if self._batch_depth == 0 and self._dirty:
                self.persist()

    def _changed(self, change: ContentChange) -> None:
        self._dirty = True
        if self._batch_depth == 0:
            self.persist()
        for listener in self._listeners:
            listener(change)

    # ---------- Persistence ----------

    def snapshot(self) -> ContentSnapshot:
        return copy.deepcopy(self._state)

    def persist(self) -> bool:
        ok = self.store.persist(self._state)
        if ok:
            self._dirty = False
        return ok

    def backup(self, label: str) -> BackupHandle | None:
        return self.store.backup(label)
