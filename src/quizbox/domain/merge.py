from dataclasses import asdict, dataclass, field


@dataclass
class MergeReport:
    """Counters produced by a directory merge."""

    themes_added: int = 0
    themes_updated: int = 0
    questions_added: int = 0
    questions_updated: int = 0
    stats_questions_merged: int = 0
    stats_themes_merged: int = 0
    stats_results_added: int = 0
    cards_added: int = 0
    cards_updated: int = 0
    achievements_added: int = 0
    # Categories whose file existed but could not be read
    skipped: list[str] = field(default_factory=list)

    @property
    def total_changes(self) -> int:
        return sum(v for k, v in asdict(self).items() if k != "skipped")

    def to_dict(self) -> dict:
        return asdict(self)

    def __str__(self) -> str:
        counters = ", ".join(f"{k}={v}" for k, v in self.to_dict().items() if k != "skipped")
        if self.skipped:
            counters += f", skipped={','.join(self.skipped)}"
        return f"MergeReport({counters})"
