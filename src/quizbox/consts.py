VERSION = "0.4.0"

# ---------- Snapshot files (one per domain) ----------
QUESTIONS_FILE = "quiz_questions.dat"
STATISTICS_FILE = "quiz_statistics.dat"
LEITNER_FILE = "leitner_system.dat"
ACHIEVEMENTS_FILE = "achievements.dat"

SNAPSHOT_FILES = (QUESTIONS_FILE, STATISTICS_FILE, LEITNER_FILE, ACHIEVEMENTS_FILE)
