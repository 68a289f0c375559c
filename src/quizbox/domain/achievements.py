from enum import Enum


class Achievement(str, Enum):
    FIRST_CORRECT_ANSWER = "FIRST_CORRECT_ANSWER"
    TEN_CORRECT_IN_A_ROW = "TEN_CORRECT_IN_A_ROW"
    FIRST_THEME_CREATED = "FIRST_THEME_CREATED"
    TEN_QUESTIONS_CREATED = "TEN_QUESTIONS_CREATED"
    FIRST_LEITNER_REVIEW = "FIRST_LEITNER_REVIEW"
    LEITNER_LEVEL6_ACHIEVED = "LEITNER_LEVEL6_ACHIEVED"
