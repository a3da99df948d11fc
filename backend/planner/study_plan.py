"""Study plan, learner and agenda models."""

from __future__ import annotations

from datetime import date, datetime, timezone
from datetime import date as Date
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field, model_validator


GoalType = Literal["lesson", "material", "questions", "law", "summary", "review", "other"]
LearnerLevel = Literal["beginner", "intermediate", "advanced"]
CycleSystem = Literal["continuous", "rotating"]
CycleItemKind = Literal["discipline", "folder", "exam"]
Weekday = Literal["monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday"]

WEEKDAYS: tuple[Weekday, ...] = (
    "monday",
    "tuesday",
    "wednesday",
    "thursday",
    "friday",
    "saturday",
    "sunday",
)


def weekday_name(day: date) -> Weekday:
    return WEEKDAYS[day.weekday()]


class SubLesson(BaseModel):
    id: str
    title: str
    duration_minutes: int = Field(default=0, ge=0)
    link: Optional[str] = None


class Flashcard(BaseModel):
    id: str
    question: str
    answer: str


class Goal(BaseModel):
    """A single unit of study inside a subject."""

    id: str
    type: GoalType = "other"
    title: str
    order: int = 0
    duration_minutes: Optional[int] = Field(default=None, ge=0)
    pages: Optional[int] = Field(default=None, ge=0)
    question_count: Optional[int] = Field(default=None, ge=0)
    sub_lessons: List[SubLesson] = Field(default_factory=list)
    flashcards: List[Flashcard] = Field(default_factory=list)
    pdf_url: Optional[str] = None
    link: Optional[str] = None
    color: Optional[str] = None


class Subject(BaseModel):
    id: str
    name: str
    order: int = 0
    goals: List[Goal] = Field(default_factory=list)


class Discipline(BaseModel):
    id: str
    name: str
    order: int = 0
    folder_id: Optional[str] = None
    subjects: List[Subject] = Field(default_factory=list)


class CycleItem(BaseModel):
    """One entry of a cycle: a discipline, a folder of disciplines or an exam."""

    discipline_id: Optional[str] = None
    folder_id: Optional[str] = None
    exam_id: Optional[str] = None
    subjects_count: int = Field(default=1, ge=1)

    @model_validator(mode="after")
    def _single_target(self) -> "CycleItem":
        targets = [value for value in (self.discipline_id, self.folder_id, self.exam_id) if value]
        if len(targets) != 1:
            raise ValueError("A cycle item must reference exactly one discipline, folder or exam.")
        return self

    @property
    def kind(self) -> CycleItemKind:
        if self.folder_id:
            return "folder"
        if self.exam_id:
            return "exam"
        return "discipline"


class Cycle(BaseModel):
    id: str
    name: str = ""
    items: List[CycleItem] = Field(default_factory=list)


class SyllabusTopic(BaseModel):
    """Official syllabus entry linked to the goals that cover it, keyed by goal type."""

    id: str
    name: str
    links: Dict[str, str] = Field(default_factory=dict)


class SyllabusDiscipline(BaseModel):
    id: str
    name: str
    topics: List[SyllabusTopic] = Field(default_factory=list)


class StudyPlan(BaseModel):
    id: str
    name: str
    disciplines: List[Discipline] = Field(default_factory=list)
    cycles: List[Cycle] = Field(default_factory=list)
    cycle_system: CycleSystem = "continuous"
    syllabus: List[SyllabusDiscipline] = Field(default_factory=list)


class Routine(BaseModel):
    """Minutes available on each weekday. Missing weekdays mean no availability."""

    days: Dict[Weekday, int] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _non_negative(self) -> "Routine":
        for weekday, minutes in self.days.items():
            if minutes < 0:
                raise ValueError(f"Routine minutes for {weekday} cannot be negative.")
        return self

    def minutes_for(self, day: date) -> int:
        return self.days.get(weekday_name(day), 0)

    def has_availability(self) -> bool:
        return any(minutes > 0 for minutes in self.days.values())


class Exam(BaseModel):
    """A simulated test. Question numbers start at 1."""

    id: str
    title: str
    total_questions: int = Field(default=0, ge=0)
    question_values: Dict[int, float] = Field(default_factory=dict)
    correct_answers: Dict[int, str] = Field(default_factory=dict)
    min_total_percent: Optional[float] = Field(default=None, ge=0.0, le=100.0)
    has_penalty: bool = False


class ExamAttempt(BaseModel):
    id: str
    learner_id: str
    exam_id: str
    submitted_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    answers: Dict[int, Optional[str]] = Field(default_factory=dict)
    score: float = 0.0
    is_approved: bool = False


class PlanConfig(BaseModel):
    start_date: date
    is_paused: bool = False


class LearnerProgress(BaseModel):
    completed_goal_ids: List[str] = Field(default_factory=list)
    total_study_seconds: int = Field(default=0, ge=0)
    plan_study_seconds: Dict[str, int] = Field(default_factory=dict)


class Learner(BaseModel):
    id: str
    name: str = ""
    level: Optional[LearnerLevel] = None
    routine: Routine = Field(default_factory=Routine)
    current_plan_id: Optional[str] = None
    plan_configs: Dict[str, PlanConfig] = Field(default_factory=dict)
    progress: LearnerProgress = Field(default_factory=LearnerProgress)


class ScheduledItem(BaseModel):
    """One agenda entry with everything a renderer needs."""

    unique_id: str
    date: Date
    goal_id: str
    goal_type: str
    title: str
    discipline_name: str
    subject_name: str
    duration: int
    cycle_id: Optional[str] = None
    discipline_id: Optional[str] = None
    completed: bool = False
    original_goal: Optional[Goal] = None
    exam: Optional[Exam] = None

    @property
    def is_exam(self) -> bool:
        return self.exam is not None


Agenda = Dict[str, List[ScheduledItem]]


__all__ = [
    "Agenda",
    "Cycle",
    "CycleItem",
    "CycleItemKind",
    "CycleSystem",
    "Discipline",
    "Exam",
    "ExamAttempt",
    "Flashcard",
    "Goal",
    "GoalType",
    "Learner",
    "LearnerLevel",
    "LearnerProgress",
    "PlanConfig",
    "Routine",
    "ScheduledItem",
    "StudyPlan",
    "SubLesson",
    "Subject",
    "SyllabusDiscipline",
    "SyllabusTopic",
    "WEEKDAYS",
    "Weekday",
    "weekday_name",
]
