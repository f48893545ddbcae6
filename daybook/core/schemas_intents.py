"""Typed action intents inferred from a user's message.

Every intent is one variant of a closed union discriminated by ``kind``;
the executor dispatches on the variant class. Parameter records are lenient
about vocabulary the model gets slightly wrong (unknown priority becomes
None, a bare tag string becomes a one-item list) but strict about shape.
"""

from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


class Priority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class HabitFrequency(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"


def _enum_or_none(enum_cls: type[Enum], value: Any) -> Any:
    if value is None:
        return None
    if isinstance(value, str):
        normalized = value.strip().lower()
        if normalized in {member.value for member in enum_cls}:
            return normalized
        return None
    return value


def _alias(*names: str) -> AliasChoices:
    return AliasChoices(*names)


# ============================================================================
# Parameter records
# ============================================================================


class _Params(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


class _TaggedParams(_Params):
    tags: list[str] | None = None

    @field_validator("tags", mode="before")
    @classmethod
    def _normalize_tags(cls, value: Any) -> Any:
        if value is None:
            return None
        if isinstance(value, str):
            value = [value]
        if isinstance(value, list):
            return [str(tag).strip() for tag in value if tag is not None and str(tag).strip()]
        return value


class TaskParams(_TaggedParams):
    title: str | None = None
    description: str | None = None
    project_id: str | None = Field(default=None, validation_alias=_alias("project_id", "projectId"))
    due_date: str | None = Field(default=None, validation_alias=_alias("due_date", "dueDate"))
    priority: Priority | None = None

    @field_validator("priority", mode="before")
    @classmethod
    def _normalize_priority(cls, value: Any) -> Any:
        return _enum_or_none(Priority, value)


class NoteParams(_TaggedParams):
    title: str | None = None
    content: str | None = None
    description: str | None = None
    project_id: str | None = Field(default=None, validation_alias=_alias("project_id", "projectId"))


class ProjectParams(_Params):
    title: str | None = None
    description: str | None = None
    color: str | None = None
    priority: Priority | None = None

    @field_validator("priority", mode="before")
    @classmethod
    def _normalize_priority(cls, value: Any) -> Any:
        return _enum_or_none(Priority, value)


class HabitParams(_Params):
    name: str | None = None
    title: str | None = None
    description: str | None = None
    frequency: HabitFrequency | None = None
    target_count: int | None = Field(
        default=None, validation_alias=_alias("target_count", "targetCount")
    )

    @field_validator("frequency", mode="before")
    @classmethod
    def _normalize_frequency(cls, value: Any) -> Any:
        return _enum_or_none(HabitFrequency, value)

    @field_validator("target_count")
    @classmethod
    def _positive_count(cls, value: int | None) -> int | None:
        if value is not None and value < 1:
            return None
        return value


class _Targeted(_Params):
    target_id: str | None = Field(default=None, validation_alias=_alias("target_id", "targetId"))


class TaskUpdateParams(TaskParams, _Targeted):
    pass


class NoteUpdateParams(NoteParams, _Targeted):
    pass


class HabitUpdateParams(HabitParams, _Targeted):
    pass


class ChatParams(_Params):
    pass


# ============================================================================
# Intent variants
# ============================================================================


class CreateTaskIntent(BaseModel):
    kind: Literal["create_task"]
    params: TaskParams


class CreateNoteIntent(BaseModel):
    kind: Literal["create_note"]
    params: NoteParams


class CreateProjectIntent(BaseModel):
    kind: Literal["create_project"]
    params: ProjectParams


class CreateHabitIntent(BaseModel):
    kind: Literal["create_habit"]
    params: HabitParams


class UpdateTaskIntent(BaseModel):
    kind: Literal["update_task"]
    params: TaskUpdateParams


class UpdateNoteIntent(BaseModel):
    kind: Literal["update_note"]
    params: NoteUpdateParams


class UpdateHabitIntent(BaseModel):
    kind: Literal["update_habit"]
    params: HabitUpdateParams


class ChatIntent(BaseModel):
    """Conversation-only turn; never touches the data store."""

    kind: Literal["chat"]
    params: ChatParams = Field(default_factory=ChatParams)

    @field_validator("params", mode="before")
    @classmethod
    def _null_params(cls, value: Any) -> Any:
        return {} if value is None else value


ActionIntent = Annotated[
    Union[
        CreateTaskIntent,
        CreateNoteIntent,
        CreateProjectIntent,
        CreateHabitIntent,
        UpdateTaskIntent,
        UpdateNoteIntent,
        UpdateHabitIntent,
        ChatIntent,
    ],
    Field(discriminator="kind"),
]

ACTION_KINDS: tuple[str, ...] = (
    "create_task",
    "create_note",
    "create_project",
    "create_habit",
    "update_task",
    "update_note",
    "update_habit",
    "chat",
)


class IntentOutput(BaseModel):
    """Validated result of the intent inference call."""

    transcript: str | None = None
    reply: str | None = None
    actions: list[ActionIntent] = Field(default_factory=list)
