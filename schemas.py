"""Request payload shapes accepted at the HTTP boundary."""

from typing import Any, Dict, List, Optional, Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from errors import MissingInput

M = TypeVar("M", bound=BaseModel)


def validate(model: Type[M], data: Any) -> M:
    """Parse `data` into `model`; any failure is a 400 naming the fields."""
    try:
        return model.model_validate(data or {})
    except ValidationError as e:
        fields = sorted({".".join(str(p) for p in err["loc"]) or "body" for err in e.errors()})
        raise MissingInput(f"invalid or missing: {', '.join(fields)}") from None


# ------------------------------- attempts -------------------------------------
class AttemptIn(BaseModel):
    """Autosave/submit body. Extra top-level q<N> keys are kept as answers."""
    model_config = ConfigDict(extra="allow")

    quizId: str = Field(min_length=1)
    email: str = Field(min_length=1)
    score: Optional[float] = None
    totalQuestions: Optional[int] = None
    submitted: Optional[bool] = None
    answers: Optional[Dict[str, Any]] = None
    progress: Optional[Dict[str, Any]] = None


class AttemptQuery(BaseModel):
    quizId: str = Field(min_length=1)
    email: str = Field(min_length=1)


# ------------------------------- quizzes --------------------------------------
class QuizListQuery(BaseModel):
    courseId: str = Field(min_length=1)
    teacherId: str = Field(min_length=1)


class QuizSaveIn(BaseModel):
    id: str = Field(min_length=1)
    finalizedJson: Any = None
    metadata: Any = None
    courseId: Optional[str] = None
    teacherId: Optional[str] = None
    allowedStudents: List[str] = Field(default_factory=list)


# ------------------------------- chats ----------------------------------------
class ChatMessage(BaseModel):
    content: Optional[str] = None
    text: Optional[str] = None
    role: Optional[str] = None
    teacherId: Optional[str] = None


class ChatIn(BaseModel):
    """
    Three accepted shapes:
      flat     {text, role?, teacherId}
      content  {content, role?, teacherId}
      message  {message: {content|text, role?, teacherId?}}
    teacherId may also arrive as meta.teacherId.
    """
    id: Optional[str] = None
    role: Optional[str] = None
    text: Optional[str] = None
    content: Optional[str] = None
    message: Optional[ChatMessage] = None
    meta: Optional[Dict[str, Any]] = None
    teacherId: Optional[str] = None
    timestamp: Optional[str] = None

    @property
    def shape(self) -> str:
        if self.text:
            return "flat"
        if self.content:
            return "content"
        if self.message and (self.message.content or self.message.text):
            return "message"
        return "empty"

    def resolved_text(self) -> str:
        shape = self.shape
        if shape == "flat":
            return self.text or ""
        if shape == "content":
            return self.content or ""
        if shape == "message":
            return self.message.content or self.message.text or ""
        return ""

    def resolved_role(self) -> str:
        return self.role or (self.message.role if self.message else None) or "user"

    def resolved_teacher_id(self) -> Optional[str]:
        return (
            self.teacherId
            or (self.message.teacherId if self.message else None)
            or ((self.meta or {}).get("teacherId") or None)
        )


class TeacherChatIn(BaseModel):
    message: str = Field(min_length=1)


# ------------------------------- courses / auth -------------------------------
class CourseIn(BaseModel):
    name: str = Field(min_length=1)
    teacherId: str = Field(min_length=1)
    description: Optional[str] = None
    status: str = "Active"
    grade: Optional[str] = None
    students: List[str] = Field(default_factory=list)


class SignupIn(BaseModel):
    name: str = Field(min_length=1)
    email: str = Field(min_length=1)
    password: str = Field(min_length=1)


class LoginIn(BaseModel):
    email: str = Field(min_length=1)
    password: str = Field(min_length=1)
