"""
Request/response schemas for the AI functions.

Field aliases keep the camelCase names the web client already sends.
"""
from typing import List, Optional
from pydantic import BaseModel, Field, ConfigDict
from services.course_service import CourseLevel, CourseStyle, CourseDuration
from services.exercise_service import InputMode
from schemas.document import DocumentRead


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class SummarizeRequest(_CamelModel):
    document_text: str = Field(..., alias="documentText")


class SummarizeResponse(BaseModel):
    summary: str
    keywords: List[str]
    provider: str
    truncated: bool = False


class ExerciseRequest(_CamelModel):
    input_mode: InputMode = Field(InputMode.text, alias="inputMode")
    course_text: Optional[str] = Field(None, alias="courseText")
    subject: Optional[str] = None
    document_id: Optional[int] = Field(None, alias="documentId")
    level: str = Field("intermédiaire", min_length=1, max_length=100)
    format: str = Field("mixte", min_length=1, max_length=100)
    num_questions: int = Field(5, ge=1, le=30, alias="numQuestions")
    include_solutions: bool = Field(True, alias="includeSolutions")
    category_id: Optional[int] = Field(None, alias="categoryId")


class ExerciseResponse(BaseModel):
    exercises: str
    input_mode: InputMode = Field(..., serialization_alias="inputMode")
    source: str
    source_value: str = Field(..., serialization_alias="sourceValue")
    level: str
    format: str
    document: DocumentRead
    xp_gained: int
    provider: str


class EvaluationRequest(_CamelModel):
    sujet: str = Field(..., min_length=1, max_length=500)
    classe: str = Field(..., min_length=1, max_length=100)
    specialite: Optional[str] = Field(None, max_length=200)
    difficulte: str = Field(..., min_length=1, max_length=100)


class EvaluationResponse(BaseModel):
    evaluation: str
    html: str
    provider: str


class ControlRequest(_CamelModel):
    topic: str = Field(..., min_length=1, max_length=500)
    level: str = Field(..., min_length=1, max_length=100)
    quantity: int = Field(5, ge=1, le=40)
    category_id: Optional[int] = Field(None, alias="categoryId")


class ControlResponse(BaseModel):
    control: str
    html: str
    topic: str
    level: str
    quantity: int
    document: DocumentRead
    xp_gained: int
    provider: str


class CourseRequest(_CamelModel):
    subject: str = Field(..., min_length=1, max_length=500)
    course_level: CourseLevel = Field(CourseLevel.college, alias="courseLevel")
    course_style: CourseStyle = Field(CourseStyle.detailed, alias="courseStyle")
    course_duration: CourseDuration = Field(CourseDuration.medium, alias="courseDuration")
    category_id: Optional[int] = Field(None, alias="categoryId")


class CourseResponse(BaseModel):
    course: str
    html: str
    subject: str
    course_level: CourseLevel = Field(..., serialization_alias="courseLevel")
    course_style: CourseStyle = Field(..., serialization_alias="courseStyle")
    course_duration: CourseDuration = Field(..., serialization_alias="courseDuration")
    document: DocumentRead
    provider: str
