from pydantic import BaseModel, ConfigDict, Field, field_validator
from typing import Optional, List
from datetime import datetime

from learnhub.core.constants import CourseSortEnum, FILTER_ALL
from learnhub.schemas.review import Review


class LessonBase(BaseModel):
    title: str
    description: Optional[str] = None
    video_url: str = ""
    duration: Optional[int] = Field(default=None, ge=0)  # minutes
    order_index: int = Field(default=0)

    @field_validator("title")
    def title_not_empty(cls, v):
        if not v or not v.strip():
            raise ValueError("Lesson title cannot be empty")
        return v.strip()

class LessonCreate(LessonBase):
    pass

class LessonUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    video_url: Optional[str] = None
    duration: Optional[int] = Field(default=None, ge=0)
    order_index: Optional[int] = None

    @field_validator("title", "video_url", "order_index")
    def not_null(cls, v, info):
        if v is None:
            raise ValueError(f"{info.field_name} cannot be null")
        return v

    @field_validator("title")
    def title_not_blank(cls, v):
        if not v.strip():
            raise ValueError("Lesson title cannot be empty")
        return v.strip()

class Lesson(LessonBase):
    id: str
    course_id: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class CourseBase(BaseModel):
    title: str
    description: str = ""
    instructor: Optional[str] = None
    category: str = ""
    difficulty: Optional[str] = None
    duration: Optional[float] = Field(default=None, ge=0)  # hours
    thumbnail: Optional[str] = None

    @field_validator("title")
    def title_not_empty(cls, v):
        if not v or not v.strip():
            raise ValueError("Course title cannot be empty")
        return v.strip()

class CourseCreate(CourseBase):
    pass

class CourseUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    instructor: Optional[str] = None
    category: Optional[str] = None
    difficulty: Optional[str] = None
    duration: Optional[float] = Field(default=None, ge=0)
    thumbnail: Optional[str] = None

    @field_validator("title", "description", "category")
    def not_null(cls, v, info):
        if v is None:
            raise ValueError(f"{info.field_name} cannot be null")
        return v

    @field_validator("title")
    def title_not_blank(cls, v):
        if not v.strip():
            raise ValueError("Course title cannot be empty")
        return v.strip()

class Course(CourseBase):
    id: str
    created_at: datetime
    rating: float = 0.0
    review_count: int = 0
    lesson_count: int = 0

    model_config = ConfigDict(from_attributes=True)

class CourseDetail(Course):
    lessons: List[Lesson] = Field(default_factory=list)

class CourseRecord(CourseDetail):
    """Shape of a course in the local fallback store."""
    reviews: List[Review] = Field(default_factory=list)


class CourseFilters(BaseModel):
    search: Optional[str] = None
    category: Optional[str] = None
    difficulty: Optional[str] = None
    instructor: Optional[str] = None
    sort: CourseSortEnum = CourseSortEnum.NEWEST

    @staticmethod
    def _active(value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        value = value.strip()
        if not value or value.lower() == FILTER_ALL:
            return None
        return value

    @property
    def active_search(self) -> Optional[str]:
        if self.search is None or not self.search.strip():
            return None
        return self.search.strip()

    @property
    def active_category(self) -> Optional[str]:
        return self._active(self.category)

    @property
    def active_difficulty(self) -> Optional[str]:
        return self._active(self.difficulty)

    @property
    def active_instructor(self) -> Optional[str]:
        return self._active(self.instructor)
