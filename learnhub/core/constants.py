from enum import Enum


class RoleEnum(str, Enum):
    MEMBER = "member"
    ADMIN = "admin"

class EnrollmentStatusEnum(str, Enum):
    ENROLLED = "enrolled"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"

class StorageBackendEnum(str, Enum):
    AUTO = "auto"
    RELATIONAL = "relational"
    LOCAL = "local"

class AuthEventEnum(str, Enum):
    SIGNED_IN = "SIGNED_IN"
    SIGNED_OUT = "SIGNED_OUT"
    TOKEN_REFRESHED = "TOKEN_REFRESHED"
    USER_UPDATED = "USER_UPDATED"

class NoticeVariantEnum(str, Enum):
    DEFAULT = "default"
    DESTRUCTIVE = "destructive"

class CourseSortEnum(str, Enum):
    NEWEST = "newest"
    OLDEST = "oldest"
    TITLE = "title"
    RATING = "rating"

REQUIRED_TABLES = ("users", "courses", "lessons", "enrollments", "completed_lessons", "reviews")

COURSES_NAMESPACE = "courses"
ENROLLMENTS_NAMESPACE = "enrollments"

# Filter value that disables a catalog filter
FILTER_ALL = "all"

LOGIN_ROUTE = "/login"
LANDING_ROUTE = "/"
DASHBOARD_ROUTE = "/dashboard"

RECOMMENDED_COURSES_LIMIT = 4
RECENT_ENROLLMENTS_LIMIT = 3
ACTIVITY_WINDOW_DAYS = 30
MAX_ACTIVITY_WINDOW_DAYS = 365

class EnrollmentErrorEnum(str, Enum):
    AUTH_REQUIRED = "AUTH_REQUIRED"
    COURSE_NOT_FOUND = "COURSE_NOT_FOUND"
    ENROLLMENT_NOT_FOUND = "ENROLLMENT_NOT_FOUND"
    FORBIDDEN = "FORBIDDEN"
    STORAGE_ERROR = "STORAGE_ERROR"
