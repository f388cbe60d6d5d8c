# Schemas package for Pydantic models
from .user import UserCreate, UserRead, ProfileUpdate, SkinRead, SkinSelect
from .auth import LoginRequest, LoginResponse, SessionRead, MessageResponse
from .document import (
    DocumentRead, DocumentDetail, DocumentCreate, SummarySave, DocumentUpdate, DocumentContent,
    DeletionResponse, CategoryCreate, CategoryRead, CategoryDetail, CategoryDeleted
)
from .activity import (
    HistoryRead, CreditsRead, XPAwardRequest, XPStatusRead, XPAwardResponse,
    TeacherStats, TeacherDashboard
)
from .ai import (
    SummarizeRequest, SummarizeResponse, ExerciseRequest, ExerciseResponse,
    EvaluationRequest, EvaluationResponse, ControlRequest, ControlResponse,
    CourseRequest, CourseResponse
)
from .subscription import (
    SubscriptionStatusRead, CheckoutRequest, RedirectResponse,
    SubscriptionInterestRequest, SubscriptionInterestResponse
)

__all__ = [
    "UserCreate", "UserRead", "ProfileUpdate", "SkinRead", "SkinSelect",
    "LoginRequest", "LoginResponse", "SessionRead", "MessageResponse",
    "DocumentRead", "DocumentDetail", "DocumentCreate", "SummarySave", "DocumentUpdate",
    "DocumentContent", "DeletionResponse", "CategoryCreate", "CategoryRead", "CategoryDetail",
    "CategoryDeleted",
    "HistoryRead", "CreditsRead", "XPAwardRequest", "XPStatusRead", "XPAwardResponse",
    "TeacherStats", "TeacherDashboard",
    "SummarizeRequest", "SummarizeResponse", "ExerciseRequest", "ExerciseResponse",
    "EvaluationRequest", "EvaluationResponse", "ControlRequest", "ControlResponse",
    "CourseRequest", "CourseResponse",
    "SubscriptionStatusRead", "CheckoutRequest", "RedirectResponse",
    "SubscriptionInterestRequest", "SubscriptionInterestResponse",
]
