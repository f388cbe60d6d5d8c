from .models import (
    User, UserSession, Category, Document, HistoryEntry, Subscriber,
    UserRoleEnum, AiProviderEnum, utcnow, as_utc
)
