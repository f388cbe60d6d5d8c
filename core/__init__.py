# Core package for configuration, security and infrastructure

from .config import settings
from .security import get_current_active_user, get_current_teacher, Audience, audience_for
from .logging import setup_logging, get_logger
from .exceptions import setup_exception_handlers, APIException, AIServiceException
from .middleware import setup_middleware
from .storage import LocalObjectStorage, get_storage
from .file_utils import validate_file_type, validate_file_size
