"""
Services package for business logic.

Service classes own database access, ownership rules and validation that
doesn't belong in API endpoints.
"""
from .wordbook_service import WordbookService
from .progress_service import ProgressService
from .visibility_service import VisibilityService
from .profile_service import ProfileService
