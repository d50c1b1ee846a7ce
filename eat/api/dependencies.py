"""FastAPI dependencies for authentication, database and services."""

from typing import Annotated

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from eat.database import get_db
from eat.exceptions import AuthError
from eat.models.user import User
from eat.services.auth import decode_user_id
from eat.services.cooking_service import CookingService
from eat.services.ingredient_matcher import IngredientMatcher
from eat.services.llm import LLMService

security = HTTPBearer(auto_error=False)


def get_current_user(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
    db: Annotated[Session, Depends(get_db)],
) -> User:
    """Get the current authenticated user from the bearer token."""
    if credentials is None:
        raise AuthError("Unauthorized")

    user_id = decode_user_id(credentials.credentials)
    if user_id is None:
        raise AuthError("Invalid authentication credentials")

    user = db.query(User).filter(User.id == user_id).first()
    if user is None:
        raise AuthError("User not found")

    return user


def get_llm_service() -> LLMService:
    """Get LLM service instance."""
    return LLMService()


def get_ingredient_matcher(
    llm_service: Annotated[LLMService, Depends(get_llm_service)],
) -> IngredientMatcher:
    """Get ingredient matcher with its LLM."""
    return IngredientMatcher(llm_service)


def get_cooking_service(
    db: Annotated[Session, Depends(get_db)],
) -> CookingService:
    """Get cooking service with dependencies."""
    return CookingService(db)
