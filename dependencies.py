"""
Request-scoped dependencies: the caller identity taken from the session cookie.
"""
from fastapi import Depends, Request

from errors import ForbiddenError, NotAuthenticatedError
from models import UserRole
from schemas import CurrentUser

SESSION_USER_KEY = "user"


def get_current_user(request: Request) -> CurrentUser:
    """
    Return the logged-in user stored in the session by the login endpoints.
    """
    data = request.session.get(SESSION_USER_KEY)
    if not data or not data.get("id"):
        raise NotAuthenticatedError()
    return CurrentUser(**data)


def require_student(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
    if user.role != UserRole.STUDENT:
        raise ForbiddenError()
    return user


def require_professor(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
    if user.role != UserRole.PROFESSOR:
        raise ForbiddenError()
    return user
