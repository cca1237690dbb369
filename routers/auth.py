from fastapi import APIRouter, Depends, Request
from passlib.context import CryptContext
from sqlalchemy.orm import Session

from app_logging import get_logger
from database import get_db
from dependencies import SESSION_USER_KEY, get_current_user
from errors import InvalidCredentialsError, UsernameTakenError
from models import User, UserRole
from schemas import CurrentUser, UserCreate, UserLogin

router = APIRouter()
log = get_logger("auth")

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def get_password_hash(password: str) -> str:
    return pwd_context.hash(password)


def _login(request: Request, credentials: UserLogin, role: UserRole, db: Session) -> dict:
    db_user = (
        db.query(User)
        .filter(User.username == credentials.username, User.role == role.value)
        .first()
    )
    if not db_user or not verify_password(credentials.password, db_user.password_hash):
        raise InvalidCredentialsError(role.value)
    session_user = {"id": db_user.id, "username": db_user.username, "role": db_user.role}
    request.session[SESSION_USER_KEY] = session_user
    log.info(f"{role.value} {db_user.username!r} logged in")
    return {"status": "success", "user": session_user}


@router.post("/auth/signup", summary="Create a New User", description="Register a new student or professor.")
async def signup(user: UserCreate, db: Session = Depends(get_db)):
    """
    Register a new user, storing a bcrypt hash of the password.
    """
    existing_user = db.query(User).filter(User.username == user.username).first()
    if existing_user:
        raise UsernameTakenError(user.username)
    db_user = User(username=user.username, password_hash=get_password_hash(user.password), role=user.role.value)
    db.add(db_user)
    db.commit()
    db.refresh(db_user)
    return {"status": "success", "message": "User created successfully", "username": db_user.username, "role": db_user.role}


@router.post("/auth/student", summary="Student Login", description="Login as a student; sets the session cookie.")
async def login_student(credentials: UserLogin, request: Request, db: Session = Depends(get_db)):
    return _login(request, credentials, UserRole.STUDENT, db)


@router.post("/auth/professor", summary="Professor Login", description="Login as a professor; sets the session cookie.")
async def login_professor(credentials: UserLogin, request: Request, db: Session = Depends(get_db)):
    return _login(request, credentials, UserRole.PROFESSOR, db)


@router.post("/auth/logout", summary="Logout", description="Clear the session cookie.")
async def logout(request: Request):
    request.session.clear()
    return {"status": "success"}


@router.get("/api/user", summary="Current User", description="Return the logged-in user.")
async def current_user(user: CurrentUser = Depends(get_current_user)):
    return user
