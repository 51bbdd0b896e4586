"""
Users API Endpoints
"""

import logging
import math
from typing import List, Literal, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, Response
from pydantic import BaseModel, field_validator
from sqlalchemy.orm import Session

from ..auth.jwt import create_user_token, get_current_admin, get_current_user
from ..auth.passwords import hash_password, verify_password
from ..config import get_config
from ..db.database import get_db
from ..models.models import Department, User
from ..notifications import emails
from ..notifications.mailer import Mailer, get_mailer
from ..schemas import UserResponse
from .. import validators

logger = logging.getLogger(__name__)

router = APIRouter()


# Pydantic schemas
class RegisterRequest(BaseModel):
    first_name: str
    last_name: str
    email: str
    password: str
    role: Optional[Literal["Admin", "User"]] = None

    @field_validator("first_name", "last_name")
    @classmethod
    def check_name(cls, v: str) -> str:
        return validators.person_name(v)

    @field_validator("email")
    @classmethod
    def check_email(cls, v: str) -> str:
        return validators.email_address(v)

    @field_validator("password")
    @classmethod
    def check_password(cls, v: str) -> str:
        return validators.strong_password(v)


class LoginRequest(BaseModel):
    email: str
    password: str


class UserCreate(BaseModel):
    first_name: str
    last_name: str
    email: str
    password: str
    role: Literal["Admin", "User"] = "User"
    department_id: int

    @field_validator("first_name", "last_name")
    @classmethod
    def check_name(cls, v: str) -> str:
        return validators.person_name(v)

    @field_validator("email")
    @classmethod
    def check_email(cls, v: str) -> str:
        return validators.email_address(v)

    @field_validator("password")
    @classmethod
    def check_password(cls, v: str) -> str:
        return validators.min_password(v)


class UserUpdate(BaseModel):
    current_email: str
    new_email: Optional[str] = None
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    role: Optional[Literal["Admin", "User"]] = None
    password: Optional[str] = None
    department_id: Optional[int] = None

    @field_validator("current_email")
    @classmethod
    def check_current_email(cls, v: str) -> str:
        return v.strip().lower()

    @field_validator("new_email")
    @classmethod
    def check_new_email(cls, v: Optional[str]) -> Optional[str]:
        return validators.email_address(v) if v else None

    @field_validator("first_name", "last_name")
    @classmethod
    def check_name(cls, v: Optional[str]) -> Optional[str]:
        return validators.person_name(v) if v else None

    @field_validator("password")
    @classmethod
    def check_password(cls, v: Optional[str]) -> Optional[str]:
        return validators.min_password(v) if v else None


class UserIds(BaseModel):
    user_ids: List[int]


class UserMessage(BaseModel):
    message: str
    user: UserResponse


class LoginResponse(UserMessage):
    token: str


class Pagination(BaseModel):
    total_users: int
    total_pages: int
    current_page: int
    limit: int


class UserList(BaseModel):
    message: str
    users: List[UserResponse]
    pagination: Pagination


def _set_auth_cookie(response: Response, token: str) -> None:
    config = get_config()
    response.set_cookie(
        key=config.auth.cookie_name,
        value=token,
        max_age=config.auth.access_token_expire_minutes * 60,
        httponly=True,
        secure=config.environment == "production",
        samesite="lax",
    )


def _find_by_email(db: Session, email: str) -> Optional[User]:
    return db.query(User).filter(User.email == email.strip().lower()).first()


# API Endpoints
@router.post("/register", response_model=UserMessage, status_code=201)
async def register(
    data: RegisterRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    mailer: Mailer = Depends(get_mailer)
):
    """Self-registration; the very first account becomes an admin"""
    if _find_by_email(db, data.email):
        raise HTTPException(status_code=400, detail="User already exists.")

    is_first_user = db.query(User).count() == 0
    user = User(
        first_name=data.first_name,
        last_name=data.last_name,
        email=data.email,
        password_hash=hash_password(data.password),
        role="Admin" if is_first_user else (data.role or "User"),
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info(f"Registered user {user.id} ({user.role})")

    background_tasks.add_task(emails.send_welcome, mailer, user.email, user.first_name, user.email)
    return {"message": "User registered successfully.", "user": user}


@router.post("/login", response_model=LoginResponse)
async def login(data: LoginRequest, response: Response, db: Session = Depends(get_db)):
    """Exchange credentials for a JWT (also set as an httpOnly cookie)"""
    user = _find_by_email(db, data.email)
    if user is None or not verify_password(data.password, user.password_hash):
        raise HTTPException(status_code=401, detail="Invalid email or password.")

    token = create_user_token(user)
    _set_auth_cookie(response, token)
    return {"message": "Login successful.", "user": user, "token": token}


@router.post("/logout")
async def logout(response: Response):
    response.delete_cookie(get_config().auth.cookie_name)
    return {"message": "Logged out successfully."}


@router.get("/me", response_model=UserResponse)
async def get_me(current_user: User = Depends(get_current_user)):
    return current_user


@router.post("", response_model=UserMessage, status_code=201)
async def create_user(
    data: UserCreate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    mailer: Mailer = Depends(get_mailer),
    admin: User = Depends(get_current_admin)
):
    """Create a user and mail them their credentials (admin only)"""
    if _find_by_email(db, data.email):
        raise HTTPException(status_code=400, detail="User already exists.")
    if db.get(Department, data.department_id) is None:
        raise HTTPException(status_code=400, detail="Invalid department ID.")

    user = User(
        first_name=data.first_name,
        last_name=data.last_name,
        email=data.email,
        password_hash=hash_password(data.password),
        role=data.role,
        department_id=data.department_id,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info(f"Admin {admin.id} created user {user.id}")

    background_tasks.add_task(
        emails.send_welcome, mailer, user.email, user.first_name, user.email, data.password
    )
    return {"message": "User created successfully.", "user": user}


@router.put("", response_model=UserMessage)
async def update_user(
    data: UserUpdate,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    mailer: Mailer = Depends(get_mailer),
    admin: User = Depends(get_current_admin)
):
    """Update a user located by current_email (admin only)"""
    user = _find_by_email(db, data.current_email)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found.")

    if data.new_email and data.new_email != user.email:
        if _find_by_email(db, data.new_email):
            raise HTTPException(status_code=400, detail="Email already in use.")
        user.email = data.new_email

    if data.first_name:
        user.first_name = data.first_name
    if data.last_name:
        user.last_name = data.last_name
    if data.role:
        user.role = data.role

    password_changed = False
    if data.password:
        user.password_hash = hash_password(data.password)
        password_changed = True

    new_department = None
    if data.department_id is not None and data.department_id != user.department_id:
        new_department = db.get(Department, data.department_id)
        if new_department is None:
            raise HTTPException(status_code=400, detail="Invalid department ID.")
        user.department_id = new_department.id

    db.commit()
    db.refresh(user)

    if password_changed:
        background_tasks.add_task(emails.send_password_changed, mailer, user.email, user.first_name)

    if new_department is not None:
        colleagues = [
            email
            for (email,) in db.query(User.email)
            .filter(User.department_id == new_department.id, User.id != user.id)
            .all()
        ]
        background_tasks.add_task(
            emails.send_department_change,
            mailer,
            colleagues,
            user.first_name,
            user.last_name,
            user.email,
            user.role,
            new_department.name,
        )

    return {"message": "User updated successfully.", "user": user}


@router.get("/verify/{email}", response_model=UserMessage)
async def verify_user(
    email: str,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin)
):
    user = _find_by_email(db, email)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found.")
    return {"message": "User verified successfully.", "user": user}


@router.delete("")
async def delete_users(
    data: UserIds,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin)
):
    """Bulk delete (admin only)"""
    if not data.user_ids:
        raise HTTPException(status_code=400, detail="Invalid request. User IDs are required.")

    deleted = (
        db.query(User)
        .filter(User.id.in_(data.user_ids))
        .delete(synchronize_session=False)
    )
    db.commit()
    logger.info(f"Admin {admin.id} deleted {deleted} user(s)")
    return {"message": f"{deleted} user(s) deleted successfully."}


@router.get("", response_model=UserList)
async def list_users(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin)
):
    query = db.query(User).order_by(User.created_at.desc(), User.id.desc())
    total = query.count()
    users = query.offset((page - 1) * limit).limit(limit).all()
    return {
        "message": "Users fetched successfully.",
        "users": users,
        "pagination": {
            "total_users": total,
            "total_pages": math.ceil(total / limit),
            "current_page": page,
            "limit": limit,
        },
    }


@router.post("/fetch", response_model=List[UserResponse])
async def fetch_users(
    data: UserIds,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Resolve a list of user ids"""
    if not data.user_ids:
        return []
    return db.query(User).filter(User.id.in_(data.user_ids)).order_by(User.id).all()
