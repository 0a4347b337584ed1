from pydantic import BaseModel, EmailStr, Field
from typing import Optional, Literal
from datetime import datetime
from uuid import UUID
from modulehub.models import UserRole


class UserCreate(BaseModel):
    # admins are bootstrapped with create_admin.py, never self-registered
    role: UserRole
    name: str
    username: str = Field(..., min_length=3, max_length=100)
    email: Optional[EmailStr] = None
    password: str = Field(..., min_length=6)

    # Student fields
    level: Optional[Literal["lmd1", "lmd2", "lmd3", "ing1", "ing2"]] = None
    academic_year: Optional[str] = None


class UserLoginRequest(BaseModel):
    username: str
    password: str


class TokenResponse(BaseModel):

    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    role: str


#for admin

class UserListBasic(BaseModel):
    id: UUID
    name: str
    username: str
    role: UserRole
    is_approved: bool
    created_at: datetime

    model_config = {
        "from_attributes": True
    }


class DashboardStats(BaseModel):
    total_users: int
    total_teachers: int
    total_students: int
    pending_approvals: int
    total_modules: int
    total_lessons: int
    total_enrollments: int
    total_quizzes: int
    total_submissions: int
