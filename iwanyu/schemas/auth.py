from typing import Annotated, Literal, Union
from pydantic import BaseModel, EmailStr, Field

from .enums import Role, VendorStatus


class AuthUser(BaseModel):
    id: str
    email: EmailStr | None = None
    phone: str | None = None
    role: Role = Role.USER
    name: str | None = None
    vendor_id: str | None = None
    vendor_status: str | None = None
    shop_name: str | None = None
    home: str | None = None


class AuthSession(BaseModel):
    access_token: str
    refresh_token: str | None = None
    token_type: str = "bearer"
    user: AuthUser


class LoginPayload(BaseModel):
    email: EmailStr
    password: str


class SignupPayload(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=6)
    full_name: str = Field(..., max_length=200)
    phone: str | None = None


class PasswordResetPayload(BaseModel):
    email: EmailStr
    redirect_to: str | None = None


class PasswordUpdatePayload(BaseModel):
    new_password: str = Field(..., min_length=6)


class RouteDecisionOut(BaseModel):
    path: str
    action: str
    target: str | None = None
    tree: str
    role: Role | None = None


class ProfileBase(BaseModel):
    id: str
    email: EmailStr | None = None
    full_name: str | None = None
    phone: str | None = None
    avatar_url: str | None = None
    is_active: bool = True


class AdminProfile(ProfileBase):
    role: Literal["admin"] = "admin"


class UserProfile(ProfileBase):
    role: Literal["user"] = "user"


class VendorProfile(ProfileBase):
    role: Literal["vendor"] = "vendor"
    vendor_id: str | None = None
    vendor_status: VendorStatus | None = None
    shop_name: str | None = None


AccountProfile = Annotated[Union[VendorProfile, AdminProfile, UserProfile], Field(discriminator="role")]


class ProfileUpdate(BaseModel):
    full_name: str | None = Field(None, max_length=200)
    phone: str | None = Field(None, max_length=30)
    avatar_url: str | None = None
