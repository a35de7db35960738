"""
Pydantic request schemas for the cell-group API.
"""

from __future__ import annotations

from datetime import date
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from celulas.types import UserStatus


class RegisterRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    email: str = Field(..., max_length=255)
    password: str
    confirm_password: Optional[str] = None


class LoginRequest(BaseModel):
    email: str
    password: str


class UserUpdateRequest(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    email: Optional[str] = Field(default=None, max_length=255)
    role: Optional[str] = None
    cell_id: Optional[str] = None
    # Cells this user should supervise, replacing the current set.
    cell_ids: Optional[list[str]] = None


class UserStatusRequest(BaseModel):
    status: UserStatus


class CellCreateRequest(BaseModel):
    name: str = Field(..., max_length=255)
    supervisor_id: Optional[str] = None
    secretary_id: Optional[str] = None
    leader_ids: list[str] = Field(default_factory=list)


class CellUpdateRequest(BaseModel):
    name: Optional[str] = Field(default=None, max_length=255)
    supervisor_id: Optional[str] = None
    secretary_id: Optional[str] = None
    leader_ids: Optional[list[str]] = None


class CellMemberRequest(BaseModel):
    user_id: str


class CellLeaderRequest(BaseModel):
    user_id: str


class CellSupervisorRequest(BaseModel):
    supervisor_id: Optional[str] = None


class CellSecretaryRequest(BaseModel):
    secretary_id: Optional[str] = None


class ProfileUpdateRequest(BaseModel):
    """Fields a user may change on their own profile."""

    model_config = ConfigDict(extra="ignore")

    name: Optional[str] = Field(default=None, max_length=255)
    full_name: Optional[str] = None
    phone: Optional[str] = None
    whatsapp: Optional[str] = None
    gender: Optional[str] = None
    birth_city: Optional[str] = None
    birth_state: Optional[str] = None
    birth_date: Optional[date] = None
    address: Optional[str] = None
    address_number: Optional[str] = None
    neighborhood: Optional[str] = None
    zip_code: Optional[str] = None
    address_reference: Optional[str] = None
    father_name: Optional[str] = None
    mother_name: Optional[str] = None
    marital_status: Optional[str] = None
    spouse_name: Optional[str] = None
    education_level: Optional[str] = None
    education_course: Optional[str] = None
    profession: Optional[str] = None
    conversion_date: Optional[date] = None
    transfer_info: Optional[str] = None
    has_children: Optional[bool] = None
    oikos1: Optional[str] = None
    oikos2: Optional[str] = None
    oikos1_name: Optional[str] = None
    oikos2_name: Optional[str] = None

    @field_validator("birth_date", "conversion_date", mode="before")
    @classmethod
    def _blank_date(cls, value):
        # Profile forms post "" for dates left empty.
        if isinstance(value, str) and not value.strip():
            return None
        return value

    def changes(self) -> dict:
        """Column values to write, with aliases folded and None dropped."""
        data = self.model_dump(exclude_unset=True)
        for alias, column in (("oikos1_name", "oikos1"), ("oikos2_name", "oikos2")):
            value = data.pop(alias, None)
            if value is not None:
                data[column] = value
        return {key: value for key, value in data.items() if value is not None}
