# saas_starter/schemas/auth.py
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, ValidationInfo, field_validator


class FormModel(BaseModel):
    # camelCase on the wire, snake_case in Python
    model_config = ConfigDict(populate_by_name=True)


class SignInForm(FormModel):
    email: EmailStr
    password: str = Field(min_length=8, max_length=100)
    redirect: Optional[str] = None
    price_id: Optional[str] = Field(default=None, alias="priceId")


class SignUpForm(FormModel):
    email: EmailStr
    password: str = Field(min_length=8, max_length=100)
    invite_id: Optional[str] = Field(default=None, alias="inviteId")
    redirect: Optional[str] = None
    price_id: Optional[str] = Field(default=None, alias="priceId")


class UpdatePasswordForm(FormModel):
    current_password: str = Field(min_length=8, max_length=100, alias="currentPassword")
    new_password: str = Field(min_length=8, max_length=100, alias="newPassword")
    confirm_password: str = Field(min_length=8, max_length=100, alias="confirmPassword")

    @field_validator("confirm_password")
    @classmethod
    def _passwords_match(cls, v: str, info: ValidationInfo) -> str:
        new_password = info.data.get("new_password")
        if new_password is not None and v != new_password:
            raise ValueError("Passwords don't match")
        return v


class DeleteAccountForm(FormModel):
    password: str = Field(min_length=8, max_length=100)


class UpdateAccountForm(FormModel):
    name: str = Field(min_length=1, max_length=100)
    email: EmailStr
