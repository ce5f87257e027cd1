# saas_starter/schemas/team.py
from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from saas_starter.schemas.auth import FormModel


class RemoveTeamMemberForm(FormModel):
    member_id: int = Field(ge=1, alias="memberId")


class InviteTeamMemberForm(FormModel):
    email: EmailStr
    role: Literal["member", "owner"]


class UserOut(BaseModel):
    id: int
    name: Optional[str] = None
    email: str
    role: str

    model_config = ConfigDict(from_attributes=True)


class MemberOut(BaseModel):
    member_id: int
    user_id: int
    name: Optional[str] = None
    email: str
    role: str

    model_config = ConfigDict(from_attributes=True)


class TeamOut(BaseModel):
    id: int
    name: str
    stripe_customer_id: Optional[str] = None
    stripe_product_id: Optional[str] = None
    plan_name: Optional[str] = None
    subscription_status: Optional[str] = None
    members: List[MemberOut] = []


class ActivityOut(BaseModel):
    id: int
    action: str
    timestamp: datetime
    ip_address: Optional[str] = None
    user_name: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class PriceOut(BaseModel):
    id: str
    product_id: str
    product_name: Optional[str] = None
    unit_amount: Optional[int] = None
    currency: str
    interval: Optional[str] = None
    trial_period_days: Optional[int] = None

    model_config = ConfigDict(from_attributes=True)
