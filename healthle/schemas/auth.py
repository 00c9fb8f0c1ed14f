"""Request schemas for sign-up, sign-in and account migration."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class SignupRequest(BaseModel):
    """
    User portal sign-up.

    Attributes:
        temp_uid: Temporary id the visitor used before signing up; their
            interviews and orders are moved to the new account
    """
    email: Optional[str] = None
    password: Optional[str] = None
    temp_uid: Optional[str] = None


class MigrateRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    old_user_id: Optional[str] = Field(default=None, alias="oldUserId")
    new_user_id: Optional[str] = Field(default=None, alias="newUserId")


class Credentials(BaseModel):
    email: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class VendorSignupRequest(Credentials):
    store_name: str = Field(..., min_length=1, max_length=255)
