"""Schema for accounts module."""

from ninja import Schema
from pydantic import EmailStr, Field, field_validator

from common.schema import OneToOneFiftyString


class OtpSendSchema(Schema):
    email: EmailStr
    name: OneToOneFiftyString

    @field_validator("email", mode="after")
    @classmethod
    def lowercase_email(cls, v: str) -> str:
        """Emails are matched case-insensitively."""
        return v.lower()


class OtpVerifySchema(Schema):
    email: EmailStr
    code: str = Field(..., min_length=6, max_length=6, pattern=r"^[0-9]{6}$")

    @field_validator("email", mode="after")
    @classmethod
    def lowercase_email(cls, v: str) -> str:
        """Emails are matched case-insensitively."""
        return v.lower()


class VerificationTokenSchema(Schema):
    verification_token: str
    expires_in: int
