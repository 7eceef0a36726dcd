"""
app/schemas/requests.py

Purpose: Request bodies for the local HTTP surface

- Shapes only; field rules live in the services so the same checks
  apply to every caller
"""

from pydantic import BaseModel, Field
from typing import Optional


class LoginRequest(BaseModel):
    identifier: str = Field(..., description="Email or phone number")
    password: str

    class Config:
        json_schema_extra = {
            "example": {"identifier": "jane@example.com", "password": "Secret#123"}
        }


class RegisterRequest(BaseModel):
    full_name: str
    email: str
    password: str
    phone: str = Field(..., description="Phone number as typed")
    country_code: str = Field("KE", description="Two-letter country code")

    class Config:
        json_schema_extra = {
            "example": {
                "full_name": "Jane Wanjiku",
                "email": "jane@example.com",
                "password": "Secret#123",
                "phone": "0712 345 678",
                "country_code": "KE"
            }
        }


class VerifyPhoneRequest(BaseModel):
    phone: str = Field(..., description="Canonical phone number")
    otp: str = Field(..., description="6-digit code")


class ResendOtpRequest(BaseModel):
    phone: str


class ProfileRequest(BaseModel):
    date_of_birth: Optional[str] = Field(None, description="YYYY-MM-DD")
    country: Optional[str] = None
    city: Optional[str] = None
    address: Optional[str] = None

    class Config:
        json_schema_extra = {
            "example": {
                "date_of_birth": "1990-04-12",
                "country": "Kenya",
                "city": "Nairobi",
                "address": "12 Kenyatta Avenue, Nairobi"
            }
        }


class PhoneNormalizeRequest(BaseModel):
    phone: str = ""
    country_code: Optional[str] = None
