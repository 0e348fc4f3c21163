from pydantic import BaseModel
from typing import Optional

# Fields are optional so that missing values reach the service and produce
# the same 400 message as blank ones.

class OtpRequest(BaseModel):
    email: Optional[str] = None

class SignupVerifyRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None
    name: Optional[str] = None
    code: Optional[str] = None

class PasswordResetRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None
    code: Optional[str] = None

class LoginRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None

class OtpIssued(BaseModel):
    message: str
    expiresAt: str

class OtpCompleted(BaseModel):
    message: str
    email: str

class LoginUser(BaseModel):
    id: str
    email: str
    name: Optional[str] = None
    role: str

class Token(BaseModel):
    access_token: str
    token_type: str
    user: LoginUser
