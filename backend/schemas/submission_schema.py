from pydantic import BaseModel, Field
from typing import List, Optional

class SubmissionCreate(BaseModel):
    full_name: Optional[str] = Field(None, alias="fullName")
    phone_number: Optional[str] = Field(None, alias="phoneNumber")
    woreda: Optional[str] = None
    kebele: Optional[str] = None
    village: Optional[str] = None
    identity_document_url: Optional[str] = Field(None, alias="identityDocumentUrl")
    home_map_url: Optional[str] = Field(None, alias="homeMapUrl")

    class Config:
        populate_by_name = True

class SubmissionCreated(BaseModel):
    message: str
    id: str

class SubmissionStatusUpdate(BaseModel):
    status: Optional[str] = None
    type: Optional[str] = None

class Submission(BaseModel):
    id: str
    userId: str
    fullName: str
    phoneNumber: str
    woreda: str
    kebele: str
    village: str
    identityDocumentUrl: str
    homeMapUrl: str
    status: str
    statusUpdatedByUserId: Optional[str] = None
    statusUpdatedAt: Optional[str] = None
    createdAt: str
    updatedAt: str
    type: str
    email: Optional[str] = None
    userName: Optional[str] = None
    statusUpdatedByEmail: Optional[str] = None

class SubmissionsByType(BaseModel):
    sell: List[Submission]
    lessor: List[Submission]
