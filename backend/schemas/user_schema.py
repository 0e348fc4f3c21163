from pydantic import BaseModel
from typing import List, Optional

class CurrentUser(BaseModel):
    id: str
    email: str
    name: Optional[str] = None
    role: str

    class Config:
        from_attributes = True
        extra = "ignore"

class RoleResponse(BaseModel):
    role: Optional[str] = None

class AssignAgentRequest(BaseModel):
    email: Optional[str] = None

class Agent(BaseModel):
    id: str
    email: str
    name: Optional[str] = None
    role: str
    createdAt: Optional[str] = None
    updatedAt: Optional[str] = None

class AgentList(BaseModel):
    agents: List[Agent]
