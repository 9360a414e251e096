from pydantic import BaseModel
from typing import List

class RoleAssign(BaseModel):
    user_id: str
    role: str

class UserRolesResponse(BaseModel):
    user_id: str
    roles: List[str] = []
