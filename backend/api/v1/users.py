from typing import Optional
from fastapi import APIRouter, Depends
from api.dependencies import get_optional_user
from schemas.user_schema import CurrentUser, RoleResponse
from utils.responses import no_store_json

router = APIRouter()

@router.get("/user/role", response_model=RoleResponse)
async def get_user_role(current_user: Optional[CurrentUser] = Depends(get_optional_user)):
    # Anonymous callers get a null role rather than 401
    return no_store_json({"role": current_user.role if current_user else None})
