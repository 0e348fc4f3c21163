from fastapi import APIRouter, Depends
from api.dependencies import admin_required
from schemas.user_schema import AgentList, AssignAgentRequest, CurrentUser
from services.admin_service import assign_agent, list_agents, revoke_agent
from db.session import get_db_session
from sqlalchemy.ext.asyncio import AsyncSession
from utils.responses import no_store_json
from utils.timing import timeit

router = APIRouter(prefix="/admin")

@router.get("/agents", response_model=AgentList)
@timeit()
async def get_agents(current_user: CurrentUser = Depends(admin_required), db: AsyncSession = Depends(get_db_session)):
    return no_store_json(await list_agents(db))

@router.post("/agents")
@timeit()
async def add_agent(payload: AssignAgentRequest, current_user: CurrentUser = Depends(admin_required), db: AsyncSession = Depends(get_db_session)):
    return no_store_json(await assign_agent(payload.email, db))

@router.delete("/agents/{user_id}")
@timeit()
async def remove_agent(user_id: str, current_user: CurrentUser = Depends(admin_required), db: AsyncSession = Depends(get_db_session)):
    return no_store_json(await revoke_agent(user_id, db))
