from fastapi import APIRouter, Depends
from sqlmodel import Session

from app.core.auth import require_auth
from app.database import get_session
from app.models.user import User
from app.repositories.reward_repo import RewardRepository
from app.schemas.reward import RewardSummary, RewardTierRead
from app.services.reward_service import RewardService

router = APIRouter(prefix="/rewards", tags=["Rewards"])

service = RewardService(RewardRepository())


@router.get("/me", response_model=RewardSummary)
def get_my_rewards(
    session: Session = Depends(get_session),
    current_user: User = Depends(require_auth),
):
    """
    Point balance (sum of the ledger), current tier and latest entries.
    """
    return service.summary(session, current_user.id)


@router.get("/tiers", response_model=list[RewardTierRead])
def list_reward_tiers(session: Session = Depends(get_session)):
    return service.list_tiers(session)
