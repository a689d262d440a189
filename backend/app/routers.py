from typing import Any, Dict, List

from fastapi import APIRouter, Depends, HTTPException, Request, status

from .raid_manager import RaidManager, RaidNotFoundError, summarize_raid
from .schemas import CreateRaidRequest, RaidSummary

router = APIRouter()


def get_raid_manager(request: Request) -> RaidManager:
    return request.app.state.raid_manager


def _get_raid_or_404(manager: RaidManager, raid_id: str):
    try:
        return manager.get_raid(raid_id)
    except RaidNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Raid {raid_id} not found")


@router.post("/raids", response_model=RaidSummary, status_code=status.HTTP_201_CREATED)
def create_raid(payload: CreateRaidRequest, manager: RaidManager = Depends(get_raid_manager)):
    try:
        raid = manager.create_raid(payload)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    return summarize_raid(raid)


@router.get("/raids", response_model=List[RaidSummary])
def list_raids(manager: RaidManager = Depends(get_raid_manager)):
    return manager.list_raids()


@router.get("/raids/{raid_id}")
def get_raid_state(raid_id: str, manager: RaidManager = Depends(get_raid_manager)) -> Dict[str, Any]:
    return _get_raid_or_404(manager, raid_id).get_game_state()


@router.get("/raids/{raid_id}/turn-indicator")
def get_turn_indicator(raid_id: str, manager: RaidManager = Depends(get_raid_manager)) -> Dict[str, Any]:
    return _get_raid_or_404(manager, raid_id).generate_turn_indicator()


@router.delete("/raids/{raid_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_raid(raid_id: str, manager: RaidManager = Depends(get_raid_manager)):
    try:
        await manager.remove_raid(raid_id)
    except RaidNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Raid {raid_id} not found")
