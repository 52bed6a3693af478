from pydantic import BaseModel
from typing import Optional, List


class SceneResponse(BaseModel):
    name: str
    description: str
    action_type: str  # 'free' or 'choice'
    call_to_action: str
    options: Optional[List[str]] = None
    num_rounds: int


class ScenarioResponse(BaseModel):
    id: str
    name: str
    description: str
    min_players: int
    max_players: int
    max_rounds: int
    scenes: List[SceneResponse] = []
