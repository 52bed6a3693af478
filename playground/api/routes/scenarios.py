from fastapi import APIRouter, Depends, HTTPException
from typing import List

from ...schemas.scenarios import SceneResponse, ScenarioResponse
from ...services.scenarios import ActionKind, Scenario, ScenarioCatalog, get_catalog

router = APIRouter()


def scenario_response(scenario: Scenario) -> ScenarioResponse:
    return ScenarioResponse(
        id=scenario.id,
        name=scenario.name,
        description=scenario.description,
        min_players=scenario.min_players,
        max_players=scenario.max_players,
        max_rounds=scenario.round_budget,
        scenes=[
            SceneResponse(
                name=scene.name,
                description=scene.description,
                action_type=scene.action.kind.value,
                call_to_action=scene.action.call_to_action,
                options=list(scene.action.options) if scene.action.kind == ActionKind.CHOICE else None,
                num_rounds=scene.num_rounds,
            )
            for scene in scenario.scenes
        ],
    )


@router.get("/", response_model=List[ScenarioResponse])
async def list_scenarios(catalog: ScenarioCatalog = Depends(get_catalog)):
    """List available scenarios."""
    return [scenario_response(s) for s in catalog.list()]


@router.get("/{scenario_id}", response_model=ScenarioResponse)
async def get_scenario(scenario_id: str, catalog: ScenarioCatalog = Depends(get_catalog)):
    """Get a scenario by ID."""
    scenario = catalog.get(scenario_id)
    if not scenario:
        raise HTTPException(status_code=404, detail="Scenario not found")
    return scenario_response(scenario)
