"""Plants API routes."""

from typing import List
from fastapi import APIRouter, Depends, status

from sprouty.core.dependencies import get_current_user
from sprouty.plants.models import PlantCreate, PlantUpdate, PlantResponse
from sprouty.plants.service import PlantService


router = APIRouter(prefix="/plants", tags=["Plants"])


@router.post("", response_model=PlantResponse, status_code=status.HTTP_201_CREATED)
async def save_plant(
    plant_data: PlantCreate,
    current_user: dict = Depends(get_current_user)
):
    """Add a plant to your collection."""
    return await PlantService.create_plant(current_user["id"], plant_data)


@router.get("", response_model=List[PlantResponse])
async def list_plants(current_user: dict = Depends(get_current_user)):
    """Get all plants in your collection."""
    return await PlantService.get_user_plants(current_user["id"])


@router.get("/{plant_id}", response_model=PlantResponse)
async def get_plant(
    plant_id: str,
    current_user: dict = Depends(get_current_user)
):
    """Get a specific plant from your collection."""
    return await PlantService.get_plant_by_id(plant_id, current_user["id"])


@router.patch("/{plant_id}", response_model=PlantResponse)
async def update_plant(
    plant_id: str,
    updates: PlantUpdate,
    current_user: dict = Depends(get_current_user)
):
    """Update a plant in your collection."""
    return await PlantService.update_plant(
        plant_id,
        current_user["id"],
        updates.model_dump(exclude_none=True)
    )


@router.delete("/{plant_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_plant(
    plant_id: str,
    current_user: dict = Depends(get_current_user)
):
    """Delete a plant and every reminder attached to it."""
    await PlantService.delete_plant(plant_id, current_user["id"])
