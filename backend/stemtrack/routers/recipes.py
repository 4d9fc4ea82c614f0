"""Recipe router.

Endpoints:
    GET  /api/recipes/   All recipes, newest first
    POST /api/recipes/   Create a recipe from the form
"""

from fastapi import APIRouter, Depends, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from stemtrack.auth.deps import get_current_user
from stemtrack.database import get_db
from stemtrack.models.recipe import Recipe
from stemtrack.models.user import User
from stemtrack.schemas.recipe import RecipeCreate, RecipeCreateResponse, RecipeOut
from stemtrack.services.transitions import create_recipe

router = APIRouter()


@router.get("/", response_model=list[RecipeOut])
async def list_recipes(
    db: AsyncSession = Depends(get_db),
    _user: User = Depends(get_current_user),
):
    result = await db.execute(select(Recipe).order_by(Recipe.created_at.desc()))
    return [RecipeOut.model_validate(r) for r in result.scalars().all()]


@router.post("/", response_model=RecipeCreateResponse, status_code=status.HTTP_201_CREATED)
async def post_recipe(
    body: RecipeCreate,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Create a recipe. Incomplete flower rows are dropped, not rejected."""
    recipe = await create_recipe(body, user_email=user.email, db=db)
    return RecipeCreateResponse(
        message="Recipe created successfully!",
        recipe=RecipeOut.model_validate(recipe),
    )
