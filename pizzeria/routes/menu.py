from fastapi import APIRouter, Depends

from pizzeria.deps import get_catalog
from pizzeria.repository import PizzaCatalog
from pizzeria.schemas import PizzaResponse

router = APIRouter(prefix="/api/v1/menu", tags=["menu"])


@router.get("/pizzas", response_model=list[PizzaResponse])
async def get_available_pizzas(catalog: PizzaCatalog = Depends(get_catalog)):
    pizzas = await catalog.list_available()
    return [
        PizzaResponse(id=p.id, name=p.name, description=p.description, price=p.price, available=p.available)
        for p in pizzas
    ]
