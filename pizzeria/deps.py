from fastapi import Request

from pizzeria.lifecycle import OrderLifecycleManager
from pizzeria.repository import PizzaCatalog


def get_manager(request: Request) -> OrderLifecycleManager:
    return request.app.state.manager


def get_catalog(request: Request) -> PizzaCatalog:
    return request.app.state.catalog
