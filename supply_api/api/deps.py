from fastapi import Request

from ..state import SupplyState


def get_state(request: Request) -> SupplyState:
    return request.app.state.supply
