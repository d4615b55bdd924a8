"""
Clients API router.

Routes (mounted at /api/clients):
- POST / - Register a client and its login (open to anonymous callers)
- GET / - List clients (admin)
- GET /{client_id} - Get one client
- PUT /{client_id} - Update a client (admin)
- GET /{client_id}/orders - The client's orders
"""

import logging
from typing import List

from fastapi import APIRouter, Depends

from storefront.api.dependencies import (
    get_client_use_case,
    get_current_principal,
    get_order_lifecycle_use_case,
)
from storefront.api.requests import CreateClientRequest, UpdateClientRequest
from storefront.api.responses import ClientResponse, OrderResponse
from storefront.domain import Principal
from storefront.usecases import ClientUseCase, OrderLifecycleUseCase

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("", response_model=ClientResponse, status_code=201)
async def register_client(
    request: CreateClientRequest,
    clients: ClientUseCase = Depends(get_client_use_case),
) -> ClientResponse:
    client = await clients.register_client(
        request.full_name, request.email, request.password, request.tier
    )
    return ClientResponse.from_domain(client)


@router.get("", response_model=List[ClientResponse])
async def list_clients(
    clients: ClientUseCase = Depends(get_client_use_case),
    principal: Principal = Depends(get_current_principal),
) -> List[ClientResponse]:
    return [
        ClientResponse.from_domain(c)
        for c in await clients.list_clients(principal)
    ]


@router.get("/{client_id}", response_model=ClientResponse)
async def get_client(
    client_id: int,
    clients: ClientUseCase = Depends(get_client_use_case),
    principal: Principal = Depends(get_current_principal),
) -> ClientResponse:
    return ClientResponse.from_domain(
        await clients.get_client(principal, client_id)
    )


@router.put("/{client_id}", response_model=ClientResponse)
async def update_client(
    client_id: int,
    request: UpdateClientRequest,
    clients: ClientUseCase = Depends(get_client_use_case),
    principal: Principal = Depends(get_current_principal),
) -> ClientResponse:
    client = await clients.update_client(
        principal,
        client_id,
        full_name=request.full_name,
        email=request.email,
        tier=request.tier,
    )
    return ClientResponse.from_domain(client)


@router.get("/{client_id}/orders", response_model=List[OrderResponse])
async def list_client_orders(
    client_id: int,
    clients: ClientUseCase = Depends(get_client_use_case),
    lifecycle: OrderLifecycleUseCase = Depends(get_order_lifecycle_use_case),
    principal: Principal = Depends(get_current_principal),
) -> List[OrderResponse]:
    # 404 for unknown clients rather than an empty list
    await clients.get_client(principal, client_id)
    views = await lifecycle.list_orders(principal, client_id)
    return [OrderResponse.from_view(view) for view in views]
