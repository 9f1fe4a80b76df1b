from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import JSONResponse
from typing import List
from mini_pos.core.database import Database, get_db
from mini_pos.core.exceptions import ItemNotFound, StockShortfall, StorageFailure, ValidationError
from mini_pos.models.schemas import Order, OrderCreate, OrderLine
from mini_pos.services.order_service import OrderCommitService
from mini_pos.services.order_store import OrderStore

router = APIRouter()


def get_order_service(request: Request, db: Database = Depends(get_db)) -> OrderCommitService:
    return OrderCommitService(db, stock_check=request.app.state.settings.STOCK_CHECK_MODE)


@router.post("/", response_model=Order, status_code=201)
async def create_order(
    order_data: OrderCreate,
    db: Database = Depends(get_db),
    service: OrderCommitService = Depends(get_order_service),
):
    """Commit a cart as a new order"""
    try:
        order_id = await service.process_order(order_data)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except StockShortfall as e:
        return JSONResponse(
            status_code=409,
            content={
                "detail": str(e),
                "item_id": e.item_id,
                "item_name": e.item_name,
                "requested": e.requested,
                "available": e.available,
                "shortfall": e.shortfall,
            },
        )
    except ItemNotFound as e:
        raise HTTPException(status_code=404, detail=str(e))
    except StorageFailure as e:
        raise HTTPException(status_code=500, detail=f"Internal server error: {str(e)}")
    return await OrderStore(db).get_by_id(order_id)


@router.get("/", response_model=List[Order])
async def get_orders(db: Database = Depends(get_db)):
    """Get all orders, newest first"""
    return await OrderStore(db).get_all()


@router.get("/{order_id}", response_model=Order)
async def get_order(order_id: int, db: Database = Depends(get_db)):
    """Get a specific order with its lines"""
    order = await OrderStore(db).get_by_id(order_id)
    if not order:
        raise HTTPException(status_code=404, detail="Order not found")
    return order


@router.get("/{order_id}/lines", response_model=List[OrderLine])
async def get_order_lines(order_id: int, db: Database = Depends(get_db)):
    """Get the lines of an order"""
    return await OrderStore(db).get_lines_for_order(order_id)
