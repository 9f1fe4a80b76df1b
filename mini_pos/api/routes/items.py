from fastapi import APIRouter, Depends, HTTPException
from typing import List
from mini_pos.core.database import Database, get_db
from mini_pos.core.exceptions import DuplicateName
from mini_pos.models.schemas import Item, ItemCreate, ItemUpdate
from mini_pos.services.item_store import ItemStore

router = APIRouter()


@router.post("/", response_model=Item, status_code=201)
async def create_item(item_data: ItemCreate, db: Database = Depends(get_db)):
    """Create a new catalog item"""
    store = ItemStore(db)
    try:
        item_id = await store.add(item_data)
    except DuplicateName as e:
        raise HTTPException(status_code=409, detail=str(e))
    return await store.get_by_id(item_id)


@router.get("/", response_model=List[Item])
async def get_items(db: Database = Depends(get_db)):
    """Get all items ordered by name"""
    return await ItemStore(db).get_all()


@router.get("/{item_id}", response_model=Item)
async def get_item(item_id: int, db: Database = Depends(get_db)):
    """Get a specific item"""
    item = await ItemStore(db).get_by_id(item_id)
    if not item:
        raise HTTPException(status_code=404, detail="Item not found")
    return item


@router.put("/{item_id}", response_model=Item)
async def update_item(item_id: int, item_data: ItemCreate, db: Database = Depends(get_db)):
    """Replace an item's name, category, price, stock and threshold"""
    store = ItemStore(db)
    try:
        updated = await store.update(ItemUpdate(id=item_id, **item_data.model_dump()))
    except DuplicateName as e:
        raise HTTPException(status_code=409, detail=str(e))
    if not updated:
        raise HTTPException(status_code=404, detail="Item not found")
    return await store.get_by_id(item_id)


@router.delete("/{item_id}")
async def delete_item(item_id: int, db: Database = Depends(get_db)):
    """Delete an item; refused while any order line references it"""
    deleted = await ItemStore(db).delete(item_id)
    if not deleted:
        raise HTTPException(
            status_code=409,
            detail="Item could not be deleted. It might have already been deleted or is part of an order."
        )
    return {"deleted": deleted}
