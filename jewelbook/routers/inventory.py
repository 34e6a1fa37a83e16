# jewelbook/routers/inventory.py

from fastapi import APIRouter, HTTPException, Query, Response
from sqlmodel import select
from typing import List, Optional
from pydantic import BaseModel
import logging
from sqlalchemy import func
from sqlalchemy.sql import or_

from jewelbook.db import get_session
from jewelbook.models import Item, ItemGroup, now_ts
from jewelbook.utils.currency import round_currency

logger = logging.getLogger("api.items")

router = APIRouter()

# ---------- Local Schemas ----------
class ItemIn(BaseModel):
    name: str
    group_id: int
    price: float = 0.0
    description: Optional[str] = None

    class Config:
        extra = "ignore"
        allow_inf_nan = False


class ItemUpdateIn(BaseModel):
    name: Optional[str] = None
    group_id: Optional[int] = None
    price: Optional[float] = None
    description: Optional[str] = None

    class Config:
        extra = "ignore"
        allow_inf_nan = False


class ItemOut(BaseModel):
    id: int
    name: str
    group_id: Optional[int] = None
    group_name: Optional[str] = None
    price: float
    description: Optional[str] = None
    created_at: str
    updated_at: str

    class Config:
        from_attributes = True


# paginated response envelope for the item picker's infinite scroll
class ItemPageOut(BaseModel):
    items: List[ItemOut]
    total: int
    next_offset: Optional[int] = None


# ---------- Helpers ----------
def _to_out(item: Item, group_name: Optional[str]) -> ItemOut:
    return ItemOut(
        id=item.id,
        name=item.name,
        group_id=item.group_id,
        group_name=group_name,
        price=item.price,
        description=item.description,
        created_at=item.created_at,
        updated_at=item.updated_at,
    )


def _require_group(session, group_id: int) -> ItemGroup:
    group = session.get(ItemGroup, group_id)
    if not group:
        raise HTTPException(status_code=404, detail="Item group not found")
    return group


# ---------- Endpoints ----------

@router.get("/", response_model=ItemPageOut)
def list_items(
    q: Optional[str] = Query(None, description="Search in item name"),
    group_id: Optional[int] = Query(None),
    limit: int = Query(500, ge=1, le=1000),
    offset: int = Query(0, ge=0),
):
    with get_session() as session:
        base_stmt = select(Item, ItemGroup.name).outerjoin(ItemGroup, Item.group_id == ItemGroup.id)

        if q:
            like = f"%{q.strip()}%"
            base_stmt = base_stmt.where(or_(Item.name.ilike(like), Item.description.ilike(like)))
        if group_id is not None:
            base_stmt = base_stmt.where(Item.group_id == group_id)

        count_stmt = select(func.count()).select_from(base_stmt.subquery())
        total = session.exec(count_stmt).one()

        page_stmt = (
            base_stmt
            .order_by(Item.name, Item.id)
            .limit(limit)
            .offset(offset)
        )
        rows = session.exec(page_stmt).all()

        next_offset = offset + limit if (offset + limit) < total else None

        return {
            "items": [_to_out(item, group_name) for item, group_name in rows],
            "total": total,
            "next_offset": next_offset,
        }


@router.get("/{item_id}", response_model=ItemOut)
def get_item(item_id: int):
    with get_session() as session:
        item = session.get(Item, item_id)
        if not item:
            raise HTTPException(status_code=404, detail="Item not found")
        group = session.get(ItemGroup, item.group_id) if item.group_id else None
        return _to_out(item, group.name if group else None)


@router.post("/", response_model=ItemOut, status_code=201)
def create_item(payload: ItemIn):
    name = (payload.name or "").strip()
    if not name:
        raise HTTPException(status_code=400, detail="Item name is required")
    if payload.price < 0:
        raise HTTPException(status_code=400, detail="Price cannot be negative")

    with get_session() as session:
        group = _require_group(session, payload.group_id)
        item = Item(
            name=name,
            group_id=group.id,
            price=round_currency(payload.price),
            description=payload.description,
            created_at=now_ts(),
            updated_at=now_ts(),
        )
        session.add(item)
        session.commit()
        session.refresh(item)
        return _to_out(item, group.name)


@router.patch("/{item_id}", response_model=ItemOut)
def update_item(item_id: int, payload: ItemUpdateIn):
    with get_session() as session:
        item = session.get(Item, item_id)
        if not item:
            raise HTTPException(status_code=404, detail="Item not found")

        data = payload.model_dump(exclude_unset=True)

        if "name" in data:
            data["name"] = (data["name"] or "").strip()
            if not data["name"]:
                raise HTTPException(status_code=400, detail="Item name is required")
        if "price" in data:
            if data["price"] is None or data["price"] < 0:
                raise HTTPException(status_code=400, detail="Price cannot be negative")
            data["price"] = round_currency(data["price"])
        if "group_id" in data:
            if data["group_id"] is None:
                raise HTTPException(status_code=400, detail="group_id is required")
            _require_group(session, data["group_id"])

        # past invoices keep their own snapshot of name/rate
        for k, v in data.items():
            setattr(item, k, v)
        item.updated_at = now_ts()

        session.add(item)
        session.commit()
        session.refresh(item)
        group = session.get(ItemGroup, item.group_id) if item.group_id else None
        return _to_out(item, group.name if group else None)


@router.delete("/{item_id}", status_code=204)
def delete_item(item_id: int):
    with get_session() as session:
        item = session.get(Item, item_id)
        if not item:
            raise HTTPException(status_code=404, detail="Item not found")
        session.delete(item)
        session.commit()
        logger.info("Item %s deleted", item_id)
        return Response(status_code=204)
