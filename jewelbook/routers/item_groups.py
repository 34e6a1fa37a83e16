# jewelbook/routers/item_groups.py
from typing import List

from fastapi import APIRouter, HTTPException, Response
from sqlalchemy import func
from sqlmodel import select

from jewelbook.db import get_session
from jewelbook.models import (
    Item, ItemGroup,
    ItemGroupIn, ItemGroupUpdate, ItemGroupOut,
    now_ts,
)

router = APIRouter()


@router.get("/", response_model=List[ItemGroupOut])
def list_groups() -> List[ItemGroupOut]:
    with get_session() as session:
        return session.exec(select(ItemGroup).order_by(ItemGroup.name, ItemGroup.id)).all()


@router.post("/", response_model=ItemGroupOut, status_code=201)
def create_group(payload: ItemGroupIn) -> ItemGroupOut:
    name = (payload.name or "").strip()
    if not name:
        raise HTTPException(status_code=400, detail="Group name is required")
    with get_session() as session:
        row = ItemGroup(name=name, description=payload.description)
        session.add(row)
        session.commit()
        session.refresh(row)
        return row


@router.patch("/{group_id}", response_model=ItemGroupOut)
def update_group(group_id: int, payload: ItemGroupUpdate) -> ItemGroupOut:
    with get_session() as session:
        row = session.get(ItemGroup, group_id)
        if not row:
            raise HTTPException(status_code=404, detail="Item group not found")

        data = payload.model_dump(exclude_unset=True)
        if "name" in data:
            name = (data["name"] or "").strip()
            if not name:
                raise HTTPException(status_code=400, detail="Group name is required")
            data["name"] = name
        for k, v in data.items():
            setattr(row, k, v)
        row.updated_at = now_ts()

        session.add(row)
        session.commit()
        session.refresh(row)
        return row


@router.delete("/{group_id}", status_code=204)
def delete_group(group_id: int) -> Response:
    with get_session() as session:
        row = session.get(ItemGroup, group_id)
        if not row:
            raise HTTPException(status_code=404, detail="Item group not found")
        children = session.exec(
            select(func.count(Item.id)).where(Item.group_id == group_id)
        ).one()
        if children:
            raise HTTPException(
                status_code=400,
                detail="Cannot delete item group that contains items. Delete or move the items first.",
            )
        session.delete(row)
        session.commit()
        return Response(status_code=204)
