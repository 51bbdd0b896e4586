"""
Clients API Endpoints
"""

import logging
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, field_validator
from sqlalchemy import or_
from sqlalchemy.orm import Session

from ..auth.jwt import get_current_admin, get_current_user
from ..db.database import get_db
from ..models.models import Client, Project, User
from .. import validators

logger = logging.getLogger(__name__)

router = APIRouter()


def _client_name(v: str) -> str:
    v = " ".join(v.split())
    if len(v) < 3:
        raise ValueError("must be at least 3 characters long")
    return validators.capitalize_words(v)


def _address(v: str) -> str:
    v = " ".join(v.split())
    if not v:
        raise ValueError("must not be empty")
    return validators.capitalize_words(v)


# Pydantic schemas
class ClientCreate(BaseModel):
    name: str
    email: str
    address: str
    phone_number_one: str
    phone_number_two: Optional[str] = None

    @field_validator("name")
    @classmethod
    def check_name(cls, v: str) -> str:
        return _client_name(v)

    @field_validator("email")
    @classmethod
    def check_email(cls, v: str) -> str:
        return validators.email_address(v)

    @field_validator("address")
    @classmethod
    def check_address(cls, v: str) -> str:
        return _address(v)

    @field_validator("phone_number_one")
    @classmethod
    def check_phone_one(cls, v: str) -> str:
        return validators.phone_number(v)

    @field_validator("phone_number_two")
    @classmethod
    def check_phone_two(cls, v: Optional[str]) -> Optional[str]:
        return validators.phone_number(v) if v else None


class ClientUpdate(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None
    phone_number_one: Optional[str] = None
    phone_number_two: Optional[str] = None

    @field_validator("name")
    @classmethod
    def check_name(cls, v: Optional[str]) -> Optional[str]:
        return _client_name(v) if v is not None else v

    @field_validator("email")
    @classmethod
    def check_email(cls, v: Optional[str]) -> Optional[str]:
        return validators.email_address(v) if v is not None else v

    @field_validator("address")
    @classmethod
    def check_address(cls, v: Optional[str]) -> Optional[str]:
        return _address(v) if v is not None else v

    @field_validator("phone_number_one", "phone_number_two")
    @classmethod
    def check_phone(cls, v: Optional[str]) -> Optional[str]:
        return validators.phone_number(v) if v else v


class ClientResponse(BaseModel):
    id: int
    name: str
    email: str
    address: str
    phone_number_one: str
    phone_number_two: Optional[str]
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class ClientMessage(BaseModel):
    message: str
    client: ClientResponse


def _duplicate(db: Session, name: Optional[str], email: Optional[str], exclude_id: Optional[int] = None) -> bool:
    conditions = []
    if name:
        conditions.append(Client.name == name)
    if email:
        conditions.append(Client.email == email)
    if not conditions:
        return False
    query = db.query(Client).filter(or_(*conditions))
    if exclude_id is not None:
        query = query.filter(Client.id != exclude_id)
    return query.first() is not None


def _get_or_404(db: Session, client_id: int) -> Client:
    client = db.get(Client, client_id)
    if client is None:
        raise HTTPException(status_code=404, detail="Client not found")
    return client


# API Endpoints
@router.post("", response_model=ClientMessage, status_code=201)
async def create_client(
    data: ClientCreate,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin)
):
    if _duplicate(db, data.name, data.email):
        raise HTTPException(status_code=400, detail="Client already exists")

    client = Client(**data.model_dump())
    db.add(client)
    db.commit()
    db.refresh(client)
    logger.info(f"Created client {client.id} '{client.name}'")
    return {"message": "Client created successfully", "client": client}


@router.get("", response_model=List[ClientResponse])
async def list_clients(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return db.query(Client).order_by(Client.name).all()


@router.get("/by-project/{project_id}", response_model=ClientResponse)
async def get_client_by_project(
    project_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Client of a project"""
    project = db.get(Project, project_id)
    if project is None:
        raise HTTPException(status_code=404, detail="Project not found")
    return project.client


@router.get("/{client_id}", response_model=ClientResponse)
async def get_client(
    client_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return _get_or_404(db, client_id)


@router.put("/{client_id}", response_model=ClientMessage)
async def update_client(
    client_id: int,
    data: ClientUpdate,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin)
):
    """Partial update"""
    client = _get_or_404(db, client_id)
    changes = data.model_dump(exclude_unset=True)
    if not changes:
        raise HTTPException(status_code=400, detail="No fields provided for update")

    if _duplicate(db, changes.get("name"), changes.get("email"), exclude_id=client.id):
        raise HTTPException(status_code=400, detail="Client already exists")

    for field, value in changes.items():
        if value is None and field != "phone_number_two":
            continue
        setattr(client, field, value)

    db.commit()
    db.refresh(client)
    return {"message": "Client updated successfully", "client": client}


@router.delete("/{client_id}")
async def delete_client(
    client_id: int,
    db: Session = Depends(get_db),
    admin: User = Depends(get_current_admin)
):
    client = _get_or_404(db, client_id)
    in_use = db.query(Project).filter(Project.client_id == client.id).count()
    if in_use:
        raise HTTPException(
            status_code=400,
            detail=f"Client is linked to {in_use} project(s) and cannot be deleted",
        )

    db.delete(client)
    db.commit()
    logger.info(f"Deleted client {client_id}")
    return {"message": "Client deleted successfully", "client_id": client_id}
