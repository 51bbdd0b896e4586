"""
Contacts API Endpoints
"""

import logging
import math
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel
from sqlalchemy.orm import Session, selectinload

from ..auth.jwt import get_current_user
from ..db.database import get_db
from ..models.models import Contact, Department, User
from ..schemas import DepartmentRef
from .. import validators

logger = logging.getLogger(__name__)

router = APIRouter()

INTERNAL_FIELDS = ("full_name", "email", "address", "phone", "department_id")
EXTERNAL_FIELDS = ("company", "contact_person", "external_email", "external_phone", "external_address")


# Pydantic schemas
class ContactPayload(BaseModel):
    contact_type: Optional[str] = None
    full_name: Optional[str] = None
    email: Optional[str] = None
    address: Optional[str] = None
    phone: Optional[str] = None
    department_id: Optional[int] = None
    company: Optional[str] = None
    contact_person: Optional[str] = None
    external_email: Optional[str] = None
    external_phone: Optional[str] = None
    external_address: Optional[str] = None


class ContactIds(BaseModel):
    contact_ids: List[int]


class ContactResponse(BaseModel):
    id: int
    contact_type: str
    full_name: Optional[str]
    email: Optional[str]
    address: Optional[str]
    phone: Optional[str]
    department_id: Optional[int]
    department: Optional[DepartmentRef]
    company: Optional[str]
    contact_person: Optional[str]
    external_email: Optional[str]
    external_phone: Optional[str]
    external_address: Optional[str]
    created_at: datetime

    class Config:
        from_attributes = True


class ContactEnvelope(BaseModel):
    success: bool
    message: Optional[str] = None
    data: ContactResponse


class ContactList(BaseModel):
    success: bool
    contacts: List[ContactResponse]
    total_pages: int
    current_page: int


def _validated_fields(db: Session, values: dict) -> dict:
    """Check ``values`` against its contact type; returns the columns to store."""
    contact_type = (values.get("contact_type") or "").strip().lower()
    if contact_type not in ("internal", "external"):
        raise HTTPException(status_code=400, detail="Invalid contact type. Must be internal or external.")

    if contact_type == "internal":
        required, cleared = INTERNAL_FIELDS, EXTERNAL_FIELDS
        email_field = "email"
    else:
        required, cleared = EXTERNAL_FIELDS, INTERNAL_FIELDS
        email_field = "external_email"

    missing = [f for f in required if values.get(f) in (None, "")]
    if missing:
        raise HTTPException(
            status_code=400,
            detail=f"For {contact_type} contacts, {', '.join(required)} are required.",
        )
    try:
        values[email_field] = validators.email_address(values[email_field])
    except ValueError:
        raise HTTPException(status_code=400, detail=f"{email_field} is not a valid email address.")

    if contact_type == "internal" and db.get(Department, values["department_id"]) is None:
        raise HTTPException(status_code=404, detail="Department not found.")

    fields = {"contact_type": contact_type}
    fields.update({f: values[f] for f in required})
    fields.update({f: None for f in cleared})
    return fields


def _get_or_404(db: Session, contact_id: int) -> Contact:
    contact = db.get(Contact, contact_id)
    if contact is None:
        raise HTTPException(status_code=404, detail="Contact not found.")
    return contact


# API Endpoints
@router.post("", response_model=ContactEnvelope, status_code=201)
async def create_contact(
    data: ContactPayload,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    contact = Contact(**_validated_fields(db, data.model_dump()))
    db.add(contact)
    db.commit()
    db.refresh(contact)
    logger.info(f"Contact {contact.id} ({contact.contact_type}) created")
    return {"success": True, "message": "Contact created successfully.", "data": contact}


@router.get("", response_model=ContactList)
async def list_contacts(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    query = db.query(Contact).options(selectinload(Contact.department))
    total = query.count()
    contacts = (
        query.order_by(Contact.created_at.desc(), Contact.id.desc())
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return {
        "success": True,
        "contacts": contacts,
        "total_pages": math.ceil(total / limit),
        "current_page": page,
    }


@router.delete("/bulk-delete")
async def bulk_delete_contacts(
    data: ContactIds,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    if not data.contact_ids:
        raise HTTPException(status_code=400, detail="A valid array of contact IDs is required.")
    deleted = (
        db.query(Contact)
        .filter(Contact.id.in_(data.contact_ids))
        .delete(synchronize_session=False)
    )
    db.commit()
    logger.info(f"Deleted {deleted} contact(s)")
    return {"success": True, "message": "Contacts deleted successfully.", "deleted": deleted}


@router.get("/{contact_id}", response_model=ContactEnvelope)
async def get_contact(
    contact_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    return {"success": True, "data": _get_or_404(db, contact_id)}


@router.put("/{contact_id}", response_model=ContactEnvelope)
async def update_contact(
    contact_id: int,
    data: ContactPayload,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    """Partial update, re-validated against the resulting contact type"""
    contact = _get_or_404(db, contact_id)
    values = {f: getattr(contact, f) for f in ("contact_type",) + INTERNAL_FIELDS + EXTERNAL_FIELDS}
    values.update(data.model_dump(exclude_unset=True))

    for field, value in _validated_fields(db, values).items():
        setattr(contact, field, value)
    db.commit()
    db.refresh(contact)
    return {"success": True, "message": "Contact updated successfully.", "data": contact}


@router.delete("/{contact_id}")
async def delete_contact(
    contact_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user)
):
    contact = _get_or_404(db, contact_id)
    db.delete(contact)
    db.commit()
    return {"success": True, "message": "Contact deleted successfully."}
