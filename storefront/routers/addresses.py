from typing import List, Optional
from datetime import datetime
from fastapi import APIRouter, Depends
from pydantic import Field
from sqlmodel import Session, select, func

from storefront.db.session import get_session
from storefront.models.address import Address
from storefront.models.user import User
from storefront.routers.auth import get_current_user
from storefront.core.exceptions import NotFound
from storefront.core.schemas import CamelModel

router = APIRouter()

MOBILE_PATTERN = r"^[6-9]\d{9}$"
PINCODE_PATTERN = r"^\d{6}$"

_NULLABLE_FIELDS = ("address_line2", "landmark")

class AddressBase(CamelModel):
    full_name: str = Field(min_length=2, max_length=100)
    mobile: str = Field(pattern=MOBILE_PATTERN)
    address_line1: str = Field(min_length=10, max_length=200)
    address_line2: Optional[str] = Field(default=None, max_length=200)
    landmark: Optional[str] = Field(default=None, max_length=100)
    city: str = Field(min_length=2, max_length=100)
    state: str = Field(min_length=2, max_length=100)
    pincode: str = Field(pattern=PINCODE_PATTERN)
    country: str = "India"

class AddressCreate(AddressBase):
    label: str = Field(default="Home", min_length=1, max_length=50)
    is_default: bool = False

class AddressUpdate(CamelModel):
    label: Optional[str] = Field(default=None, min_length=1, max_length=50)
    full_name: Optional[str] = Field(default=None, min_length=2, max_length=100)
    mobile: Optional[str] = Field(default=None, pattern=MOBILE_PATTERN)
    address_line1: Optional[str] = Field(default=None, min_length=10, max_length=200)
    address_line2: Optional[str] = Field(default=None, max_length=200)
    landmark: Optional[str] = Field(default=None, max_length=100)
    city: Optional[str] = Field(default=None, min_length=2, max_length=100)
    state: Optional[str] = Field(default=None, min_length=2, max_length=100)
    pincode: Optional[str] = Field(default=None, pattern=PINCODE_PATTERN)
    country: Optional[str] = None
    is_default: Optional[bool] = None

def serialize_address(address: Address) -> dict:
    return {
        "id": address.id,
        "label": address.label,
        "fullName": address.full_name,
        "mobile": address.mobile,
        "addressLine1": address.address_line1,
        "addressLine2": address.address_line2,
        "landmark": address.landmark,
        "city": address.city,
        "state": address.state,
        "pincode": address.pincode,
        "country": address.country,
        "isDefault": address.is_default,
        "createdAt": address.created_at.isoformat(),
    }

def get_address_service(session: Session = Depends(get_session)) -> 'AddressService':
    return AddressService(session)

class AddressService:
    def __init__(self, session: Session):
        self.session = session

    def get_user_addresses(self, user_id: int) -> List[Address]:
        return self.session.exec(
            select(Address)
            .where(Address.user_id == user_id)
            .order_by(Address.is_default.desc(), Address.created_at.desc(), Address.id.desc())
        ).all()

    def get_address(self, user_id: int, address_id: int) -> Address:
        address = self.session.get(Address, address_id)
        if not address or address.user_id != user_id:
            raise NotFound("Address not found")
        return address

    def _clear_default(self, user_id: int, keep_id: Optional[int] = None):
        defaults = self.session.exec(
            select(Address).where(Address.user_id == user_id, Address.is_default == True)  # noqa: E712
        ).all()
        for other in defaults:
            if other.id != keep_id:
                other.is_default = False
                self.session.add(other)

    def create_address(self, user_id: int, data: AddressCreate) -> Address:
        address = Address(user_id=user_id, **data.model_dump())

        if address.is_default:
            self._clear_default(user_id)
        else:
            # First address becomes the default
            count = self.session.exec(
                select(func.count()).select_from(Address).where(Address.user_id == user_id)
            ).one()
            if count == 0:
                address.is_default = True

        self.session.add(address)
        self.session.commit()
        self.session.refresh(address)
        return address

    def update_address(self, user_id: int, address_id: int, data: AddressUpdate) -> Address:
        address = self.get_address(user_id, address_id)
        # null on a required column means "leave unchanged"
        changes = {
            k: v for k, v in data.model_dump(exclude_unset=True).items()
            if v is not None or k in _NULLABLE_FIELDS
        }

        if changes.get("is_default") is True:
            self._clear_default(user_id, keep_id=address.id)
        elif changes.get("is_default") is False and address.is_default:
            # A user with addresses always keeps a default; move it with make-default
            changes.pop("is_default")

        for key, value in changes.items():
            setattr(address, key, value)
        address.updated_at = datetime.utcnow()

        self.session.add(address)
        self.session.commit()
        self.session.refresh(address)
        return address

    def delete_address(self, user_id: int, address_id: int):
        address = self.get_address(user_id, address_id)
        was_default = address.is_default

        self.session.delete(address)
        self.session.flush()

        # Promote the newest remaining address
        if was_default:
            replacement = self.session.exec(
                select(Address)
                .where(Address.user_id == user_id)
                .order_by(Address.created_at.desc(), Address.id.desc())
            ).first()
            if replacement:
                replacement.is_default = True
                self.session.add(replacement)

        self.session.commit()

    def make_default(self, user_id: int, address_id: int) -> Address:
        address = self.get_address(user_id, address_id)
        self._clear_default(user_id, keep_id=address.id)
        address.is_default = True
        address.updated_at = datetime.utcnow()

        self.session.add(address)
        self.session.commit()
        self.session.refresh(address)
        return address

@router.get("/")
def list_addresses(current_user: User = Depends(get_current_user), service: AddressService = Depends(get_address_service)):
    """List all addresses for the current user, default first"""
    addresses = service.get_user_addresses(current_user.id)
    return {"success": True, "addresses": [serialize_address(a) for a in addresses]}

@router.post("/", status_code=201)
def create_address(
    address_in: AddressCreate,
    current_user: User = Depends(get_current_user),
    service: AddressService = Depends(get_address_service)
):
    address = service.create_address(current_user.id, address_in)
    return {"success": True, "message": "Address added successfully", "address": serialize_address(address)}

@router.get("/{address_id}")
def get_address(address_id: int, current_user: User = Depends(get_current_user), service: AddressService = Depends(get_address_service)):
    return {"success": True, "address": serialize_address(service.get_address(current_user.id, address_id))}

@router.patch("/{address_id}")
def update_address(
    address_id: int,
    address_in: AddressUpdate,
    current_user: User = Depends(get_current_user),
    service: AddressService = Depends(get_address_service)
):
    address = service.update_address(current_user.id, address_id, address_in)
    return {"success": True, "message": "Address updated successfully", "address": serialize_address(address)}

@router.delete("/{address_id}")
def delete_address(address_id: int, current_user: User = Depends(get_current_user), service: AddressService = Depends(get_address_service)):
    service.delete_address(current_user.id, address_id)
    return {"success": True, "message": "Address deleted successfully"}

@router.post("/{address_id}/make-default")
def make_default_address(address_id: int, current_user: User = Depends(get_current_user), service: AddressService = Depends(get_address_service)):
    address = service.make_default(current_user.id, address_id)
    return {"success": True, "message": "Address set as default", "address": serialize_address(address)}
