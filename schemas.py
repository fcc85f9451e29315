"""
Database Schemas for PlantNet

Each document model corresponds to a MongoDB collection (``users``, ``plants``,
``orders``). Bodies accept extra fields, which are stored as-is alongside the
declared ones.
"""
from typing import Literal, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, EmailStr, Field
from pymongo.results import DeleteResult, InsertOneResult, UpdateResult

Role = Literal["customer", "seller", "admin"]


class Contact(BaseModel):
    model_config = ConfigDict(extra="allow")

    email: EmailStr
    name: Optional[str] = None
    image: Optional[str] = None


class TokenRequest(BaseModel):
    model_config = ConfigDict(extra="allow")

    email: EmailStr


class UserProfile(BaseModel):
    model_config = ConfigDict(extra="allow")

    name: Optional[str] = None
    image: Optional[str] = None


class Plant(BaseModel):
    model_config = ConfigDict(extra="allow")

    name: str
    category: str
    description: Optional[str] = None
    image: Optional[str] = None
    price: float = Field(..., ge=0)
    quantity: int
    seller: Optional[Contact] = None


class Order(BaseModel):
    model_config = ConfigDict(extra="allow")

    # Older clients send the customer under "customar".
    customer: Contact = Field(..., validation_alias=AliasChoices("customer", "customar"))
    plantId: str = Field(..., description="ObjectId of the ordered plant, as a string")
    quantity: int = Field(..., ge=1)
    price: float = Field(..., ge=0)
    status: str = "Pending"
    seller: Optional[str] = None
    address: Optional[str] = None


class QuantityUpdate(BaseModel):
    quantityToUpdate: int
    status: Optional[str] = Field(None, description="'increase' to add, anything else subtracts")


class RoleUpdate(BaseModel):
    role: Role


class RoleOut(BaseModel):
    role: Optional[str] = None


# Write acknowledgments


class InsertAck(BaseModel):
    acknowledged: bool
    insertedId: str

    @classmethod
    def from_result(cls, result: InsertOneResult) -> "InsertAck":
        return cls(acknowledged=result.acknowledged, insertedId=str(result.inserted_id))


class UpdateAck(BaseModel):
    acknowledged: bool
    matchedCount: int
    modifiedCount: int

    @classmethod
    def from_result(cls, result: UpdateResult) -> "UpdateAck":
        return cls(
            acknowledged=result.acknowledged,
            matchedCount=result.matched_count,
            modifiedCount=result.modified_count,
        )


class DeleteAck(BaseModel):
    acknowledged: bool
    deletedCount: int

    @classmethod
    def from_result(cls, result: DeleteResult) -> "DeleteAck":
        return cls(acknowledged=result.acknowledged, deletedCount=result.deleted_count)
