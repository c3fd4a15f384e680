"""
Database Schemas for the UserService API

All accounts live in a single MongoDB collection ("Userdata" by default). Each
account embeds its saved addresses, its cart and its order history as arrays,
so only Account maps to a collection; the other models describe array entries.

Field aliases are the stored document keys and the JSON keys clients send.
"""

from typing import Any, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

ProductId = Union[int, str]


class Address(BaseModel):
    """Entry of Account.Address, keyed by `id`"""
    model_config = ConfigDict(populate_by_name=True, coerce_numbers_to_str=True, extra="allow")

    id: Optional[str] = Field(None, description="Address id, unique within an account")
    name: Optional[str] = Field(None, alias="Name")
    email: Optional[str] = Field(None, alias="Email")
    phone_number: Optional[str] = Field(None, alias="Phone_number")
    pin_code: Optional[str] = Field(None, alias="PIN_Code")
    locality: Optional[str] = Field(None, alias="Locality")
    address: Optional[str] = Field(None, alias="Address", description="Street address")
    city: Optional[str] = Field(None, alias="City")
    state: Optional[str] = Field(None, alias="State")
    landmark: Optional[str] = Field(None, alias="Landmark")
    alternate_phone_number: Optional[str] = Field(None, alias="Alternate_Phone_Number")
    address_type: Optional[str] = Field(None, alias="Address_Type", description="Home, Work, ...")


class CartItem(BaseModel):
    """Entry of Account.addToCart, keyed by `productId`"""
    model_config = ConfigDict(populate_by_name=True, coerce_numbers_to_str=True)

    product_id: ProductId = Field(..., alias="productId")
    name: Optional[str] = None
    price: Optional[float] = Field(None, ge=0)
    product_img: Optional[str] = Field(None, alias="productImg")
    quantity: int = Field(1, ge=0)


class Order(BaseModel):
    """Entry of Account.Orders, keyed by `OrderId`"""
    model_config = ConfigDict(populate_by_name=True, coerce_numbers_to_str=True)

    order_id: ProductId = Field(..., alias="OrderId")
    address: Optional[Any] = Field(None, alias="Address", description="Shipping address snapshot")
    total_amount: Optional[float] = Field(None, alias="TotalAmount")
    product_data: List[Any] = Field(default_factory=list, alias="ProductData")
    name: Optional[str] = Field(None, alias="Name")
    email: Optional[str] = Field(None, alias="Email")
    phone_number: Optional[str] = Field(None, alias="Phone_number")
    base_amount: Optional[float] = Field(None, alias="BaseAmount")
    cash_handling_charge: Optional[float] = Field(None, alias="CashHandlingCharge")
    delivery_charge: Optional[float] = Field(None, alias="DeliveryCharge")
    tax: Optional[float] = Field(None, alias="Tax")
    delivered_date: Optional[str] = Field(None, alias="DeliveredDate")
    ordered_date: Optional[str] = Field(None, alias="OrderedDate")
    cancelled_date: Optional[str] = Field(None, alias="CancelledDate")
    order_status: str = Field("placed", alias="OrderStatus", description="placed | Cancelled | delivered")


class Account(BaseModel):
    """
    Accounts collection schema
    Collection name: "Userdata"
    """
    model_config = ConfigDict(populate_by_name=True, coerce_numbers_to_str=True)

    username: str = Field(..., alias="Username", description="Unique, case-sensitive")
    name: str = Field("", alias="Name", description="Full name")
    email: str = Field(..., alias="Email", description="Unique email address")
    password: str = Field(..., alias="Password", description="bcrypt hash")
    gender: str = Field("", alias="Gender")
    phone_number: str = Field("", alias="Phone_Number")
    id: str = Field("", description="External id")
    addresses: List[Address] = Field(default_factory=list, alias="Address")
    cart: List[CartItem] = Field(default_factory=list, alias="addToCart")
    orders: List[Order] = Field(default_factory=list, alias="Orders")
