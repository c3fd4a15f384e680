import os
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional

import structlog
from bson import ObjectId
from fastapi import APIRouter, Body, Depends, FastAPI, HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from passlib.context import CryptContext
from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator
from pydantic.networks import validate_email
from pymongo.collection import Collection
from pymongo.errors import DuplicateKeyError, PyMongoError
from starlette.exceptions import HTTPException as StarletteHTTPException

from database import Database, DatabaseUnavailable, create_document, get_documents
from logging_config import add_context, clear_context, configure_logging
from schemas import Account, Address, CartItem, Order, ProductId
from settings import Settings

logger = structlog.get_logger(__name__)

router = APIRouter()
fallback_router = APIRouter()

# Password hashing
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

# Fields returned to clients for an account, never the password
PROFILE_TEXT_FIELDS = ("Username", "Name", "Email", "Gender", "Phone_Number", "id")
PROFILE_LIST_FIELDS = ("Address", "addToCart", "Orders")


# Helpers

def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, hashed: Optional[str]) -> bool:
    if not isinstance(hashed, str) or pwd_context.identify(hashed) is None:
        pwd_context.dummy_verify()
        return False
    return pwd_context.verify(password, hashed)


def project_profile(user: Dict[str, Any]) -> Dict[str, Any]:
    profile: Dict[str, Any] = {"_id": str(user["_id"]) if user.get("_id") else None}
    for key in PROFILE_TEXT_FIELDS:
        value = user.get(key)
        profile[key] = "" if value is None else value
    for key in PROFILE_LIST_FIELDS:
        value = user.get(key)
        profile[key] = value if isinstance(value, list) else []
    return jsonable_encoder(profile, custom_encoder={ObjectId: str})


def normalize_email(value: str) -> str:
    """The stored form of an email, the same one EmailStr produces at signup."""
    return validate_email(value)[1]


def get_accounts(request: Request) -> Collection:
    return request.app.state.database.collection()


# Request models

class SignupRequest(Account):
    email: EmailStr = Field(..., alias="Email")
    password: str = Field(..., alias="Password", min_length=1, description="Plaintext, hashed before storage")


class ProfileSignupRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True, coerce_numbers_to_str=True)

    username: str = Field(..., alias="Username")
    name: str = Field("", alias="Name")
    email: EmailStr = Field(..., alias="Email")
    password: str = Field(..., alias="Password", min_length=1)
    id: str = ""
    cart: List[CartItem] = Field(default_factory=list, alias="addToCart")


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class UpdateProfileRequest(BaseModel):
    model_config = ConfigDict(coerce_numbers_to_str=True)

    Name: Optional[str] = None
    Email: Optional[str] = None
    Gender: Optional[str] = None
    Phone_Number: Optional[str] = None
    OldEmail: Optional[str] = None

    @field_validator("Email", "OldEmail")
    @classmethod
    def normalize(cls, value: Optional[str]) -> Optional[str]:
        return normalize_email(value) if value else value


class AddToCartRequest(CartItem):
    username: str


class RemoveFromCartRequest(BaseModel):
    username: str
    productId: ProductId


class EmptyCartRequest(BaseModel):
    username: str


class CheckoutItem(BaseModel):
    productId: ProductId
    quantity: int = Field(..., ge=0)


class CheckoutRequest(BaseModel):
    username: str
    cart: List[CheckoutItem] = Field(default_factory=list)


class PlaceOrderRequest(Order):
    username: str


class CancelOrderRequest(BaseModel):
    model_config = ConfigDict(coerce_numbers_to_str=True)

    username: str
    OrderId: ProductId
    CancelDate: Optional[str] = None


class AddAddressRequest(Address):
    email: EmailStr = Field(..., alias="Email")


# Root / admin

@router.get("/")
def list_accounts(accounts: Collection = Depends(get_accounts)):
    docs = get_documents(accounts)
    logger.debug("Listed accounts", count=len(docs))
    return jsonable_encoder(docs, custom_encoder={ObjectId: str})


@router.post("/")
def create_account(payload: Dict[str, Any] = Body(...), accounts: Collection = Depends(get_accounts)):
    if isinstance(payload.get("Password"), str):
        payload["Password"] = hash_password(payload["Password"])
    inserted_id = create_document(accounts, payload)
    return {"success": True, "result": {"inserted_id": inserted_id}}


@router.get("/health")
def health(request: Request):
    if not request.app.state.database.ready:
        raise DatabaseUnavailable("Database not available")
    return {"status": "ok", "database": "connected"}


# Auth endpoints

def _insert_account(accounts: Collection, document: Dict[str, Any]) -> Dict[str, Any]:
    existing = accounts.find_one({"$or": [{"Email": document["Email"]}, {"Username": document["Username"]}]})
    if existing:
        field = "Email" if existing.get("Email") == document["Email"] else "Username"
        logger.info("Signup rejected", reason=f"{field.lower()}_exists", username=document["Username"])
        return {"success": False, "message": f"{field} already exists"}
    try:
        inserted_id = create_document(accounts, document)
    except DuplicateKeyError:
        # lost a race against a concurrent signup for the same email or username
        logger.info("Signup rejected", reason="duplicate_key", username=document["Username"])
        return {"success": False, "message": "Email already exists"}
    logger.info("Account created", username=document["Username"], account_id=inserted_id)
    return {"success": True, "message": "Signup successful", "data": {"inserted_id": inserted_id}}


@router.post("/signup")
def signup(payload: SignupRequest, accounts: Collection = Depends(get_accounts)):
    document = payload.model_dump(by_alias=True)
    document["Password"] = hash_password(payload.password)
    return _insert_account(accounts, document)


@router.post("/my-profile")
def signup_profile(payload: ProfileSignupRequest, accounts: Collection = Depends(get_accounts)):
    document = payload.model_dump(by_alias=True)
    document["Password"] = hash_password(payload.password)
    return _insert_account(accounts, document)


@router.post("/login")
def login(payload: LoginRequest, accounts: Collection = Depends(get_accounts)):
    user = accounts.find_one({"Email": payload.email})
    if not verify_password(payload.password, user.get("Password") if user else None):
        logger.info("Login failed", email=payload.email)
        raise HTTPException(status_code=401, detail="Invalid credentials")
    logger.info("Login succeeded", username=user.get("Username"))
    return {"success": True, "user": project_profile(user)}


# Profile

@router.get("/api/user/profile/{username}")
def get_profile(username: str, accounts: Collection = Depends(get_accounts)):
    user = accounts.find_one({"Username": username})
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return project_profile(user)


@router.post("/updateprofile")
def update_profile(payload: UpdateProfileRequest, accounts: Collection = Depends(get_accounts)):
    if not payload.Email or not payload.Name or not payload.Phone_Number or not payload.OldEmail:
        return {"success": False, "message": "All fields are required!"}

    if payload.Email != payload.OldEmail:
        taken = accounts.find_one({"Email": payload.Email})
        if taken:
            return {"success": False, "message": "This email already exists!"}

    result = accounts.update_one(
        {"Email": payload.OldEmail},
        {"$set": {
            "Name": payload.Name,
            "Gender": payload.Gender,
            "Phone_Number": payload.Phone_Number,
            "Email": payload.Email,
        }},
    )
    if result.modified_count > 0:
        return {"success": True, "message": "Profile updated successfully"}
    return {"success": False, "message": "No changes detected or user not found"}


# Cart

@router.post("/add-To-Cart")
def add_to_cart(payload: AddToCartRequest, accounts: Collection = Depends(get_accounts)):
    item = payload.model_dump(by_alias=True, exclude={"username"})
    result = accounts.update_one({"Username": payload.username}, {"$push": {"addToCart": item}})
    if result.modified_count > 0:
        return {"message": "Item added to cart", "success": True}
    return {"message": "User not found", "success": False}


@router.get("/CartPage/{username}")
def get_cart(username: str, accounts: Collection = Depends(get_accounts)):
    user = accounts.find_one({"Username": username}, {"addToCart": 1})
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user.get("addToCart", [])


@router.post("/remove-From-Cart")
def remove_from_cart(payload: RemoveFromCartRequest, accounts: Collection = Depends(get_accounts)):
    result = accounts.update_one(
        {"Username": payload.username},
        {"$pull": {"addToCart": {"productId": payload.productId}}},
    )
    if result.modified_count > 0:
        return {"message": "Item removed from cart", "success": True}
    return {"message": "Item not found in cart", "success": False}


@router.post("/EmptyCart")
def empty_cart(payload: EmptyCartRequest, accounts: Collection = Depends(get_accounts)):
    result = accounts.update_one({"Username": payload.username}, {"$set": {"addToCart": []}})
    if result.modified_count > 0:
        return {"message": "Cart Is Empty", "success": True}
    return {"message": "Error during Emptying the Cart", "success": False}


@router.post("/checkout")
def checkout(payload: CheckoutRequest, accounts: Collection = Depends(get_accounts)):
    # Items are updated one by one; a failure part way leaves earlier items updated.
    matched = modified = 0
    for item in payload.cart:
        result = accounts.update_one(
            {"Username": payload.username, "addToCart.productId": item.productId},
            {"$set": {"addToCart.$.quantity": item.quantity}},
        )
        matched += result.matched_count
        modified += result.modified_count
        logger.debug(
            "Checkout quantity update",
            product_id=item.productId,
            quantity=item.quantity,
            matched=result.matched_count,
            modified=result.modified_count,
        )
    return {"message": "Cart updated successfully", "success": True, "matched": matched, "modified": modified}


# Addresses

@router.post("/AddAddress")
def add_address(payload: AddAddressRequest, accounts: Collection = Depends(get_accounts)):
    address = payload.model_dump(by_alias=True)
    result = accounts.update_one({"Email": payload.email}, {"$push": {"Address": address}})
    if result.modified_count > 0:
        return {"success": True, "message": "Address Added Successfully"}
    return {"success": False, "message": "Error Occured"}


@router.delete("/api/address/{address_id}")
def delete_address(address_id: str, accounts: Collection = Depends(get_accounts)):
    result = accounts.update_one({"Address.id": address_id}, {"$pull": {"Address": {"id": address_id}}})
    if result.modified_count == 0:
        raise HTTPException(status_code=404, detail="Address not found")
    return {"success": True, "message": "Address deleted successfully"}


@router.put("/EditAddress/{address_id}")
def edit_address(address_id: str, payload: Address, accounts: Collection = Depends(get_accounts)):
    replacement = payload.model_dump(by_alias=True, exclude_unset=True)
    replacement.setdefault("id", address_id)
    result = accounts.update_one({"Address.id": address_id}, {"$set": {"Address.$": replacement}})
    if result.matched_count == 0:
        raise HTTPException(status_code=404, detail="Address not found")
    if result.modified_count == 0:
        return {"success": False, "message": "No changes detected"}
    return {"success": True, "message": "Address updated successfully"}


# Orders

@router.post("/Order")
def place_order(payload: PlaceOrderRequest, accounts: Collection = Depends(get_accounts)):
    order = payload.model_dump(by_alias=True, exclude={"username"})
    result = accounts.update_one({"Username": payload.username}, {"$push": {"Orders": order}})
    if result.modified_count > 0:
        logger.info("Order placed", username=payload.username, order_id=payload.order_id)
        return {"message": "Order placed successfully", "success": True}
    return {"message": "User not found", "success": False}


@router.post("/CancelOrder")
def cancel_order(payload: CancelOrderRequest, accounts: Collection = Depends(get_accounts)):
    # Matches on order id only, an already cancelled order is cancelled again and
    # reported as a success even when the date is unchanged.
    result = accounts.update_one(
        {"Username": payload.username, "Orders.OrderId": payload.OrderId},
        {"$set": {
            "Orders.$.OrderStatus": "Cancelled",
            "Orders.$.CancelledDate": payload.CancelDate,
        }},
    )
    if result.matched_count > 0:
        logger.info("Order cancelled", username=payload.username, order_id=payload.OrderId)
        return {"message": "Order cancelled successfully", "success": True}
    return {"message": "Order not found or already cancelled", "success": False}


@router.get("/Order/{username}")
def get_orders(username: str, request: Request, accounts: Collection = Depends(get_accounts)):
    user = accounts.find_one({"Username": username})
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    if request.app.state.settings.orders_route_returns_cart:
        return jsonable_encoder(user.get("addToCart", []))
    return jsonable_encoder(user.get("Orders", []))


@fallback_router.api_route("/{full_path:path}", methods=["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"])
def route_not_found(full_path: str, request: Request):
    path = request.url.path
    if request.url.query:
        path = f"{path}?{request.url.query}"
    return JSONResponse(
        status_code=404,
        content={"success": False, "message": f"Route {request.method} {path} not found"},
    )


# Error handlers

def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "message": message})


async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    response = _error(exc.status_code, str(exc.detail))
    if exc.headers:
        response.headers.update(exc.headers)
    return response


async def database_unavailable_handler(request: Request, exc: DatabaseUnavailable):
    logger.warning("Request rejected, database not ready", error=str(exc))
    return _error(503, "Database not available")


async def duplicate_key_handler(request: Request, exc: DuplicateKeyError):
    logger.info("Duplicate key rejected", error=str(exc))
    return _error(409, "Account already exists")


async def storage_error_handler(request: Request, exc: PyMongoError):
    logger.exception("Storage error while handling request")
    return _error(500, "Internal server error")


async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error while handling request")
    return _error(500, "Internal server error")


@asynccontextmanager
async def lifespan(app: FastAPI):
    database: Database = app.state.database
    # Raising here aborts startup, the process does not serve without a database
    database.connect()
    database.ensure_indexes()
    logger.info("UserService API ready", database=database.settings.database_name)
    try:
        yield
    finally:
        database.close()


def create_app(settings: Optional[Settings] = None, client=None) -> FastAPI:
    """Build the application; `client` replaces the MongoClient built from settings."""
    settings = settings or Settings.from_env()
    configure_logging(settings.environment)

    app = FastAPI(title="UserService API", lifespan=lifespan)
    app.state.settings = settings
    app.state.database = Database(settings, client=client)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def request_context(request: Request, call_next):
        clear_context()
        add_context(method=request.method, path=request.url.path)
        return await call_next(request)

    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(DatabaseUnavailable, database_unavailable_handler)
    app.add_exception_handler(DuplicateKeyError, duplicate_key_handler)
    app.add_exception_handler(PyMongoError, storage_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)

    app.include_router(router)
    if os.path.isdir(settings.static_dir):
        app.mount("/static", StaticFiles(directory=settings.static_dir), name="static")
    app.include_router(fallback_router)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=app.state.settings.host, port=app.state.settings.port)
