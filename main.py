import hashlib
import logging
import secrets
from typing import Any, Dict, List, Optional

import pydantic
from fastapi import Depends, FastAPI, Header, HTTPException, Query, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import AliasChoices, BaseModel, EmailStr, Field
from pymongo.database import Database

import cart as carts
import catalog
import config
import database
import orders
from database import create_document, get_db, get_documents, oid, serialize_doc, update_document, utcnow
from errors import BusinessRuleError, NotFoundError, SoilQError
from gateway import PaymentMethod
from lifecycle import is_cancellable
from schemas import (
    CartLine,
    Order as OrderSchema,
    OrderItem,
    Payment as PaymentSchema,
    Session as SessionSchema,
    ShippingAddress,
    SoilAnalysis as SoilAnalysisSchema,
    User as UserSchema,
)
from soil import assess, parameter_scores

logging.basicConfig(level=config.LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger("soilq")

app = FastAPI(title="SoilQ API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ----------------------
# Error tiers -> HTTP
# ----------------------

@app.exception_handler(SoilQError)
async def soilq_error_handler(request: Request, exc: SoilQError):
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message, "type": exc.kind})

@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=400,
        content={"error": "Invalid request", "type": "validation", "details": jsonable_encoder(exc.errors())},
    )

@app.exception_handler(pydantic.ValidationError)
async def model_validation_handler(request: Request, exc: pydantic.ValidationError):
    return JSONResponse(
        status_code=400,
        content={"error": "Invalid data", "type": "validation", "details": jsonable_encoder(exc.errors())},
    )

@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"error": "Internal server error", "type": "internal"})

# ----------------------
# Helpers
# ----------------------

def hash_password(pw: str) -> str:
    return hashlib.sha256(pw.encode()).hexdigest()

def new_token() -> str:
    return secrets.token_urlsafe(32)

# ----------------------
# Auth dependency
# ----------------------
class AuthedUser(BaseModel):
    id: str
    role: str
    name: Optional[str] = None
    token: str

def get_current_user(authorization: Optional[str] = Header(None), db: Database = Depends(get_db)) -> AuthedUser:
    if not authorization or not authorization.lower().startswith("bearer "):
        raise HTTPException(status_code=401, detail="Unauthorized")
    token = authorization.split(" ", 1)[1].strip()
    session = db["session"].find_one({"token": token})
    if not session:
        raise HTTPException(status_code=401, detail="Invalid token")
    user = db["user"].find_one({"_id": oid(session["user_id"])})
    if not user:
        raise HTTPException(status_code=401, detail="Invalid token")
    return AuthedUser(id=str(user["_id"]), role=user.get("role", "farmer"), name=user.get("name"), token=token)

def ensure_owner(current: AuthedUser, user_id: str):
    if current.role != "admin" and current.id != user_id:
        raise HTTPException(status_code=403, detail="Not allowed to access another user's records")

def start_session(db: Database, user_id: str) -> str:
    token = new_token()
    create_document(db, "session", SessionSchema(user_id=user_id, token=token))
    return token

# ----------------------
# Schema endpoint for tooling
# ----------------------
@app.get("/schema")
def get_schema():
    # Return model field info for tooling
    def model_fields(model) -> Dict[str, Any]:
        return {name: str(field.annotation) for name, field in model.model_fields.items()}

    return {
        "user": model_fields(UserSchema),
        "session": model_fields(SessionSchema),
        "soilanalysis": model_fields(SoilAnalysisSchema),
        "order": model_fields(OrderSchema),
        "payment": model_fields(PaymentSchema),
    }

# ----------------------
# Health & test
# ----------------------
@app.get("/")
def read_root():
    return {"message": "SoilQ API running"}

@app.get("/test")
def test_database():
    response = {
        "backend": "✅ Running",
        "database": "❌ Not Available",
        "database_url": "✅ Set" if config.DATABASE_URL else "❌ Not Set",
        "database_name": "✅ Set" if config.DATABASE_NAME else "❌ Not Set",
        "connection_status": "Not Connected",
        "collections": []
    }
    try:
        if database.db is not None:
            response["database"] = "✅ Connected & Working"
            response["connection_status"] = "Connected"
            response["collections"] = database.db.list_collection_names()[:10]
    except Exception as e:
        response["database"] = f"⚠️ Connected but error: {str(e)[:80]}"
    return response

# ----------------------
# Auth routes
# ----------------------
class SignUpBody(BaseModel):
    name: str
    email: EmailStr
    password: str = Field(..., min_length=6)
    role: str = Field("farmer", pattern="^(farmer|admin)$")
    phone: Optional[str] = None
    language: str = Field("en", pattern="^(en|hi|te)$")

@app.post("/auth/signup", status_code=201)
def signup(body: SignUpBody, db: Database = Depends(get_db)):
    existing = db["user"].find_one({"email": body.email})
    if existing:
        raise HTTPException(status_code=400, detail="Email already registered")
    user = UserSchema(
        name=body.name,
        email=body.email,
        password_hash=hash_password(body.password),
        role=body.role, phone=body.phone, language=body.language,
    )
    user_id = str(create_document(db, "user", user))
    token = start_session(db, user_id)
    return {"id": user_id, "token": token, "role": body.role, "name": body.name}

class LoginBody(BaseModel):
    email: EmailStr
    password: str

@app.post("/auth/login")
def login(body: LoginBody, db: Database = Depends(get_db)):
    user = db["user"].find_one({"email": body.email})
    if not user or user.get("password_hash") != hash_password(body.password):
        raise HTTPException(status_code=401, detail="Invalid credentials")
    user_id = str(user["_id"])
    token = start_session(db, user_id)
    return {"id": user_id, "token": token, "role": user.get("role", "farmer"), "name": user.get("name")}

@app.post("/auth/logout")
def logout(current: AuthedUser = Depends(get_current_user), db: Database = Depends(get_db)):
    # The session carries the cart, so signing out discards it
    db["session"].delete_one({"token": current.token})
    return {"message": "Signed out"}

@app.get("/me")
def me(current: AuthedUser = Depends(get_current_user)):
    return current.model_dump(exclude={"token"})

# ----------------------
# Products
# ----------------------
@app.get("/api/products")
def get_products(category: Optional[str] = Query(None)):
    return [p.model_dump() for p in catalog.list_products(category)]

@app.get("/api/products/{product_id}")
def get_product(product_id: str):
    return catalog.get_product(product_id).model_dump()

# ----------------------
# Cart (held on the session)
# ----------------------
def load_cart(db: Database, current: AuthedUser) -> carts.Cart:
    session = db["session"].find_one({"token": current.token})
    return carts.Cart(lines=tuple(CartLine(**line) for line in session.get("cart", [])))

def save_cart(db: Database, current: AuthedUser, cart: carts.Cart) -> Dict[str, Any]:
    db["session"].update_one(
        {"token": current.token},
        {"$set": {"cart": [line.model_dump() for line in cart.lines], "updated_at": utcnow()}},
    )
    return cart_view(cart)

def cart_view(cart: carts.Cart) -> Dict[str, Any]:
    return {"items": [line.model_dump() for line in cart.lines], **carts.totals(cart).model_dump()}

class CartAddBody(BaseModel):
    product_id: str
    quantity: int = Field(1, ge=1)

class CartQuantityBody(BaseModel):
    quantity: int

@app.get("/api/cart")
def get_cart(current: AuthedUser = Depends(get_current_user), db: Database = Depends(get_db)):
    return cart_view(load_cart(db, current))

@app.post("/api/cart/items")
def add_to_cart(body: CartAddBody, current: AuthedUser = Depends(get_current_user), db: Database = Depends(get_db)):
    product = catalog.get_product(body.product_id)
    return save_cart(db, current, carts.add_item(load_cart(db, current), product, body.quantity))

@app.patch("/api/cart/items/{product_id}")
def update_cart_item(product_id: str, body: CartQuantityBody, current: AuthedUser = Depends(get_current_user), db: Database = Depends(get_db)):
    return save_cart(db, current, carts.update_quantity(load_cart(db, current), product_id, body.quantity))

@app.delete("/api/cart/items/{product_id}")
def remove_cart_item(product_id: str, current: AuthedUser = Depends(get_current_user), db: Database = Depends(get_db)):
    return save_cart(db, current, carts.remove_item(load_cart(db, current), product_id))

@app.delete("/api/cart")
def clear_cart(current: AuthedUser = Depends(get_current_user), db: Database = Depends(get_db)):
    return save_cart(db, current, carts.clear(load_cart(db, current)))

class CheckoutBody(BaseModel):
    payment_method: PaymentMethod
    shipping_address: ShippingAddress
    notes: Optional[str] = None

@app.post("/api/cart/checkout", status_code=201)
def checkout(body: CheckoutBody, current: AuthedUser = Depends(get_current_user), db: Database = Depends(get_db)):
    cart = load_cart(db, current)
    if cart.is_empty:
        raise BusinessRuleError("Cart is empty")
    totals = carts.totals(cart)
    order, payment = orders.create_order(
        db,
        user_id=current.id,
        items=[OrderItem(**line.model_dump()) for line in cart.lines],
        payment_method=body.payment_method,
        shipping_address=body.shipping_address,
        subtotal=totals.subtotal,
        shipping=totals.shipping,
        tax=totals.tax,
        total=totals.total,
        notes=body.notes,
    )
    save_cart(db, current, carts.clear(cart))
    return {"order": order, "payment": payment}

# ----------------------
# Soil analysis
# ----------------------
class SoilMeasurementBody(BaseModel):
    nitrogen: float = Field(..., ge=0)
    phosphorus: float = Field(..., ge=0)
    potassium: float = Field(..., ge=0)
    ph: float = Field(..., ge=0, le=14, validation_alias=AliasChoices("ph", "pH"))
    moisture: float = Field(..., ge=0, le=100)

class SoilAnalysisBody(SoilMeasurementBody):
    location: Optional[str] = None
    notes: Optional[str] = None

class SoilAnalysisUpdateBody(BaseModel):
    nitrogen: Optional[float] = Field(None, ge=0)
    phosphorus: Optional[float] = Field(None, ge=0)
    potassium: Optional[float] = Field(None, ge=0)
    ph: Optional[float] = Field(None, ge=0, le=14, validation_alias=AliasChoices("ph", "pH"))
    moisture: Optional[float] = Field(None, ge=0, le=100)
    location: Optional[str] = None
    notes: Optional[str] = None

MEASUREMENTS = ("nitrogen", "phosphorus", "potassium", "ph", "moisture")

def load_analysis(db: Database, analysis_id: str) -> Dict[str, Any]:
    doc = db["soilanalysis"].find_one({"_id": oid(analysis_id)})
    if not doc:
        raise NotFoundError("Soil analysis not found")
    return doc

@app.post("/api/soil-analysis/assess")
def preview_assessment(body: SoilMeasurementBody):
    values = body.model_dump()
    result = assess(**values).model_dump()
    result["scores"] = dict(zip(MEASUREMENTS, parameter_scores(**values)))
    return result

@app.post("/api/soil-analysis", status_code=201)
def create_soil_analysis(body: SoilAnalysisBody, current: AuthedUser = Depends(get_current_user), db: Database = Depends(get_db)):
    values = body.model_dump(include=set(MEASUREMENTS))
    result = assess(**values)
    analysis = SoilAnalysisSchema(
        user_id=current.id,
        **values,
        **result.model_dump(),
        location=body.location or "",
        notes=body.notes or "",
        date=utcnow(),
    )
    analysis_id = create_document(db, "soilanalysis", analysis)
    logger.info("soil analysis %s for user %s: %s", analysis_id, current.id, result.status)
    return serialize_doc(db["soilanalysis"].find_one({"_id": analysis_id}))

@app.get("/api/soil-analysis/user/{user_id}")
def list_soil_analyses(user_id: str, current: AuthedUser = Depends(get_current_user), db: Database = Depends(get_db)):
    ensure_owner(current, user_id)
    return get_documents(db, "soilanalysis", {"user_id": user_id}, sort_field="date")

@app.get("/api/soil-analysis/{analysis_id}")
def get_soil_analysis(analysis_id: str, current: AuthedUser = Depends(get_current_user), db: Database = Depends(get_db)):
    doc = load_analysis(db, analysis_id)
    ensure_owner(current, doc["user_id"])
    return serialize_doc(doc)

@app.put("/api/soil-analysis/{analysis_id}")
def update_soil_analysis(analysis_id: str, body: SoilAnalysisUpdateBody, current: AuthedUser = Depends(get_current_user), db: Database = Depends(get_db)):
    doc = load_analysis(db, analysis_id)
    ensure_owner(current, doc["user_id"])
    changes = body.model_dump(exclude_none=True)
    if any(k in changes for k in MEASUREMENTS):
        # Derived fields follow the measurements
        values = {k: changes.get(k, doc[k]) for k in MEASUREMENTS}
        changes.update(assess(**values).model_dump())
    if not changes:
        return serialize_doc(doc)
    return serialize_doc(update_document(db, "soilanalysis", doc["_id"], changes))

@app.delete("/api/soil-analysis/{analysis_id}")
def delete_soil_analysis(analysis_id: str, current: AuthedUser = Depends(get_current_user), db: Database = Depends(get_db)):
    doc = load_analysis(db, analysis_id)
    ensure_owner(current, doc["user_id"])
    db["soilanalysis"].delete_one({"_id": doc["_id"]})
    return {"message": "Soil analysis deleted successfully"}

# ----------------------
# Orders
# ----------------------
class CreateOrderBody(BaseModel):
    items: List[OrderItem]
    subtotal: Optional[float] = Field(None, ge=0)
    shipping: Optional[float] = Field(None, ge=0)
    tax: Optional[float] = Field(None, ge=0)
    total: Optional[float] = Field(None, ge=0)
    payment_method: PaymentMethod
    shipping_address: ShippingAddress
    notes: Optional[str] = None

class OrderStatusBody(BaseModel):
    status: str

class CancelOrderBody(BaseModel):
    reason: Optional[str] = None

@app.post("/api/orders", status_code=201)
def create_order(body: CreateOrderBody, current: AuthedUser = Depends(get_current_user), db: Database = Depends(get_db)):
    order, payment = orders.create_order(
        db,
        user_id=current.id,
        **body.model_dump(exclude={"items", "shipping_address"}),
        items=body.items,
        shipping_address=body.shipping_address,
    )
    return {"order": order, "payment": payment}

@app.get("/api/orders/user/{user_id}")
def list_orders(user_id: str, current: AuthedUser = Depends(get_current_user), db: Database = Depends(get_db)):
    ensure_owner(current, user_id)
    return orders.get_orders_for_user(db, user_id)

@app.get("/api/orders/{order_id}")
def get_order(order_id: str, current: AuthedUser = Depends(get_current_user), db: Database = Depends(get_db)):
    order = orders.get_order(db, order_id)
    ensure_owner(current, order["user_id"])
    return order

@app.get("/api/orders/{order_id}/payment")
def get_order_payment(order_id: str, current: AuthedUser = Depends(get_current_user), db: Database = Depends(get_db)):
    order = orders.get_order(db, order_id)
    ensure_owner(current, order["user_id"])
    return orders.get_payment_for_order(db, order_id)

@app.put("/api/orders/{order_id}/status")
def update_order_status(order_id: str, body: OrderStatusBody, current: AuthedUser = Depends(get_current_user), db: Database = Depends(get_db)):
    if current.role != "admin":
        raise HTTPException(status_code=403, detail="Only admins can update order status")
    return orders.update_order_status(db, order_id, body.status)

@app.put("/api/orders/{order_id}/cancel")
def cancel_order(order_id: str, body: Optional[CancelOrderBody] = None, current: AuthedUser = Depends(get_current_user), db: Database = Depends(get_db)):
    order = orders.get_order(db, order_id)
    ensure_owner(current, order["user_id"])
    if not is_cancellable(order["status"]):
        raise BusinessRuleError("Only pending or confirmed orders can be cancelled")
    return orders.cancel_order(db, order_id, body.reason if body else None)

# ----------------------
# Payments
# ----------------------
class ProcessPaymentBody(BaseModel):
    order_id: str
    payment_method: str
    payment_details: Dict[str, Any] = Field(default_factory=dict)

class RefundBody(BaseModel):
    reason: Optional[str] = None
    amount: Optional[float] = None

@app.post("/api/payments/process")
def process_payment(body: ProcessPaymentBody, current: AuthedUser = Depends(get_current_user), db: Database = Depends(get_db)):
    order = orders.get_order(db, body.order_id)
    ensure_owner(current, order["user_id"])
    result = orders.process_payment(db, body.order_id, body.payment_method, body.payment_details)
    if not result.success:
        return JSONResponse(
            status_code=400,
            content={"success": False, "message": result.message, "error": result.message, "type": "business"},
        )
    return {"success": True, "transaction_id": result.transaction_id, "message": result.message}

@app.get("/api/payments/user/{user_id}")
def list_payments(user_id: str, current: AuthedUser = Depends(get_current_user), db: Database = Depends(get_db)):
    ensure_owner(current, user_id)
    return orders.get_payments_for_user(db, user_id)

@app.get("/api/payments/{payment_id}")
def get_payment(payment_id: str, current: AuthedUser = Depends(get_current_user), db: Database = Depends(get_db)):
    payment = orders.get_payment(db, payment_id)
    ensure_owner(current, payment["user_id"])
    return payment

@app.post("/api/payments/{payment_id}/refund")
def refund_payment(payment_id: str, body: Optional[RefundBody] = None, current: AuthedUser = Depends(get_current_user), db: Database = Depends(get_db)):
    payment = orders.get_payment(db, payment_id)
    ensure_owner(current, payment["user_id"])
    body = body or RefundBody()
    return orders.refund_payment(db, payment_id, body.reason, body.amount)

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=config.PORT)
