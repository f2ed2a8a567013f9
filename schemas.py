"""
Database Schemas for SoilQ

Each Pydantic model represents a collection in MongoDB.
Collection name is the lowercase of the class name.

Example: class SoilAnalysis -> collection "soilanalysis"
"""
from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, EmailStr, Field

from gateway import PaymentMethod
from lifecycle import OrderPaymentStatus, OrderStatus, PaymentStatus
from soil import SoilStatus

# Users and their sign-in sessions
class User(BaseModel):
    name: str = Field(..., description="Full name")
    email: EmailStr = Field(..., description="Email address")
    password_hash: str = Field(..., description="Password hash (server-side)")
    role: Literal["farmer", "admin"] = Field("farmer", description="User role")
    phone: Optional[str] = Field(None, description="Phone number")
    language: Literal["en", "hi", "te"] = Field("en", description="Preferred UI language")

class CartLine(BaseModel):
    product_id: str
    name: str = Field(..., description="Product name snapshot")
    price: float = Field(..., ge=0, description="Unit price snapshot")
    quantity: int = Field(..., ge=1)
    image: Optional[str] = None

class Session(BaseModel):
    user_id: str = Field(..., description="Owner user _id as string")
    token: str = Field(..., description="Bearer token issued at sign-in")
    cart: List[CartLine] = Field(default_factory=list)

# Soil test results and their assessment
class SoilAnalysis(BaseModel):
    user_id: str
    nitrogen: float = Field(..., ge=0, description="mg/kg")
    phosphorus: float = Field(..., ge=0, description="mg/kg")
    potassium: float = Field(..., ge=0, description="mg/kg")
    ph: float = Field(..., ge=0, le=14)
    moisture: float = Field(..., ge=0, le=100, description="Percent")
    status: SoilStatus
    recommendations: List[str] = Field(default_factory=list)
    crop_suggestions: List[str] = Field(default_factory=list)
    location: str = ""
    notes: str = ""
    date: datetime

# Shop catalog (seeded, see catalog.py)
class Product(BaseModel):
    id: str
    name: str
    price: float = Field(..., ge=0)
    image: str
    description: str
    category: Literal["Fertilizer", "Pesticide", "Soil Amendment"]
    compatibility: List[str] = Field(default_factory=list)
    in_stock: bool = True
    rating: float = Field(0, ge=0, le=5)

# Orders
class OrderItem(BaseModel):
    product_id: str
    name: str = Field(..., description="Product name at order time")
    price: float = Field(..., ge=0, description="Unit price at order time")
    quantity: int = Field(..., ge=1)
    image: Optional[str] = None

class ShippingAddress(BaseModel):
    name: str = Field(..., min_length=1)
    address: str = Field(..., min_length=1)
    city: str = Field(..., min_length=1)
    state: str = Field(..., min_length=1)
    pincode: str = Field(..., min_length=1)
    phone: str = Field(..., min_length=1)

class OrderPaymentDetails(BaseModel):
    transaction_id: str
    payment_gateway: str
    paid_at: datetime

class Order(BaseModel):
    user_id: str
    order_number: str
    items: List[OrderItem] = Field(..., min_length=1)
    subtotal: float = Field(..., ge=0)
    shipping: float = Field(..., ge=0)
    tax: float = Field(..., ge=0)
    total: float = Field(..., ge=0)
    status: OrderStatus = "pending"
    payment_status: OrderPaymentStatus = "pending"
    payment_method: PaymentMethod
    shipping_address: ShippingAddress
    payment_details: Optional[OrderPaymentDetails] = None
    notes: str = ""

# Payments, one per order
class GatewayResponse(BaseModel):
    transaction_id: Optional[str] = None
    gateway: Optional[str] = None
    response_code: str
    response_message: str
    raw_response: Optional[Dict[str, Any]] = None

class RefundDetails(BaseModel):
    refund_id: str
    refund_amount: float = Field(..., ge=0)
    refund_reason: str
    refunded_at: datetime

class Payment(BaseModel):
    order_id: str
    user_id: str
    amount: float = Field(..., ge=0)
    currency: str = "USD"
    payment_method: PaymentMethod
    status: PaymentStatus = "pending"
    gateway_response: Optional[GatewayResponse] = None
    payment_details: Optional[Dict[str, Any]] = None
    refund_details: Optional[RefundDetails] = None
    processed_at: Optional[datetime] = None
