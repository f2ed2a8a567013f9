"""
Agricultural inputs sold in the shop.

The catalog is static; cart lines and order items copy name and price
from here at the moment they are added.
"""
from typing import Dict, List, Optional

from errors import NotFoundError
from schemas import Product

_IMG = "https://images.pexels.com/photos/{}/pexels-photo-{}.jpeg?auto=compress&cs=tinysrgb&w=400"

PRODUCTS: List[Product] = [
    Product(
        id="1", name="Urea", price=268,
        image="https://inputs.kalgudi.com/data/p_images/1564481433212.jpeg",
        description="At 46% this contains the highest percentage of Nitrogen and it promotes "
                    "the growth of leaves and stem while optimising yield and quality",
        category="Fertilizer", compatibility=["paddy", "wheat", "maize", "and various vegetables"],
        rating=4.5,
    ),
    Product(
        id="2", name="Ammonium nitrate", price=22.50, image=_IMG.format(4132652, 4132652),
        description="High-nitrogen fertilizer for fast vegetative growth.",
        category="Fertilizer", compatibility=["Tomatoes", "Peppers", "Fruits"], rating=4.3,
    ),
    Product(
        id="3", name="Potassium Plus", price=28.75, image=_IMG.format(4132653, 4132653),
        description="Premium potassium fertilizer for stronger plants and better disease resistance.",
        category="Fertilizer", compatibility=["Potatoes", "Beans", "All Crops"], rating=4.7,
    ),
    Product(
        id="4", name="pH Balancer - Lime", price=15.99, image=_IMG.format(4132654, 4132654),
        description="Agricultural lime for raising soil pH levels. Perfect for acidic soils.",
        category="Soil Amendment", compatibility=["All Crops"], rating=4.2,
    ),
    Product(
        id="5", name="Organic Pesticide Spray", price=32.00, image=_IMG.format(4132655, 4132655),
        description="Natural pesticide made from organic ingredients. Safe for crops and environment.",
        category="Pesticide", compatibility=["Vegetables", "Fruits", "Herbs"], rating=4.6,
    ),
    Product(
        id="6", name="Fungicide Solution", price=35.50, image=_IMG.format(4132656, 4132656),
        description="Effective fungicide for preventing and treating plant diseases.",
        category="Pesticide", compatibility=["All Crops"], in_stock=False, rating=4.4,
    ),
    Product(
        id="7", name="Soil Moisture Retainer", price=19.99, image=_IMG.format(4132657, 4132657),
        description="Hydrogel crystals that help retain soil moisture for longer periods.",
        category="Soil Amendment", compatibility=["All Crops"], rating=4.1,
    ),
    Product(
        id="8", name="Compost Accelerator", price=24.99, image=_IMG.format(4132658, 4132658),
        description="Speeds up composting process and improves organic matter decomposition.",
        category="Soil Amendment", compatibility=["All Crops"], rating=4.5,
    ),
]

_BY_ID: Dict[str, Product] = {p.id: p for p in PRODUCTS}


def list_products(category: Optional[str] = None) -> List[Product]:
    if category:
        return [p for p in PRODUCTS if p.category.lower() == category.lower()]
    return list(PRODUCTS)


def get_product(product_id: str) -> Product:
    try:
        return _BY_ID[product_id]
    except KeyError:
        raise NotFoundError(f"Product not found: {product_id}")
