"""Manual refresh schemas."""

from decimal import Decimal
from typing import Optional

from pydantic import BaseModel

from pricewatch.scrapers.base import ScrapedProduct


class ScrapedProductResponse(BaseModel):
    """Extracted product fields."""

    title: str
    price: Decimal
    currency: str
    image_url: Optional[str] = None
    availability: bool

    @classmethod
    def from_product(cls, product: ScrapedProduct) -> "ScrapedProductResponse":
        return cls(
            title=product.title,
            price=product.price,
            currency=product.currency,
            image_url=product.image_url,
            availability=product.availability,
        )


class ScrapeResponse(BaseModel):
    message: str = "Product scraped successfully"
    product_id: str
    attempts: int
    data: ScrapedProductResponse
