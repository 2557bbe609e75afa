"""SQLAlchemy models for the product catalog.

Defines Category, Product and ProductTag tables. The search service only
reads these tables; the admin panel owns their writes.
"""

from datetime import datetime, timezone
from uuid import uuid4

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, Numeric, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.infrastructure.config import settings
from app.infrastructure.database import Base


def _new_id() -> str:
    return str(uuid4())


class Category(Base):
    """Catalog category.

    Categories form a tree through ``parent_id``. A filter on a parent
    category also matches products of every descendant category.

    Attributes:
        id: Unique category identifier.
        name: Display name.
        slug: URL slug.
        parent_id: Parent category (None for root categories).
        level: Depth in the tree (0 = root).
        is_active: Whether the category is shown in the storefront.
    """

    __tablename__ = "categories"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    slug: Mapped[str] = mapped_column(String(120), nullable=False, unique=True)
    parent_id: Mapped[str | None] = mapped_column(
        String(36),
        ForeignKey("categories.id", ondelete="RESTRICT"),
        nullable=True,
        index=True,
    )
    level: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    def __repr__(self) -> str:
        """String representation."""
        return f"<Category(id={self.id}, slug={self.slug})>"


class Product(Base):
    """Product entity in the catalog.

    Attributes:
        id: Unique product identifier.
        name: Product name.
        slug: URL slug.
        description: Product description.
        brand: Brand name.
        image_url: Primary product image URL.
        category_id: Owning category.
        price: Price in whole currency units (no minor unit).
        discount_percentage: Discount 0-100, or None when not discounted.
        rating: Average rating (0.0-5.0).
        num_reviews: Number of reviews.
        stock_quantity: Available quantity.
        is_active: Whether the product is published.
        is_featured: Whether the product is promoted.
        created_at: Creation timestamp.
        updated_at: Last update timestamp.
    """

    __tablename__ = "products"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    slug: Mapped[str] = mapped_column(String(220), nullable=False, unique=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    brand: Mapped[str | None] = mapped_column(String(100), nullable=True, index=True)
    image_url: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    category_id: Mapped[str | None] = mapped_column(
        String(36),
        ForeignKey("categories.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    price: Mapped[int] = mapped_column(Integer, nullable=False)
    discount_percentage: Mapped[int | None] = mapped_column(Integer, nullable=True)
    rating: Mapped[float] = mapped_column(
        Numeric(2, 1, asdecimal=False), nullable=False, default=0.0
    )
    num_reviews: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    stock_quantity: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    is_featured: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    # Relationships
    category: Mapped["Category | None"] = relationship("Category")
    tag_rows: Mapped[list["ProductTag"]] = relationship(
        "ProductTag",
        back_populates="product",
        cascade="all, delete-orphan",
    )

    __table_args__ = (
        Index("ix_products_active_created", "is_active", "created_at"),
        Index("ix_products_active_price", "is_active", "price"),
        Index("ix_products_active_rating", "is_active", "rating"),
    )

    def __repr__(self) -> str:
        """String representation."""
        return f"<Product(id={self.id}, name={self.name[:30]}...)>"

    @property
    def tags(self) -> list[str]:
        """Tag values, sorted."""
        return sorted(row.tag for row in self.tag_rows)

    @property
    def primary_image(self) -> str:
        """Image URL, or the storefront placeholder when none is set."""
        return self.image_url or settings.default_product_image

    @property
    def in_stock(self) -> bool:
        """Whether any stock is available."""
        return self.stock_quantity > 0

    @property
    def final_price(self) -> int:
        """Price after discount, rounded to a whole unit."""
        discount = self.discount_percentage or 0
        if discount <= 0:
            return self.price
        return round(self.price * (1 - discount / 100))


class ProductTag(Base):
    """A single tag attached to a product.

    Tags are stored lower-cased, one row per (product, tag).
    """

    __tablename__ = "product_tags"

    product_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("products.id", ondelete="CASCADE"),
        primary_key=True,
    )
    tag: Mapped[str] = mapped_column(String(50), primary_key=True, index=True)

    product: Mapped["Product"] = relationship("Product", back_populates="tag_rows")

    def __repr__(self) -> str:
        """String representation."""
        return f"<ProductTag(product_id={self.product_id}, tag={self.tag})>"
