"""Demo catalog generator with deterministic seeding.

Builds a category tree and a product catalog with brands, tags,
discounts, ratings, stock levels and a share of inactive products, so
every search filter and facet has something to work on. The same seed
always produces the same catalog.
"""

import hashlib
import random
import re
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Iterator

import structlog
from sqlalchemy import delete, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.catalog.models import Category, Product, ProductTag

logger = structlog.get_logger()


# ============================================================================
# Constants
# ============================================================================

# Category tree: name -> children
CATEGORY_TREE: dict[str, dict] = {
    "Electronics": {
        "Phones": {"Smartphones": {}, "Feature Phones": {}},
        "Laptops": {},
        "Audio": {"Headphones": {}, "Speakers": {}},
    },
    "Home": {
        "Furniture": {},
        "Lighting": {},
        "Smart Home": {"Smart Locks": {}, "Cameras": {}},
    },
    "Fashion": {
        "Shoes": {},
        "Bags": {},
    },
}

# Fictional brands
BRANDS = [
    "Acme",
    "Contoso",
    "Northwind",
    "Fabrikam",
    "Tailwind",
    "Globex",
    "Initech",
    "Umbrella",
]

# Price ranges by category name, in whole currency units
PRICE_RANGES: dict[str, tuple[int, int]] = {
    "Smartphones": (3_000_000, 35_000_000),
    "Feature Phones": (300_000, 1_500_000),
    "Laptops": (9_000_000, 60_000_000),
    "Headphones": (200_000, 8_000_000),
    "Speakers": (500_000, 12_000_000),
    "Furniture": (1_000_000, 25_000_000),
    "Lighting": (100_000, 3_000_000),
    "Smart Locks": (2_000_000, 15_000_000),
    "Cameras": (500_000, 6_000_000),
    "Shoes": (400_000, 4_000_000),
    "Bags": (300_000, 5_000_000),
    "default": (100_000, 5_000_000),
}

# Tags by category name; products also draw from COMMON_TAGS
CATEGORY_TAGS: dict[str, list[str]] = {
    "Smartphones": ["5g", "android", "dual-sim", "oled"],
    "Feature Phones": ["dual-sim", "long-battery"],
    "Laptops": ["ultrabook", "gaming", "oled", "long-battery"],
    "Headphones": ["wireless", "noise-cancelling", "bluetooth"],
    "Speakers": ["wireless", "bluetooth", "waterproof"],
    "Furniture": ["wood", "ergonomic"],
    "Lighting": ["led", "dimmable"],
    "Smart Locks": ["wifi", "fingerprint", "bluetooth"],
    "Cameras": ["wifi", "night-vision", "outdoor"],
    "Shoes": ["running", "leather", "waterproof"],
    "Bags": ["leather", "travel"],
}

COMMON_TAGS = ["new", "sale", "bestseller", "gift"]

# Product name templates
NAME_TEMPLATES = [
    "{brand} {category} {adj}",
    "{brand} {adj} {category}",
    "{brand} {category} {adj} {number}",
]

ADJECTIVES = [
    "Pro", "Max", "Lite", "Plus", "Ultra", "Classic",
    "Smart", "Prime", "Nova", "Core", "Air", "Edge",
]

# Creation dates spread backwards from this point
CATALOG_EPOCH = datetime(2025, 6, 1, tzinfo=timezone.utc)


def slugify(text: str) -> str:
    """Lower-case, hyphen-separated slug."""
    return re.sub(r"[^a-z0-9]+", "-", text.lower()).strip("-")


# ============================================================================
# Generator Configuration
# ============================================================================


@dataclass
class GeneratorConfig:
    """Configuration for catalog generation.

    Attributes:
        seed: Random seed for reproducibility.
        products_per_category: Products per leaf category.
        discount_ratio: Share of products with a discount.
        featured_ratio: Share of products marked featured.
        inactive_ratio: Share of unpublished products.
        out_of_stock_ratio: Share of products without stock.
        missing_image_ratio: Share of products without an image.
    """

    seed: int = 42
    products_per_category: int = 10
    discount_ratio: float = 0.3
    featured_ratio: float = 0.1
    inactive_ratio: float = 0.05
    out_of_stock_ratio: float = 0.1
    missing_image_ratio: float = 0.1

    @classmethod
    def small(cls) -> "GeneratorConfig":
        """Config for a small catalog (~60 products)."""
        return cls(seed=42, products_per_category=5)

    @classmethod
    def full(cls) -> "GeneratorConfig":
        """Config for a full catalog (~450 products)."""
        return cls(seed=42, products_per_category=40)


# ============================================================================
# Catalog Generator
# ============================================================================


class CatalogGenerator:
    """Generates categories and products with deterministic seeding.

    Example usage:
        generator = CatalogGenerator(GeneratorConfig.small())
        categories, products = generator.generate()
    """

    def __init__(self, config: GeneratorConfig) -> None:
        """Initialize generator with configuration.

        Args:
            config: Generator configuration.
        """
        self.config = config

    def _deterministic_id(self, *args: str | int) -> str:
        """UUID-formatted id derived from the arguments and the seed."""
        data = "|".join(str(a) for a in (self.config.seed, *args))
        return str(uuid.UUID(hashlib.md5(data.encode()).hexdigest()))

    def _rng(self, *args: str | int) -> random.Random:
        data = "|".join(str(a) for a in (self.config.seed, *args))
        return random.Random(int.from_bytes(hashlib.md5(data.encode()).digest()[:4], "big"))

    def _generate_image_url(self, product_id: str) -> str:
        """Placeholder image URL seeded by the product id."""
        return f"https://picsum.photos/seed/{product_id[:8]}/400/400"

    def generate_categories(self) -> list[Category]:
        """Build the category tree, parents before children.

        Returns:
            Category rows.
        """
        categories: list[Category] = []

        def walk(tree: dict[str, dict], parent: Category | None) -> None:
            for name, children in tree.items():
                category = Category(
                    id=self._deterministic_id("category", name),
                    name=name,
                    slug=slugify(name),
                    parent_id=parent.id if parent else None,
                    level=parent.level + 1 if parent else 0,
                    is_active=True,
                )
                categories.append(category)
                walk(children, category)

        walk(CATEGORY_TREE, None)
        return categories

    def leaf_categories(self, categories: list[Category]) -> list[Category]:
        """Categories without children; products live here."""
        parents = {c.parent_id for c in categories if c.parent_id}
        return [c for c in categories if c.id not in parents]

    def _generate_product(self, category: Category, index: int) -> Product:
        """Generate a single product.

        Args:
            category: Leaf category.
            index: Product index within the category.

        Returns:
            Product with its tag rows attached.
        """
        rng = self._rng("product", category.name, index)
        config = self.config

        brand = rng.choice(BRANDS)
        name = rng.choice(NAME_TEMPLATES).format(
            brand=brand,
            category=category.name.rstrip("s"),
            adj=rng.choice(ADJECTIVES),
            number=rng.randint(1, 9) * 100,
        )
        product_id = self._deterministic_id("product", category.name, index)

        low, high = PRICE_RANGES.get(category.name, PRICE_RANGES["default"])
        # Round to the nearest thousand
        price = round(rng.randint(low, high), -3)

        discount = None
        if rng.random() < config.discount_ratio:
            discount = rng.choice([5, 10, 15, 20, 25, 30, 40, 50])

        in_stock = rng.random() >= config.out_of_stock_ratio
        pool = CATEGORY_TAGS.get(category.name, [])
        tags = set(rng.sample(pool, k=min(2, len(pool))))
        if rng.random() < 0.3:
            tags.add(rng.choice(COMMON_TAGS))
        if discount:
            tags.add("sale")

        created_at = CATALOG_EPOCH - timedelta(days=rng.randint(0, 365), minutes=index)

        product = Product(
            id=product_id,
            name=name,
            slug=f"{slugify(name)}-{product_id[:8]}",
            description=f"{name} from {brand}, part of our {category.name.lower()} range.",
            brand=brand,
            image_url=(
                None
                if rng.random() < config.missing_image_ratio
                else self._generate_image_url(product_id)
            ),
            category_id=category.id,
            price=price,
            discount_percentage=discount,
            rating=round(rng.uniform(1.0, 5.0), 1),
            num_reviews=rng.randint(0, 800),
            stock_quantity=rng.randint(1, 250) if in_stock else 0,
            is_active=rng.random() >= config.inactive_ratio,
            is_featured=rng.random() < config.featured_ratio,
            created_at=created_at,
            updated_at=created_at,
        )
        product.tag_rows = [ProductTag(tag=tag) for tag in sorted(tags)]
        return product

    def generate_products(self, categories: list[Category]) -> Iterator[Product]:
        """Generate products for every leaf category.

        Yields:
            Product instances.
        """
        for category in self.leaf_categories(categories):
            for i in range(self.config.products_per_category):
                yield self._generate_product(category, i)

    def generate(self) -> tuple[list[Category], list[Product]]:
        """Generate the whole catalog.

        Returns:
            Categories and products.
        """
        categories = self.generate_categories()
        return categories, list(self.generate_products(categories))

    @property
    def expected_product_count(self) -> int:
        """Number of products ``generate`` produces."""
        leaves = self.leaf_categories(self.generate_categories())
        return len(leaves) * self.config.products_per_category


# ============================================================================
# Seeding
# ============================================================================


async def seed_catalog(
    session_factory: async_sessionmaker[AsyncSession],
    mode: str = "small",
    clear_existing: bool = True,
) -> dict[str, Any]:
    """Write a generated demo catalog to the database.

    Args:
        session_factory: Session factory for the target database.
        mode: Catalog size ("small" or "full").
        clear_existing: Whether to delete existing catalog rows first.

    Returns:
        Seeding result with counts.
    """
    config = GeneratorConfig.full() if mode == "full" else GeneratorConfig.small()
    categories, products = CatalogGenerator(config).generate()

    async with session_factory() as session:
        deleted = 0
        if clear_existing:
            await session.execute(delete(ProductTag))
            result = await session.execute(delete(Product))
            deleted = result.rowcount or 0
            await session.execute(update(Category).values(parent_id=None))
            await session.execute(delete(Category))

        session.add_all(categories)
        await session.flush()
        session.add_all(products)
        await session.commit()

    summary = {
        "mode": mode,
        "deleted": deleted,
        "categories_created": len(categories),
        "products_created": len(products),
        "inactive_products": sum(1 for p in products if not p.is_active),
        "brands_used": len({p.brand for p in products}),
        "tags_used": len({row.tag for p in products for row in p.tag_rows}),
    }
    logger.info("Catalog seeded", **summary)
    return summary
