#!/usr/bin/env python3
"""Seed demo catalog script.

Creates the catalog tables if needed and writes a deterministic demo
catalog (category tree, products with tags, discounts and ratings).

Usage:
    python scripts/seed_catalog.py --mode small
    python scripts/seed_catalog.py --mode full --no-clear
"""

import argparse
import asyncio
import sys
from pathlib import Path

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent))

from app.catalog.generator import seed_catalog
from app.infrastructure.database import Base, async_session_factory, engine


async def create_tables() -> None:
    """Create database tables if they don't exist."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


async def main() -> None:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Seed the demo product catalog",
    )
    parser.add_argument(
        "--mode",
        choices=["small", "full"],
        default="small",
        help="Catalog size: small (~55 products) or full (~440 products)",
    )
    parser.add_argument(
        "--no-clear",
        action="store_true",
        help="Don't clear existing catalog rows before seeding",
    )

    args = parser.parse_args()

    print("=" * 60)
    print("Storefront Catalog Seeder")
    print("=" * 60)
    print(f"Mode: {args.mode}")
    print(f"Clear existing: {not args.no_clear}")
    print()

    print("Creating database tables...")
    await create_tables()
    print("Tables ready.")
    print()

    try:
        result = await seed_catalog(
            async_session_factory,
            mode=args.mode,
            clear_existing=not args.no_clear,
        )
    finally:
        await engine.dispose()

    print(f"  ✓ Deleted: {result['deleted']} existing products")
    print(f"  ✓ Categories: {result['categories_created']}")
    print(f"  ✓ Products: {result['products_created']} ({result['inactive_products']} inactive)")
    print(f"  ✓ Brands: {result['brands_used']}")
    print(f"  ✓ Tags: {result['tags_used']}")
    print()
    print("=" * 60)
    print("Seeding complete!")
    print("=" * 60)


if __name__ == "__main__":
    asyncio.run(main())
