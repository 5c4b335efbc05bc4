from datetime import datetime, timedelta
from sqlmodel import Session, select
from storefront.db.session import engine as default_engine, create_db_and_tables
from storefront.core.logger import get_logger
from storefront.models.coupon import Coupon, CouponType
from storefront.models.product import Product

logger = get_logger("seed")

def seed_data(engine=default_engine) -> bool:
    """Insert demo products and coupons into an empty database. Returns False if already seeded."""
    with Session(engine) as session:
        # Check if products already exist to avoid duplicates
        existing_products = session.exec(select(Product)).all()
        if existing_products:
            logger.info("Database already contains %d products. Skipping seed.", len(existing_products))
            return False

        logger.info("Seeding initial products and coupons...")
        products = [
            Product(name="AMD Ryzen 7 7800X3D", slug="amd-ryzen-7-7800x3d", sku="CPU-7800X3D", price=36999.00, stock_quantity=25, weight_kg=0.5),
            Product(name="NVIDIA GeForce RTX 4070 Super", slug="rtx-4070-super", sku="GPU-4070S", price=62999.00, stock_quantity=10, weight_kg=2.0),
            Product(name="Corsair Vengeance 32GB DDR5", slug="corsair-vengeance-32gb-ddr5", sku="RAM-CV32D5", price=9499.00, stock_quantity=60, weight_kg=0.3),
            Product(name="Samsung 990 Pro 1TB NVMe", slug="samsung-990-pro-1tb", sku="SSD-990P1T", price=8999.00, stock_quantity=80, weight_kg=0.1),
            Product(name="Lian Li Lancool 216", slug="lian-li-lancool-216", sku="CASE-LL216", price=7499.00, stock_quantity=15, weight_kg=8.5),
        ]
        coupons = [
            Coupon(
                code="SAVE10",
                name="10% off",
                description="10% off up to ₹500",
                discount_type=CouponType.PERCENTAGE,
                discount_value=10,
                max_discount=500,
            ),
            Coupon(
                code="FLAT1000",
                name="Flat ₹1000 off",
                description="₹1000 off on orders above ₹20,000",
                discount_type=CouponType.FIXED,
                discount_value=1000,
                min_order_amount=20000,
                usage_limit=100,
                end_date=datetime.utcnow() + timedelta(days=90),
            ),
        ]

        for item in products + coupons:
            session.add(item)

        session.commit()
        logger.info("Seeded %d products and %d coupons", len(products), len(coupons))
        return True

if __name__ == "__main__":
    create_db_and_tables()
    seed_data()
