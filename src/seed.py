"""Database seeder: couriers, a demo vendor and catalogue products.

Run via: python -m src.seed
"""

from sqlalchemy import text
from sqlalchemy.orm import Session

from src.database.engine import sync_engine

COURIERS: list[dict] = [
    {"courier_name": "TCS", "courier_type": "TCS", "is_manual_dispatch": False},
    {"courier_name": "Leopards Courier", "courier_type": "LEOPARDS", "is_manual_dispatch": False},
    {"courier_name": "TCS Overland", "courier_type": "TCS_OVERLAND", "is_manual_dispatch": True},
    {"courier_name": "Self Delivery", "courier_type": "SELF_DELIVERY", "is_manual_dispatch": True},
]

VENDORS: list[dict] = [
    {
        "vendor_name": "Metro Electronics Traders",
        "contact_person": "Imran Siddiqui",
        "phone": "03001234567",
        "email": "orders@metro-electronics.example",
        "address": "Shop 14, Saddar Electronics Market, Karachi",
    },
]

PRODUCTS: list[dict] = [
    {"name": "Air Fryer 4.5L", "brand": "Philips", "color": "Black", "bank_product_number": "BP-1001", "unit_price": "32000.00"},
    {"name": "Microwave Oven 25L", "brand": "Dawlance", "color": "Silver", "bank_product_number": "BP-1002", "unit_price": "41000.00"},
    {"name": "Smart Watch Series 5", "brand": "Samsung", "color": None, "bank_product_number": "BP-1003", "unit_price": "55000.00"},
]


def seed_couriers(session: Session) -> None:
    """Insert each courier once, matched on its type."""
    for courier in COURIERS:
        session.execute(
            text("""
                INSERT INTO couriers (courier_name, courier_type, is_manual_dispatch)
                SELECT :courier_name, CAST(:courier_type AS couriertype), :is_manual_dispatch
                WHERE NOT EXISTS (
                    SELECT 1 FROM couriers
                    WHERE courier_type = CAST(:courier_type AS couriertype) AND is_deleted = false
                )
            """),
            courier,
        )

    print(f"  Seeded {len(COURIERS)} couriers.")


def seed_vendors(session: Session) -> None:
    for vendor in VENDORS:
        session.execute(
            text("""
                INSERT INTO vendors (vendor_name, contact_person, phone, email, address)
                SELECT :vendor_name, :contact_person, :phone, :email, :address
                WHERE NOT EXISTS (SELECT 1 FROM vendors WHERE vendor_name = :vendor_name)
            """),
            vendor,
        )

    print(f"  Seeded {len(VENDORS)} vendors.")


def seed_products(session: Session) -> None:
    for product in PRODUCTS:
        session.execute(
            text("""
                INSERT INTO products (name, brand, color, bank_product_number, unit_price)
                SELECT :name, :brand, :color, :bank_product_number, CAST(:unit_price AS NUMERIC)
                WHERE NOT EXISTS (
                    SELECT 1 FROM products WHERE bank_product_number = :bank_product_number
                )
            """),
            product,
        )

    print(f"  Seeded {len(PRODUCTS)} products.")


def main() -> None:
    with Session(sync_engine) as session:
        with session.begin():
            seed_couriers(session)
            seed_vendors(session)
            seed_products(session)

    print("Seeding complete.")


if __name__ == "__main__":
    main()
