"""Gift fulfillment core schema

Revision ID: 001
Revises: None
Create Date: 2026-10-18

Creates: products, vendors, couriers, bank_orders, bip_orders, shipments,
         purchase_orders, purchase_order_items, delivery_challans,
         document_sequences, event_outbox, processed_events
Enums: orderstatus, couriertype, shipmentstatus, purchaseorderstatus,
       printstatus, eventstatus
"""

from collections.abc import Sequence

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.execute('CREATE EXTENSION IF NOT EXISTS "pgcrypto";')

    # ── 1. Enum types ──────────────────────────────────────────────────────
    op.execute("""
        CREATE TYPE orderstatus AS ENUM (
            'PENDING', 'CONFIRMED', 'PROCESSING',
            'DISPATCHED', 'DELIVERED', 'CANCELLED'
        );
    """)
    op.execute("""
        CREATE TYPE couriertype AS ENUM (
            'LEOPARDS', 'TCS', 'TCS_OVERLAND', 'SELF_DELIVERY'
        );
    """)
    op.execute("""
        CREATE TYPE shipmentstatus AS ENUM (
            'BOOKED', 'IN_TRANSIT', 'OUT_FOR_DELIVERY',
            'DELIVERED', 'RETURNED', 'CANCELLED', 'FAILED'
        );
    """)
    op.execute("""
        CREATE TYPE purchaseorderstatus AS ENUM (
            'DRAFT', 'ACTIVE', 'MERGED', 'CANCELLED'
        );
    """)
    op.execute("CREATE TYPE printstatus AS ENUM ('NOT_PRINTED', 'PRINTED');")
    op.execute("""
        CREATE TYPE eventstatus AS ENUM (
            'PENDING', 'PROCESSING', 'COMPLETED', 'FAILED'
        );
    """)

    # ── 2. Reference data ──────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE products (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            name VARCHAR(255) NOT NULL,
            brand VARCHAR(100),
            color VARCHAR(50),
            bank_product_number VARCHAR(100),
            unit_price NUMERIC(15, 2),
            is_deleted BOOLEAN NOT NULL DEFAULT false,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
        );
    """)
    op.execute("CREATE INDEX ix_products_bank_product_number ON products (bank_product_number);")

    op.execute("""
        CREATE TABLE vendors (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            vendor_name VARCHAR(200) NOT NULL,
            contact_person VARCHAR(200),
            phone VARCHAR(20),
            email VARCHAR(255),
            address TEXT,
            is_active BOOLEAN NOT NULL DEFAULT true,
            is_deleted BOOLEAN NOT NULL DEFAULT false,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
        );
    """)

    op.execute("""
        CREATE TABLE couriers (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            courier_name VARCHAR(100) NOT NULL,
            courier_type couriertype NOT NULL,
            api_url VARCHAR(500),
            api_key VARCHAR(255),
            api_secret VARCHAR(255),
            contact_phone VARCHAR(20),
            contact_email VARCHAR(255),
            is_active BOOLEAN NOT NULL DEFAULT true,
            is_manual_dispatch BOOLEAN NOT NULL DEFAULT false,
            is_deleted BOOLEAN NOT NULL DEFAULT false,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
        );
    """)
    op.execute("CREATE INDEX ix_couriers_courier_type ON couriers (courier_type);")

    # ── 3. Orders ──────────────────────────────────────────────────────────
    order_columns = """
            customer_name VARCHAR(200) NOT NULL,
            cnic VARCHAR(20),
            mobile VARCHAR(20) NOT NULL,
            address TEXT NOT NULL,
            city VARCHAR(100) NOT NULL,
            product_name VARCHAR(255) NOT NULL,
            brand VARCHAR(100),
            gift_code VARCHAR(100),
            product_id UUID REFERENCES products(id) ON DELETE SET NULL,
            quantity INTEGER NOT NULL DEFAULT 1,
            po_number VARCHAR(50),
            order_date DATE,
            status orderstatus NOT NULL DEFAULT 'PENDING',
            status_history JSONB NOT NULL DEFAULT '[]',
            shipment_id UUID,
            whatsapp_confirmation_token VARCHAR(255),
            whatsapp_confirmation_sent_at TIMESTAMPTZ,
            whatsapp_confirmed_at TIMESTAMPTZ,
            is_deleted BOOLEAN NOT NULL DEFAULT false,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
    """
    op.execute(f"""
        CREATE TABLE bank_orders (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            ref_no VARCHAR(100) NOT NULL,
            redeemed_points NUMERIC(15, 2),
            {order_columns}
        );
    """)
    op.execute(f"""
        CREATE TABLE bip_orders (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            eforms VARCHAR(100) NOT NULL,
            amount NUMERIC(15, 2),
            color VARCHAR(50),
            {order_columns}
        );
    """)
    for table, reference in (("bank_orders", "ref_no"), ("bip_orders", "eforms")):
        op.execute(f"CREATE INDEX ix_{table}_status ON {table} (status);")
        op.execute(f"CREATE INDEX ix_{table}_{reference} ON {table} ({reference});")
        op.execute(f"CREATE INDEX ix_{table}_po_number ON {table} (po_number);")

    # ── 4. Shipments ───────────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE shipments (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            bank_order_id UUID REFERENCES bank_orders(id) ON DELETE RESTRICT,
            bip_order_id UUID REFERENCES bip_orders(id) ON DELETE RESTRICT,
            courier_id UUID NOT NULL REFERENCES couriers(id) ON DELETE RESTRICT,
            tracking_number VARCHAR(100) NOT NULL,
            consignment_number VARCHAR(100),
            status shipmentstatus NOT NULL DEFAULT 'BOOKED',
            customer_name VARCHAR(200) NOT NULL,
            customer_phone VARCHAR(20) NOT NULL,
            customer_address TEXT NOT NULL,
            customer_city VARCHAR(100) NOT NULL,
            product_description VARCHAR(500) NOT NULL,
            quantity INTEGER NOT NULL DEFAULT 1,
            declared_value NUMERIC(15, 2),
            weight_kg NUMERIC(8, 2),
            special_instructions TEXT,
            booking_date TIMESTAMPTZ NOT NULL,
            expected_delivery_date TIMESTAMPTZ,
            actual_delivery_date TIMESTAMPTZ,
            delivery_remarks TEXT,
            courier_api_response JSONB NOT NULL DEFAULT '{}',
            is_deleted BOOLEAN NOT NULL DEFAULT false,
            version INTEGER NOT NULL DEFAULT 1,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            CONSTRAINT ck_shipments_single_order
                CHECK ((bank_order_id IS NULL) <> (bip_order_id IS NULL))
        );
    """)
    op.execute("""
        CREATE UNIQUE INDEX uq_shipments_bank_order_active ON shipments (bank_order_id)
        WHERE bank_order_id IS NOT NULL AND is_deleted = false;
    """)
    op.execute("""
        CREATE UNIQUE INDEX uq_shipments_bip_order_active ON shipments (bip_order_id)
        WHERE bip_order_id IS NOT NULL AND is_deleted = false;
    """)
    op.execute("CREATE INDEX ix_shipments_tracking_number ON shipments (tracking_number);")
    op.execute("CREATE INDEX ix_shipments_status ON shipments (status);")
    op.execute("CREATE INDEX ix_shipments_courier_id ON shipments (courier_id);")

    # ── 5. Purchase orders ─────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE purchase_orders (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            po_number VARCHAR(50) NOT NULL UNIQUE,
            vendor_id UUID NOT NULL REFERENCES vendors(id) ON DELETE RESTRICT,
            bank_order_id UUID REFERENCES bank_orders(id) ON DELETE SET NULL,
            bip_order_id UUID REFERENCES bip_orders(id) ON DELETE SET NULL,
            total_amount NUMERIC(15, 2) NOT NULL DEFAULT 0,
            status purchaseorderstatus NOT NULL DEFAULT 'ACTIVE',
            merged_from JSONB NOT NULL DEFAULT '[]',
            merged_into_id UUID REFERENCES purchase_orders(id) ON DELETE SET NULL,
            cancel_reason TEXT,
            cancelled_at TIMESTAMPTZ,
            is_deleted BOOLEAN NOT NULL DEFAULT false,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
        );
    """)
    op.execute("CREATE INDEX ix_purchase_orders_vendor_id ON purchase_orders (vendor_id);")
    op.execute("CREATE INDEX ix_purchase_orders_status ON purchase_orders (status);")
    op.execute("""
        CREATE INDEX ix_purchase_orders_bank_order_id ON purchase_orders (bank_order_id)
        WHERE bank_order_id IS NOT NULL;
    """)
    op.execute("""
        CREATE INDEX ix_purchase_orders_bip_order_id ON purchase_orders (bip_order_id)
        WHERE bip_order_id IS NOT NULL;
    """)

    op.execute("""
        CREATE TABLE purchase_order_items (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            purchase_order_id UUID NOT NULL REFERENCES purchase_orders(id) ON DELETE CASCADE,
            line_number INTEGER NOT NULL,
            product_id UUID NOT NULL REFERENCES products(id) ON DELETE RESTRICT,
            product_name VARCHAR(255) NOT NULL,
            bank_product_number VARCHAR(100),
            product_color VARCHAR(50),
            quantity INTEGER NOT NULL,
            unit_price NUMERIC(15, 2) NOT NULL,
            line_total NUMERIC(15, 2) NOT NULL,
            bank_order_id UUID,
            bip_order_id UUID,
            source_po VARCHAR(50),
            serial_number VARCHAR(100),
            created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
        );
    """)
    op.execute("""
        CREATE INDEX ix_purchase_order_items_purchase_order_id
        ON purchase_order_items (purchase_order_id);
    """)
    op.execute("""
        CREATE INDEX ix_purchase_order_items_bank_order_id ON purchase_order_items (bank_order_id)
        WHERE bank_order_id IS NOT NULL;
    """)
    op.execute("""
        CREATE INDEX ix_purchase_order_items_bip_order_id ON purchase_order_items (bip_order_id)
        WHERE bip_order_id IS NOT NULL;
    """)

    # ── 6. Delivery challans ───────────────────────────────────────────────
    op.execute("""
        CREATE TABLE delivery_challans (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            challan_number VARCHAR(50) NOT NULL UNIQUE,
            shipment_id UUID NOT NULL REFERENCES shipments(id) ON DELETE RESTRICT,
            bank_order_id UUID REFERENCES bank_orders(id) ON DELETE RESTRICT,
            bip_order_id UUID REFERENCES bip_orders(id) ON DELETE RESTRICT,
            customer_name VARCHAR(200) NOT NULL,
            customer_cnic VARCHAR(20),
            customer_phone VARCHAR(20) NOT NULL,
            customer_address TEXT NOT NULL,
            customer_city VARCHAR(100) NOT NULL,
            product_name VARCHAR(255) NOT NULL,
            product_brand VARCHAR(100),
            product_color VARCHAR(50),
            item_code VARCHAR(100),
            product_serial_number VARCHAR(100),
            quantity INTEGER NOT NULL DEFAULT 1,
            courier_name VARCHAR(100) NOT NULL,
            tracking_number VARCHAR(100) NOT NULL,
            consignment_number VARCHAR(100),
            order_reference VARCHAR(100),
            po_number VARCHAR(50),
            challan_date TIMESTAMPTZ NOT NULL,
            dispatch_date TIMESTAMPTZ NOT NULL,
            expected_delivery_date TIMESTAMPTZ,
            remarks TEXT,
            pdf_url VARCHAR(1000),
            print_status printstatus NOT NULL DEFAULT 'NOT_PRINTED',
            printed_at TIMESTAMPTZ,
            print_count INTEGER NOT NULL DEFAULT 0,
            is_deleted BOOLEAN NOT NULL DEFAULT false,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            CONSTRAINT ck_delivery_challans_single_order
                CHECK ((bank_order_id IS NULL) <> (bip_order_id IS NULL))
        );
    """)
    op.execute("""
        CREATE UNIQUE INDEX uq_delivery_challans_shipment_active ON delivery_challans (shipment_id)
        WHERE is_deleted = false;
    """)
    op.execute("""
        CREATE INDEX ix_delivery_challans_bank_order_id ON delivery_challans (bank_order_id)
        WHERE bank_order_id IS NOT NULL;
    """)
    op.execute("""
        CREATE INDEX ix_delivery_challans_bip_order_id ON delivery_challans (bip_order_id)
        WHERE bip_order_id IS NOT NULL;
    """)
    op.execute("""
        CREATE INDEX ix_delivery_challans_tracking_number ON delivery_challans (tracking_number);
    """)

    # ── 7. Document numbering ──────────────────────────────────────────────
    op.execute("""
        CREATE TABLE document_sequences (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            prefix VARCHAR(10) NOT NULL,
            year INTEGER NOT NULL,
            last_value INTEGER NOT NULL DEFAULT 0,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            CONSTRAINT uq_document_sequences_prefix_year UNIQUE (prefix, year)
        );
    """)

    # ── 8. Event outbox ────────────────────────────────────────────────────
    op.execute("""
        CREATE TABLE event_outbox (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            event_type VARCHAR(100) NOT NULL,
            aggregate_type VARCHAR(100) NOT NULL,
            aggregate_id VARCHAR(100) NOT NULL,
            payload JSONB NOT NULL DEFAULT '{}',
            status eventstatus NOT NULL DEFAULT 'PENDING',
            retry_count INTEGER NOT NULL DEFAULT 0,
            max_retries INTEGER NOT NULL DEFAULT 5,
            last_error TEXT,
            processed_at TIMESTAMPTZ,
            schema_version INTEGER NOT NULL DEFAULT 1,
            created_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            updated_at TIMESTAMPTZ NOT NULL DEFAULT now()
        );
    """)
    op.execute("CREATE INDEX ix_event_outbox_event_type ON event_outbox (event_type);")
    op.execute("""
        CREATE INDEX ix_event_outbox_aggregate ON event_outbox (aggregate_type, aggregate_id);
    """)
    op.execute("""
        CREATE INDEX ix_event_outbox_pending ON event_outbox (created_at)
        WHERE status = 'PENDING';
    """)
    op.execute("""
        CREATE INDEX ix_event_outbox_failed ON event_outbox (created_at)
        WHERE status = 'FAILED';
    """)

    op.execute("""
        CREATE TABLE processed_events (
            id UUID PRIMARY KEY DEFAULT gen_random_uuid(),
            event_id UUID NOT NULL UNIQUE,
            event_type VARCHAR(100) NOT NULL,
            handler_names VARCHAR(500) NOT NULL,
            processed_at TIMESTAMPTZ NOT NULL DEFAULT now(),
            expires_at TIMESTAMPTZ NOT NULL
        );
    """)
    op.execute("CREATE INDEX ix_processed_events_expires_at ON processed_events (expires_at);")


def downgrade() -> None:
    for table in (
        "processed_events",
        "event_outbox",
        "document_sequences",
        "delivery_challans",
        "purchase_order_items",
        "purchase_orders",
        "shipments",
        "bip_orders",
        "bank_orders",
        "couriers",
        "vendors",
        "products",
    ):
        op.execute(f"DROP TABLE IF EXISTS {table};")

    for enum_type in (
        "eventstatus",
        "printstatus",
        "purchaseorderstatus",
        "shipmentstatus",
        "couriertype",
        "orderstatus",
    ):
        op.execute(f"DROP TYPE IF EXISTS {enum_type};")
