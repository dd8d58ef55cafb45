#!/usr/bin/env python3
"""Supabase database setup script for KlaroLink.

This script outputs the SQL needed to create all required tables in Supabase.
Copy the SQL output and run it in the Supabase SQL Editor.

Usage:
    # Print all SQL to console
    python scripts/setup_supabase.py

    # Print SQL and save to file
    python scripts/setup_supabase.py --output setup.sql

    # Verify tables exist
    python scripts/setup_supabase.py --verify

Tables Created:
    - businesses: Tenant accounts and page branding
    - feedback_forms: Form definitions (fields as JSONB)
    - social_links: Links shown under the form
    - feedback_submissions: Customer answers
    - analytics_events: Page views, form views, submits and link clicks
    - users / user_business_access: Platform users and their businesses
    - customers: End customers registered with a business
    - products / product_pricing: Products and their active price
    - product_reviews: Star ratings and comments left on a single product
    - field_categorizations: Stored field category overrides
"""

import argparse
import sys
from datetime import datetime

# =============================================================================
# SQL Schema Definitions
# =============================================================================

SCHEMA_SQL = """
-- =============================================================================
-- KlaroLink Database Schema for Supabase
-- =============================================================================
-- Generated: {generated_at}
--
-- Instructions:
-- 1. Open your Supabase project dashboard
-- 2. Go to SQL Editor
-- 3. Paste this entire script
-- 4. Click "Run" to execute
-- =============================================================================

-- =============================================================================
-- Table: businesses
-- =============================================================================

CREATE TABLE IF NOT EXISTS businesses (
    id SERIAL PRIMARY KEY,
    name VARCHAR(255) NOT NULL,
    email VARCHAR(255) UNIQUE NOT NULL,
    password_hash TEXT NOT NULL,
    profile_image TEXT,
    slug VARCHAR(255) UNIQUE NOT NULL,
    background_type VARCHAR(50) DEFAULT 'color',
    background_value TEXT DEFAULT '#6366f1',
    location VARCHAR(255),
    submit_button_color VARCHAR(7) DEFAULT '#CC79F0',
    submit_button_text_color VARCHAR(7) DEFAULT '#FDFFFA',
    submit_button_hover_color VARCHAR(7) DEFAULT '#3E7EF7',
    created_at TIMESTAMPTZ DEFAULT NOW(),
    updated_at TIMESTAMPTZ DEFAULT NOW(),

    CONSTRAINT businesses_background_type_valid CHECK (background_type IN ('color', 'image'))
);

CREATE INDEX IF NOT EXISTS idx_businesses_slug ON businesses(slug);
CREATE INDEX IF NOT EXISTS idx_businesses_email ON businesses(email);

-- =============================================================================
-- Table: feedback_forms
-- =============================================================================
-- preview_enabled doubles as the published flag of the public page.
-- =============================================================================

CREATE TABLE IF NOT EXISTS feedback_forms (
    id SERIAL PRIMARY KEY,
    business_id INT NOT NULL REFERENCES businesses(id) ON DELETE CASCADE,
    title TEXT NOT NULL DEFAULT 'Customer Feedback',
    description TEXT,
    fields JSONB NOT NULL DEFAULT '[]',
    is_active BOOLEAN DEFAULT TRUE,
    preview_enabled BOOLEAN DEFAULT FALSE,
    created_at TIMESTAMPTZ DEFAULT NOW(),
    updated_at TIMESTAMPTZ DEFAULT NOW()
);

CREATE INDEX IF NOT EXISTS idx_feedback_forms_business_id ON feedback_forms(business_id);

-- =============================================================================
-- Table: social_links
-- =============================================================================

CREATE TABLE IF NOT EXISTS social_links (
    id SERIAL PRIMARY KEY,
    business_id INT NOT NULL REFERENCES businesses(id) ON DELETE CASCADE,
    platform VARCHAR(100) NOT NULL,
    url TEXT NOT NULL,
    display_order INT DEFAULT 0,
    is_active BOOLEAN DEFAULT TRUE,
    created_at TIMESTAMPTZ DEFAULT NOW()
);

CREATE INDEX IF NOT EXISTS idx_social_links_business_id ON social_links(business_id);

-- =============================================================================
-- Table: customers
-- =============================================================================

CREATE TABLE IF NOT EXISTS customers (
    id SERIAL PRIMARY KEY,
    business_id INT NOT NULL REFERENCES businesses(id) ON DELETE CASCADE,
    email VARCHAR(255) NOT NULL,
    password_hash TEXT NOT NULL,
    first_name VARCHAR(100) NOT NULL,
    last_name VARCHAR(100) NOT NULL,
    phone_number VARCHAR(50),
    preferred_contact_method VARCHAR(20) DEFAULT 'email',
    address TEXT,
    date_of_birth DATE,
    gender VARCHAR(20),
    customer_status VARCHAR(20) DEFAULT 'active',
    registration_date TIMESTAMPTZ DEFAULT NOW(),

    CONSTRAINT customers_email_per_business UNIQUE (business_id, email)
);

CREATE INDEX IF NOT EXISTS idx_customers_business_id ON customers(business_id);

-- =============================================================================
-- Table: products / product_pricing
-- =============================================================================

CREATE TABLE IF NOT EXISTS products (
    id SERIAL PRIMARY KEY,
    business_id INT NOT NULL REFERENCES businesses(id) ON DELETE CASCADE,
    name VARCHAR(255) NOT NULL,
    description TEXT,
    product_image TEXT,
    category VARCHAR(100),
    display_order INT DEFAULT 0,
    is_enabled BOOLEAN DEFAULT TRUE,
    created_at TIMESTAMPTZ DEFAULT NOW(),
    updated_at TIMESTAMPTZ DEFAULT NOW()
);

CREATE INDEX IF NOT EXISTS idx_products_business_id ON products(business_id);

CREATE TABLE IF NOT EXISTS product_pricing (
    id SERIAL PRIMARY KEY,
    product_id INT NOT NULL REFERENCES products(id) ON DELETE CASCADE,
    price NUMERIC(10, 2) NOT NULL,
    currency VARCHAR(3) DEFAULT 'USD',
    is_active BOOLEAN DEFAULT TRUE,
    created_at TIMESTAMPTZ DEFAULT NOW()
);

CREATE INDEX IF NOT EXISTS idx_product_pricing_product_id ON product_pricing(product_id);

-- =============================================================================
-- Table: product_reviews
-- =============================================================================

CREATE TABLE IF NOT EXISTS product_reviews (
    id SERIAL PRIMARY KEY,
    product_id INT NOT NULL REFERENCES products(id) ON DELETE CASCADE,
    business_id INT NOT NULL REFERENCES businesses(id) ON DELETE CASCADE,
    customer_id INT REFERENCES customers(id) ON DELETE SET NULL,
    rating INT NOT NULL,
    comment TEXT NOT NULL,
    created_at TIMESTAMPTZ DEFAULT NOW(),
    updated_at TIMESTAMPTZ DEFAULT NOW(),

    CONSTRAINT product_reviews_rating_range CHECK (rating BETWEEN 1 AND 5)
);

CREATE INDEX IF NOT EXISTS idx_product_reviews_product_id ON product_reviews(product_id);

-- =============================================================================
-- Table: feedback_submissions
-- =============================================================================

CREATE TABLE IF NOT EXISTS feedback_submissions (
    id SERIAL PRIMARY KEY,
    business_id INT NOT NULL REFERENCES businesses(id) ON DELETE CASCADE,
    form_id INT NOT NULL REFERENCES feedback_forms(id) ON DELETE CASCADE,
    submission_data JSONB NOT NULL,
    submitted_at TIMESTAMPTZ DEFAULT NOW(),
    ip_address TEXT,
    user_agent TEXT,
    customer_id INT REFERENCES customers(id) ON DELETE SET NULL,
    product_id INT REFERENCES products(id) ON DELETE SET NULL
);

CREATE INDEX IF NOT EXISTS idx_feedback_submissions_business_id ON feedback_submissions(business_id);
CREATE INDEX IF NOT EXISTS idx_feedback_submissions_submitted_at ON feedback_submissions(submitted_at DESC);

-- =============================================================================
-- Table: analytics_events
-- =============================================================================

CREATE TABLE IF NOT EXISTS analytics_events (
    id SERIAL PRIMARY KEY,
    business_id INT NOT NULL REFERENCES businesses(id) ON DELETE CASCADE,
    event_type VARCHAR(50) NOT NULL,
    event_data JSONB,
    created_at TIMESTAMPTZ DEFAULT NOW(),
    ip_address TEXT,
    user_agent TEXT,

    CONSTRAINT analytics_events_type_valid CHECK (
        event_type IN ('page_view', 'form_view', 'form_submit', 'link_click')
    )
);

CREATE INDEX IF NOT EXISTS idx_analytics_events_business_id ON analytics_events(business_id);
CREATE INDEX IF NOT EXISTS idx_analytics_events_type ON analytics_events(event_type);

-- =============================================================================
-- Table: users / user_business_access
-- =============================================================================

CREATE TABLE IF NOT EXISTS users (
    id SERIAL PRIMARY KEY,
    email VARCHAR(255) UNIQUE NOT NULL,
    first_name VARCHAR(100) NOT NULL,
    last_name VARCHAR(100) NOT NULL,
    password_hash TEXT NOT NULL,
    role VARCHAR(20) DEFAULT 'user',
    created_at TIMESTAMPTZ DEFAULT NOW()
);

CREATE TABLE IF NOT EXISTS user_business_access (
    user_id INT NOT NULL REFERENCES users(id) ON DELETE CASCADE,
    business_id INT NOT NULL REFERENCES businesses(id) ON DELETE CASCADE,
    role VARCHAR(20) DEFAULT 'owner',
    created_at TIMESTAMPTZ DEFAULT NOW(),
    PRIMARY KEY (user_id, business_id)
);

-- =============================================================================
-- Table: field_categorizations
-- =============================================================================

CREATE TABLE IF NOT EXISTS field_categorizations (
    id SERIAL PRIMARY KEY,
    business_id INT NOT NULL REFERENCES businesses(id) ON DELETE CASCADE,
    field_id VARCHAR(255) NOT NULL,
    category VARCHAR(50) NOT NULL,
    priority INT DEFAULT 1,
    confidence NUMERIC(3, 2) DEFAULT 0,
    created_at TIMESTAMPTZ DEFAULT NOW(),

    CONSTRAINT field_categorizations_unique UNIQUE (business_id, field_id)
);

-- =============================================================================
-- Trigger: keep updated_at current
-- =============================================================================

CREATE OR REPLACE FUNCTION update_updated_at_column()
RETURNS TRIGGER AS $$
BEGIN
    NEW.updated_at = NOW();
    RETURN NEW;
END;
$$ LANGUAGE plpgsql;

DROP TRIGGER IF EXISTS update_businesses_updated_at ON businesses;
CREATE TRIGGER update_businesses_updated_at
    BEFORE UPDATE ON businesses
    FOR EACH ROW EXECUTE FUNCTION update_updated_at_column();

DROP TRIGGER IF EXISTS update_feedback_forms_updated_at ON feedback_forms;
CREATE TRIGGER update_feedback_forms_updated_at
    BEFORE UPDATE ON feedback_forms
    FOR EACH ROW EXECUTE FUNCTION update_updated_at_column();

DROP TRIGGER IF EXISTS update_products_updated_at ON products;
CREATE TRIGGER update_products_updated_at
    BEFORE UPDATE ON products
    FOR EACH ROW EXECUTE FUNCTION update_updated_at_column();

DROP TRIGGER IF EXISTS update_product_reviews_updated_at ON product_reviews;
CREATE TRIGGER update_product_reviews_updated_at
    BEFORE UPDATE ON product_reviews
    FOR EACH ROW EXECUTE FUNCTION update_updated_at_column();
"""


# =============================================================================
# Migration SQL (for existing databases)
# =============================================================================

MIGRATION_SQL = """
-- =============================================================================
-- KlaroLink Migration: published flag, page styling, customer and product links
-- =============================================================================

ALTER TABLE feedback_forms ADD COLUMN IF NOT EXISTS preview_enabled BOOLEAN DEFAULT FALSE;
ALTER TABLE businesses ADD COLUMN IF NOT EXISTS location VARCHAR(255);
ALTER TABLE feedback_submissions ADD COLUMN IF NOT EXISTS customer_id INT REFERENCES customers(id) ON DELETE SET NULL;
ALTER TABLE feedback_submissions ADD COLUMN IF NOT EXISTS product_id INT REFERENCES products(id) ON DELETE SET NULL;
ALTER TABLE products ADD COLUMN IF NOT EXISTS display_order INT DEFAULT 0;
ALTER TABLE products ADD COLUMN IF NOT EXISTS is_enabled BOOLEAN DEFAULT TRUE;
ALTER TABLE businesses ADD COLUMN IF NOT EXISTS submit_button_color VARCHAR(7) DEFAULT '#CC79F0';
ALTER TABLE businesses ADD COLUMN IF NOT EXISTS submit_button_text_color VARCHAR(7) DEFAULT '#FDFFFA';
ALTER TABLE businesses ADD COLUMN IF NOT EXISTS submit_button_hover_color VARCHAR(7) DEFAULT '#3E7EF7';

CREATE TABLE IF NOT EXISTS product_reviews (
    id SERIAL PRIMARY KEY,
    product_id INT NOT NULL REFERENCES products(id) ON DELETE CASCADE,
    business_id INT NOT NULL REFERENCES businesses(id) ON DELETE CASCADE,
    customer_id INT REFERENCES customers(id) ON DELETE SET NULL,
    rating INT NOT NULL,
    comment TEXT NOT NULL,
    created_at TIMESTAMPTZ DEFAULT NOW(),
    updated_at TIMESTAMPTZ DEFAULT NOW(),

    CONSTRAINT product_reviews_rating_range CHECK (rating BETWEEN 1 AND 5)
);

CREATE INDEX IF NOT EXISTS idx_product_reviews_product_id ON product_reviews(product_id);
"""


# =============================================================================
# Drop Tables SQL (use with caution!)
# =============================================================================

DROP_TABLES_SQL = """
-- =============================================================================
-- DROP ALL TABLES (USE WITH EXTREME CAUTION!)
-- =============================================================================
-- This will delete ALL data. Only use for complete reset during development.
-- =============================================================================

DROP TABLE IF EXISTS field_categorizations CASCADE;
DROP TABLE IF EXISTS user_business_access CASCADE;
DROP TABLE IF EXISTS users CASCADE;
DROP TABLE IF EXISTS analytics_events CASCADE;
DROP TABLE IF EXISTS feedback_submissions CASCADE;
DROP TABLE IF EXISTS product_reviews CASCADE;
DROP TABLE IF EXISTS product_pricing CASCADE;
DROP TABLE IF EXISTS products CASCADE;
DROP TABLE IF EXISTS customers CASCADE;
DROP TABLE IF EXISTS social_links CASCADE;
DROP TABLE IF EXISTS feedback_forms CASCADE;
DROP TABLE IF EXISTS businesses CASCADE;

DROP FUNCTION IF EXISTS update_updated_at_column() CASCADE;
"""

REQUIRED_TABLES = [
    "businesses",
    "feedback_forms",
    "social_links",
    "customers",
    "products",
    "product_pricing",
    "product_reviews",
    "feedback_submissions",
    "analytics_events",
    "users",
    "user_business_access",
    "field_categorizations",
]

# Tables keyed by a composite primary key have no id column to select.
_CHECK_COLUMN = {"user_business_access": "user_id"}


# =============================================================================
# Verification Functions
# =============================================================================

def verify_tables() -> dict:
    """Verify that all required tables exist in Supabase.

    Returns:
        Dictionary with verification results.
    """
    from supabase import create_client
    from klarolink.config.settings import get_settings

    settings = get_settings()
    if not settings.use_supabase:
        return {
            'success': False,
            'error': 'SUPABASE_URL and SUPABASE_KEY must be set to verify tables',
        }

    supabase = create_client(
        settings.supabase_url,
        settings.supabase_key.get_secret_value(),
    )

    results = {
        'success': True,
        'tables': {},
        'missing': [],
        'errors': [],
    }

    for table in REQUIRED_TABLES:
        try:
            column = _CHECK_COLUMN.get(table, 'id')
            response = supabase.table(table).select(column).limit(1).execute()
            results['tables'][table] = {
                'exists': True,
                'accessible': True,
                'row_count': len(response.data) if response.data else 0,
            }
        except Exception as e:
            error_str = str(e)
            if 'does not exist' in error_str.lower() or 'relation' in error_str.lower():
                results['tables'][table] = {
                    'exists': False,
                    'accessible': False,
                }
                results['missing'].append(table)
            else:
                results['tables'][table] = {
                    'exists': 'unknown',
                    'accessible': False,
                    'error': error_str[:100],
                }
                results['errors'].append(f"{table}: {error_str[:100]}")
            results['success'] = False

    return results


def print_verification_results(results: dict) -> None:
    """Print verification results in a formatted way."""
    print("\n" + "=" * 70)
    print("Supabase Table Verification Results")
    print("=" * 70)

    if 'error' in results:
        print(f"\nError: {results['error']}")
        return

    print(f"\nOverall Status: {'PASS' if results['success'] else 'FAIL'}")
    print("-" * 70)

    print("\nTable Status:")
    for table, info in results.get('tables', {}).items():
        status = "OK" if info.get('exists') and info.get('accessible') else "MISSING"
        icon = "[+]" if status == "OK" else "[-]"
        print(f"  {icon} {table}: {status}")
        if info.get('error'):
            print(f"      Error: {info['error']}")

    if results.get('missing'):
        print(f"\nMissing Tables: {', '.join(results['missing'])}")
        print("\nRun this script without --verify to get the SQL to create missing tables.")

    if results.get('errors'):
        print("\nErrors:")
        for error in results['errors']:
            print(f"  - {error}")

    print("\n" + "=" * 70)


# =============================================================================
# Main Functions
# =============================================================================

def get_setup_sql() -> str:
    """Get the complete setup SQL with timestamp."""
    return SCHEMA_SQL.format(
        generated_at=datetime.now().strftime("%Y-%m-%d %H:%M:%S")
    )


def get_sql(sql_type: str = 'setup') -> str:
    """SQL for ``setup``, ``migration`` or ``drop``."""
    if sql_type == 'setup':
        return get_setup_sql()
    if sql_type == 'migration':
        return MIGRATION_SQL
    if sql_type == 'drop':
        return DROP_TABLES_SQL
    raise ValueError(f"Unknown SQL type: {sql_type}")


def print_sql(sql_type: str = 'setup') -> None:
    """Print the requested SQL to console."""
    if sql_type == 'drop':
        print("\n" + "!" * 70)
        print("WARNING: This will DELETE ALL DATA!")
        print("!" * 70 + "\n")
    print(get_sql(sql_type))


def save_sql(filepath: str, sql_type: str = 'setup') -> None:
    """Save SQL to a file."""
    with open(filepath, 'w', encoding='utf-8') as f:
        f.write(get_sql(sql_type))

    print(f"SQL saved to: {filepath}")


def main():
    """Main entry point for the setup script."""
    parser = argparse.ArgumentParser(
        description='Generate Supabase setup SQL for KlaroLink',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # Print setup SQL to console
    python scripts/setup_supabase.py

    # Save setup SQL to file
    python scripts/setup_supabase.py --output setup.sql

    # Print migration SQL (for updating existing tables)
    python scripts/setup_supabase.py --type migration

    # Verify tables exist in Supabase
    python scripts/setup_supabase.py --verify

    # Print drop SQL (use with caution!)
    python scripts/setup_supabase.py --type drop
        """
    )

    parser.add_argument(
        '--output', '-o',
        type=str,
        help='Save SQL to file instead of printing'
    )

    parser.add_argument(
        '--type', '-t',
        type=str,
        choices=['setup', 'migration', 'drop'],
        default='setup',
        help='Type of SQL to generate (default: setup)'
    )

    parser.add_argument(
        '--verify', '-v',
        action='store_true',
        help='Verify that tables exist in Supabase'
    )

    args = parser.parse_args()

    if args.verify:
        results = verify_tables()
        print_verification_results(results)
        sys.exit(0 if results.get('success') else 1)

    if args.output:
        save_sql(args.output, args.type)
    else:
        print_sql(args.type)


if __name__ == '__main__':
    main()
