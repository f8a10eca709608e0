"""
Business logic services.

Each service handles one part of the stock import:

    category_mapper             category labels and name keywords
    catalog_matcher             exact and fuzzy product matching
    catalog_provider            provider contract, in-memory and dry-run providers
    supabase_catalog_provider   Supabase products table
    reconciliation_service      the import run
    import_report               text report of a run

Import from the modules directly.
"""
