"""
Utility Scripts.

- setup_supabase.py: Print, save or verify the PostgreSQL schema for Supabase

Run scripts with: python -m scripts.setup_supabase
"""
