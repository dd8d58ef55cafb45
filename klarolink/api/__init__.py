"""
KlaroLink FastAPI Application.

This module contains the REST API for KlaroLink:

- main: FastAPI application entry point and configuration
- routes/: API endpoint definitions organized by domain
- models: Pydantic request/response models
- dependencies: FastAPI dependency injection providers

API Structure:
- /health - Health, liveness and readiness checks
- /api/auth - Business, user and customer registration and login
- /api/page, /api/analytics, /api/feedback - Public feedback page
- /api/dashboard, /api/insights, /api/audience, /api/ai-insights - Dashboard data
- /api/forms, /api/products, /api/profile, /api/customize - Page management

Example:
    # Run with: uvicorn klarolink.api.main:app --reload
"""
