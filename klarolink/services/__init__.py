"""
Application services.

- auth: password hashing, tokens and account registration/login
- ai_insights: Claude-generated feedback reports with per-business caching
"""
