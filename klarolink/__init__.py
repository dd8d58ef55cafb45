"""
KlaroLink - Customer Feedback Pages & Analytics

Businesses publish a branded feedback page under a unique slug, customers
submit ratings and comments, and the dashboard turns submissions into
stats, trends and audience segments.
"""

__version__ = "0.1.0"
