"""
Tenant Admin API - multi-tenant account, organization and invitation core.
"""

__version__ = "1.0.0"
