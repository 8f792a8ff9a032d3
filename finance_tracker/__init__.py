"""
FinanceTracker - Source Package

A personal-finance dashboard: record income and expenses, view reports,
upload bill receipts and download exports, all behind a sign-in.

DESIGN PRINCIPLES:
1. One session object per user session, owned by the auth context
2. Privilege defaults are explicit policy, never an accident
3. Every remote call fails visibly but never crashes a page
4. The remote backend is swappable (Supabase or in-memory)
"""

__version__ = "1.0.0"
__author__ = "FinanceTracker Team"
