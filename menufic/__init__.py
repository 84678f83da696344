"""
Backend package for the Menufic menu manager.

Provides a FastAPI application for managing restaurant menus, their
categories and items, with images kept in S3-compatible object storage.
"""
