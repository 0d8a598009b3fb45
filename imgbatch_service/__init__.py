"""
Product image batch compression service package.

Exposes reusable primitives for fetching and transforming images, running
batch jobs over product tables, and serving the FastAPI application.
"""
