"""SQLAlchemy ORM models for the storefront tables."""
