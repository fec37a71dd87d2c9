"""Pydantic request/response models, one module per router."""
