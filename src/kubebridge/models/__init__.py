"""
Models package - Pydantic models for typed resource handling.

Defines data models for:
- Object metadata and per-operation timeouts
- core/v1 ConfigMap and Namespace
"""
