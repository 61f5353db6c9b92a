# Schemas package init
"""
Hbook Backend — Pydantic Response Schemas
==========================================

Wire contracts are camelCase (see common.CamelModel); Python attributes
stay snake_case.
"""
