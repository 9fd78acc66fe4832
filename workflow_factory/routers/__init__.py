"""
File: __init__.py
Purpose: Package initializer for the FastAPI routers.
When Used: Imported by workflow_factory.main to register route prefixes.
"""
