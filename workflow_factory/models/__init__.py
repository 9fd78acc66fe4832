"""
Pydantic schemas shared by the integrations, services and routers.
"""
