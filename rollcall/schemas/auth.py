"""
Pydantic schemas for session identity.
"""

from pydantic import BaseModel


class Identity(BaseModel):
    user_id: str
    email: str = ""
