"""
Response schemas for the Restaurants API

The stored documents themselves are schemaless (see models.py); these models
only describe what clients receive. Fields left as None are dropped from
responses, which is how a restaurant without grades loses its ``grade`` key.
"""

from pydantic import BaseModel, Field
from typing import List, Optional


class RestaurantOut(BaseModel):
    id: str = Field(..., description="Restaurant _id (string)")
    name: Optional[str] = Field(None, description="Restaurant name")
    cuisine: Optional[str] = Field(None, description="Cuisine")
    borough: Optional[str] = Field(None, description="Borough")
    grade: Optional[str] = Field(None, description="Most recent inspection grade")
    address: str = Field("", description="Building and street")


class RestaurantList(BaseModel):
    restaurants: List[RestaurantOut] = Field(default_factory=list)


class Message(BaseModel):
    message: str
