from typing import Any, Dict, Optional
from pydantic import BaseModel


class CartUpdateResponse(BaseModel):
    success: bool
    user: Optional[Dict[str, Any]] = None
    message: Optional[str] = None


class CartReadResponse(BaseModel):
    success: bool
    cartItems: Optional[Any] = None
    message: Optional[str] = None
