# app/models/user.py
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Optional, Dict, Any


CART_FIELD = "cartItem"


@dataclass
class User:
    """
    Domain model for a user document. The identity provider owns the id and the
    profile fields; this service only ever replaces the cart. The loaded document
    is kept as-is so a save writes back exactly what was read, plus the new cart.
    """
    id: str
    document: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, d: Dict[str, Any]) -> "User":
        if d is None:
            raise ValueError("Cannot construct User from None")
        id_val = str(d.get("id") or d.get("_id") or "")
        doc = {k: v for k, v in d.items() if k != "_id"}
        doc["id"] = id_val
        return cls(id=id_val, document=doc)

    @property
    def name(self) -> Optional[str]:
        return self.document.get("name") or None

    @property
    def email(self) -> Optional[str]:
        return self.document.get("email") or None

    @property
    def has_cart(self) -> bool:
        return CART_FIELD in self.document

    @property
    def cart_items(self) -> Any:
        """Stored cart, exactly as saved (may be null or any JSON value); {} if never set."""
        return self.document.get(CART_FIELD, {})

    def replace_cart(self, cart_data: Any) -> None:
        """Full overwrite of the cart, never a merge."""
        self.document[CART_FIELD] = cart_data

    def to_dict(self) -> Dict[str, Any]:
        return dict(self.document)
