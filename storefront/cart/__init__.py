"""Cart package: snapshot models and the reconciling store."""
from .models import CartLine, CartSnapshot
from .service import CartState, CartStore

__all__ = [
    "CartLine",
    "CartSnapshot",
    "CartState",
    "CartStore",
]
